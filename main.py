"""Command-line interface for the mobile tracking backend."""

from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from mobtrack.config import ConfigurationError, load_server_settings, load_store_settings
from mobtrack.connection import ConnectionManager
from mobtrack.memory_store import MemoryStore
from mobtrack.store import StoreConnectionError, StoreError

logger = logging.getLogger("mobtrack.main")

_KNOWN_COMMANDS = {"serve", "init-db", "find"}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )

    parser = argparse.ArgumentParser(description="Mobile tracking backend utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    server_defaults = load_server_settings()
    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the HTTP API")
    serve_parser.add_argument("--host", default=server_defaults.host, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=server_defaults.port,
        help=f"Port for the HTTP API (default: {server_defaults.port})",
    )
    serve_parser.add_argument(
        "--in-memory",
        action="store_true",
        help="Keep records in process memory instead of Cloudant",
    )
    serve_parser.add_argument(
        "--background-connect",
        action="store_true",
        help="Accept connections while the store bootstrap is still running",
    )

    init_parser = subparsers.add_parser("init-db", parents=[common], help="Connect to the store and create the database")
    init_parser.add_argument(
        "--in-memory",
        action="store_true",
        help="Exercise the bootstrap against an in-memory store",
    )

    find_parser = subparsers.add_parser("find", parents=[common], help="Print matching resources as JSON")
    find_parser.add_argument("--name", default=None, help="Case-insensitive part of the resource name")
    find_parser.add_argument(
        "--transaction-type",
        default=None,
        help="Exact transaction type to match",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in _KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _build_manager(*, in_memory: bool) -> ConnectionManager:
    settings = load_store_settings()
    if in_memory:
        logger.info("Using in-memory document store; records are lost on exit")
        return ConnectionManager(MemoryStore(), settings.db_name)

    from mobtrack.cloudant import CloudantStore

    return ConnectionManager(
        CloudantStore.from_settings(settings),
        settings.db_name,
        attempts=settings.connect_attempts,
        backoff=settings.connect_backoff,
    )


def _serve(manager: ConnectionManager, *, host: str, port: int, background_connect: bool) -> None:
    from mobtrack.api import create_app
    import uvicorn

    app = create_app(
        manager=manager,
        connect_in_background=background_connect,
    )
    logger.info("Mobile tracking API listening at http://%s:%s", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


async def _init_db(manager: ConnectionManager) -> int:
    try:
        handle = await manager.acquire()
        info = await handle.info()
    except StoreConnectionError as exc:
        print(f"Failed to connect to the document store: {exc}", file=sys.stderr)
        return 1
    except StoreError as exc:
        print(f"Database is not available: {exc}", file=sys.stderr)
        return 1
    finally:
        await manager.close()

    print(f"Database {manager.collection} is ready ({info.get('doc_count', 0)} documents).")
    return 0


async def _find(manager: ConnectionManager, name: str | None, transaction_type: str | None) -> int:
    from mobtrack.resources import ResourceStore

    try:
        handle = await manager.acquire()
        records = await ResourceStore(handle).find(name, transaction_type)
    except StoreError as exc:
        print(f"Query failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Stored resource could not be read: {exc}", file=sys.stderr)
        return 1
    finally:
        await manager.close()

    print(json.dumps([record.to_json() for record in records], indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    try:
        manager = _build_manager(in_memory=getattr(args, "in_memory", False))
    except (ConfigurationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    if args.command == "serve":
        try:
            _serve(
                manager,
                host=args.host,
                port=args.port,
                background_connect=args.background_connect,
            )
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}", file=sys.stderr)
            return 2
        return 0
    if args.command == "init-db":
        return asyncio.run(_init_db(manager))
    if args.command == "find":
        return asyncio.run(_find(manager, args.name, args.transaction_type))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
