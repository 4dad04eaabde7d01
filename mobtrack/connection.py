"""Bootstrap and memoize the shared handle to the resource collection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .store import DocumentStore, StoreConnectionError, StoreError

logger = logging.getLogger("mobtrack.connection")


@dataclass(frozen=True)
class StoreHandle:
    """A document store scoped to a single collection."""

    store: DocumentStore
    collection: str

    async def insert(self, document: Mapping[str, Any]) -> Tuple[str, str]:
        return await self.store.insert(self.collection, document)

    async def query(self, selector: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return await self.store.query(self.collection, selector)

    async def info(self) -> Dict[str, Any]:
        return await self.store.get_metadata(self.collection)


async def connect(store: DocumentStore, collection: str) -> StoreHandle:
    """Reach the store, create ``collection`` if it is missing and return a handle to it."""

    logger.info("Connecting to document store for database %s", collection)
    try:
        existing = await store.list_collections()
    except StoreError as exc:
        logger.error("Connect failure for database %s: %s", collection, exc)
        raise StoreConnectionError(
            f"Unable to reach document store: {exc}",
            status_code=exc.status_code,
            error=exc.error,
        ) from exc

    if collection not in existing:
        logger.info("Database %s does not exist, creating it", collection)
        try:
            await store.create_collection(collection)
        except StoreError as exc:
            logger.error("Database create failure for %s: %s", collection, exc)
            raise StoreConnectionError(
                f"Unable to create database {collection}: {exc}",
                status_code=exc.status_code,
                error=exc.error,
            ) from exc

    logger.info("Connect success, using database %s", collection)
    return StoreHandle(store=store, collection=collection)


class ConnectionManager:
    """Acquire the store handle once and share it for the life of the process."""

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        *,
        attempts: int = 1,
        backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.store = store
        self.collection = collection
        self._attempts = attempts
        self._backoff = backoff
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._handle: Optional[StoreHandle] = None
        self._error: Optional[StoreConnectionError] = None

    @property
    def handle(self) -> Optional[StoreHandle]:
        return self._handle

    @property
    def error(self) -> Optional[StoreConnectionError]:
        return self._error

    @property
    def ready(self) -> bool:
        return self._handle is not None

    async def acquire(self) -> StoreHandle:
        """Return the shared handle, running the bootstrap on first use only."""

        async with self._lock:
            if self._handle is not None:
                return self._handle
            if self._error is not None:
                raise self._error

            retrying = AsyncRetrying(
                stop=stop_after_attempt(self._attempts),
                wait=wait_exponential(multiplier=self._backoff),
                retry=retry_if_exception_type(StoreConnectionError),
                sleep=self._sleep,
                before_sleep=self._log_retry,
                reraise=True,
            )
            try:
                self._handle = await retrying(connect, self.store, self.collection)
            except StoreConnectionError as exc:
                self._error = exc
                raise
            return self._handle

    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "Connection attempt %d of %d failed, retrying in %.1fs",
            retry_state.attempt_number,
            self._attempts,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )

    async def close(self) -> None:
        await self.store.close()


__all__ = ["ConnectionManager", "StoreHandle", "connect"]
