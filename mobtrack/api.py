"""FastAPI application exposing resource tracking and assistant endpoints."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import AliasChoices, BaseModel, Field
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .assistant import AssistantClient, AssistantError
from .cloudant import CloudantStore
from .config import load_assistant_settings, load_store_settings
from .connection import ConnectionManager
from .health import probe_dependencies
from .resources import ResourceStore, ResourceValidationError, validate_resource_input
from .store import StoreConnectionError, StoreError

logger = logging.getLogger("mobtrack.api")


class CreateResourceRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    contact: Optional[str] = None
    user_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("userID", "user_id"),
    )
    transaction_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("transactionType", "trnsctype"),
    )


class CreateResourceResponse(BaseModel):
    createdId: str
    createdRevision: str


class MessageRequest(BaseModel):
    text: str = ""
    sessionid: str = Field(..., min_length=1)


def _error_status(code: Optional[int]) -> int:
    if isinstance(code, int) and 400 <= code < 600:
        return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _trusted_proxy_hosts() -> list[str] | str:
    raw = os.getenv("MOBTRACK_TRUSTED_PROXIES")
    if not raw:
        return "127.0.0.1"
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "127.0.0.1"


def _default_manager() -> ConnectionManager:
    settings = load_store_settings()
    return ConnectionManager(
        CloudantStore.from_settings(settings),
        settings.db_name,
        attempts=settings.connect_attempts,
        backoff=settings.connect_backoff,
    )


def create_app(
    *,
    manager: ConnectionManager | None = None,
    assistant: AssistantClient | None = None,
    connect_in_background: bool = False,
) -> FastAPI:
    """Build the HTTP API around an explicit store connection and assistant client."""

    if manager is None:
        manager = _default_manager()
    if assistant is None:
        assistant = AssistantClient(load_assistant_settings())

    async def _bootstrap() -> None:
        logger.info("Initializing document store connection")
        try:
            await manager.acquire()
        except StoreConnectionError as exc:
            logger.error("Error while initializing database: %s", exc)
            return
        logger.info("Document store connection initialized")

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if connect_in_background:
            task = asyncio.create_task(_bootstrap())
        else:
            await _bootstrap()
        try:
            yield
        finally:
            if task is not None and not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            await manager.close()
            await assistant.close()

    app = FastAPI(
        title="Mobile Tracking API",
        description="Record and look up resource locations reported by mobile clients",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxy_hosts())
    app.state.connection = manager
    app.state.assistant = assistant

    def current_resources() -> Optional[ResourceStore]:
        handle = manager.handle
        if handle is None:
            return None
        return ResourceStore(handle)

    def require_resources() -> ResourceStore:
        resources = current_resources()
        if resources is None:
            detail = "Resource store is not ready"
            if manager.error is not None:
                detail = f"Resource store is unavailable: {manager.error}"
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
        return resources

    @app.get("/")
    async def root() -> Dict[str, Dict[str, str]]:
        return {"status": await probe_dependencies(current_resources(), assistant)}

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return await probe_dependencies(current_resources(), assistant)

    @app.get("/api/session", response_class=PlainTextResponse)
    async def create_session() -> str:
        return await assistant.create_session()

    @app.post("/api/message")
    async def post_message(payload: MessageRequest) -> Dict[str, Any]:
        return await assistant.message(payload.text, payload.sessionid)

    @app.post(
        "/api/resource",
        response_model=CreateResourceResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_resource(payload: CreateResourceRequest) -> CreateResourceResponse:
        validate_resource_input(payload.name, payload.contact)
        resources = require_resources()
        result = await resources.create(
            payload.name or "",
            payload.description or "",
            payload.location or "",
            payload.contact or "",
            payload.user_id or "",
            payload.transaction_type,
        )
        return CreateResourceResponse(**result.to_json())

    @app.get("/api/resource")
    async def find_resources(
        name: Optional[str] = None,
        transaction_type: Optional[str] = Query(default=None, alias="transactionType"),
        trnsctype: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        resources = require_resources()
        records = await resources.find(name, transaction_type or trnsctype)
        return [record.to_json() for record in records]

    @app.exception_handler(ResourceValidationError)
    async def handle_validation_error(_: object, exc: ResourceValidationError):
        return JSONResponse(
            status_code=422,
            content={"errors": str(exc)},
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(_: object, exc: StoreError):
        return JSONResponse(status_code=_error_status(exc.status_code), content=exc.to_dict())

    @app.exception_handler(AssistantError)
    async def handle_assistant_error(_: object, exc: AssistantError):
        return JSONResponse(status_code=_error_status(exc.status_code), content=exc.to_dict())

    return app


__all__ = ["create_app"]
