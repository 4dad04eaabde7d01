"""Aggregate dependency reachability into a single status mapping."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from .assistant import AssistantClient, AssistantError
from .resources import ResourceStore
from .store import StoreError

logger = logging.getLogger("mobtrack.health")

OK = "ok"
FAILED = "failed"


async def _probe_store(resources: Optional[ResourceStore]) -> str:
    if resources is None:
        logger.warning("Store health check failed: connection is not ready")
        return FAILED
    try:
        await resources.info()
    except StoreError as exc:
        logger.warning("Store health check failed: %s", exc)
        return FAILED
    return OK


async def _probe_assistant(assistant: Optional[AssistantClient]) -> str:
    if assistant is None:
        return FAILED
    try:
        await assistant.create_session()
    except AssistantError as exc:
        logger.warning("Assistant health check failed: %s", exc)
        return FAILED
    return OK


async def probe_dependencies(
    resources: Optional[ResourceStore],
    assistant: Optional[AssistantClient],
) -> Dict[str, str]:
    store_status, assistant_status = await asyncio.gather(
        _probe_store(resources),
        _probe_assistant(assistant),
    )
    return {"assistant": assistant_status, "store": store_status}


__all__ = ["FAILED", "OK", "probe_dependencies"]
