"""Shared fixtures for the tracking service tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mobtrack.assistant import AssistantClient
from mobtrack.config import AssistantSettings
from mobtrack.connection import ConnectionManager
from mobtrack.memory_store import MemoryStore

ASSISTANT_SETTINGS = AssistantSettings(
    url="https://assistant.test",
    api_key="assistant-key",
    assistant_id="asst-1",
    iam_token_url="https://iam.test/identity/token",
)


def _assistant_handler(healthy: bool) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "iam.test":
            return httpx.Response(200, json={"access_token": "assistant-token", "expires_in": 3600})
        if not healthy:
            return httpx.Response(500, json={"error": "Assistant is down"})
        if request.url.path.endswith("/sessions"):
            return httpx.Response(201, json={"session_id": "session-123"})
        if request.url.path.endswith("/message"):
            body = json.loads(request.content)
            text = body["input"]["text"]
            return httpx.Response(
                200,
                json={"output": {"generic": [{"response_type": "text", "text": f"echo: {text}"}]}},
            )
        return httpx.Response(404, json={"error": "Resource not found"})

    return handler


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_assistant() -> Callable[..., AssistantClient]:
    def factory(healthy: bool = True) -> AssistantClient:
        transport = httpx.MockTransport(_assistant_handler(healthy))
        return AssistantClient(ASSISTANT_SETTINGS, transport=transport)

    return factory


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def manager(memory_store: MemoryStore) -> ConnectionManager:
    return ConnectionManager(memory_store, "mobtrack_db")
