from __future__ import annotations

from typing import Any, Dict

import httpx
import pytest

from mobtrack.cloudant import CloudantStore
from mobtrack.connection import StoreHandle
from mobtrack.health import FAILED, OK, probe_dependencies
from mobtrack.memory_store import MemoryStore
from mobtrack.resources import ResourceStore
from mobtrack.store import StoreError

pytestmark = pytest.mark.anyio


class BrokenMetadataStore(MemoryStore):
    async def get_metadata(self, collection: str) -> Dict[str, Any]:
        raise StoreError("Failed to contact document store", error="unreachable")


async def _resources(store: MemoryStore) -> ResourceStore:
    await store.create_collection("mobtrack_db")
    return ResourceStore(StoreHandle(store, "mobtrack_db"))


async def test_all_dependencies_healthy(memory_store, make_assistant) -> None:
    assistant = make_assistant()

    result = await probe_dependencies(await _resources(memory_store), assistant)

    assert result == {"assistant": OK, "store": OK}
    await assistant.close()


async def test_store_failure_does_not_hide_assistant_status(make_assistant) -> None:
    assistant = make_assistant()

    result = await probe_dependencies(await _resources(BrokenMetadataStore()), assistant)

    assert result == {"assistant": OK, "store": FAILED}
    await assistant.close()


async def test_missing_connection_reports_store_failed(make_assistant) -> None:
    assistant = make_assistant()

    result = await probe_dependencies(None, assistant)

    assert result == {"assistant": OK, "store": FAILED}
    await assistant.close()


async def test_assistant_failure_reported(memory_store, make_assistant) -> None:
    assistant = make_assistant(healthy=False)

    result = await probe_dependencies(await _resources(memory_store), assistant)

    assert result == {"assistant": FAILED, "store": OK}
    await assistant.close()


async def test_both_failed_never_raises() -> None:
    result = await probe_dependencies(None, None)

    assert result == {"assistant": FAILED, "store": FAILED}


@pytest.mark.parametrize("expires_in", [None, "soon", [3600]])
async def test_malformed_token_response_reports_store_failed(make_assistant, expires_in) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "iam.test":
            return httpx.Response(200, json={"access_token": "t", "expires_in": expires_in})
        return httpx.Response(200, json={"db_name": "mobtrack_db", "doc_count": 0})

    store = CloudantStore(
        "https://account.cloudant.test",
        iam_api_key="k",
        iam_token_url="https://iam.test/identity/token",
        transport=httpx.MockTransport(handler),
    )
    assistant = make_assistant()

    result = await probe_dependencies(ResourceStore(StoreHandle(store, "mobtrack_db")), assistant)

    assert result == {"assistant": OK, "store": FAILED}
    await store.close()
    await assistant.close()
