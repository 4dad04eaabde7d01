"""Cloudant/CouchDB HTTP client implementing the document store interface."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from .config import StoreSettings
from .iam import IAMError, IAMTokenProvider
from .store import StoreError

logger = logging.getLogger("mobtrack.cloudant")

DEFAULT_PAGE_SIZE = 200


def _db_path(name: str) -> str:
    return "/" + quote(name, safe="")


def _error_from_response(response: httpx.Response) -> StoreError:
    error = "store_error"
    reason = f"Document store request failed with status {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        if isinstance(payload.get("error"), str):
            error = payload["error"]
        if isinstance(payload.get("reason"), str) and payload["reason"].strip():
            reason = payload["reason"].strip()
    return StoreError(reason, status_code=response.status_code, error=error)


class CloudantStore:
    """Talk to a Cloudant account (or plain CouchDB) over its HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        iam_api_key: Optional[str] = None,
        iam_token_url: str = "https://iam.cloud.ibm.com/identity/token",
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cleaned = (base_url or "").strip().rstrip("/")
        if not cleaned:
            raise ValueError("Document store URL must not be empty")
        if page_size < 1:
            raise ValueError("page_size must be positive")

        auth: Optional[httpx.BasicAuth] = None
        if username and password and not iam_api_key:
            auth = httpx.BasicAuth(username, password)

        self._client = httpx.AsyncClient(
            base_url=cleaned,
            timeout=timeout,
            transport=transport,
            auth=auth,
            headers={"Accept": "application/json"},
        )
        self._tokens: Optional[IAMTokenProvider] = None
        if iam_api_key:
            self._tokens = IAMTokenProvider(iam_api_key, iam_token_url, self._client)
        self._page_size = page_size
        self.base_url = cleaned

    @classmethod
    def from_settings(
        cls,
        settings: StoreSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "CloudantStore":
        if not settings.url:
            raise ValueError("Set CLOUDANT_URL or CLOUDANT_ID to locate the document store")
        return cls(
            settings.url,
            iam_api_key=settings.iam_api_key,
            iam_token_url=settings.iam_token_url,
            username=settings.username,
            password=settings.password,
            timeout=settings.timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers: Dict[str, str] = dict(kwargs.pop("headers", {}) or {})
        if self._tokens is not None:
            try:
                headers["Authorization"] = await self._tokens.authorization_header()
            except IAMError as exc:
                raise StoreError(
                    str(exc),
                    status_code=exc.status_code,
                    error="unauthorized",
                ) from exc

        try:
            return await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise StoreError(f"Failed to contact document store: {exc}", error="unreachable") from exc

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(
                "Document store returned an invalid response",
                status_code=response.status_code,
                error="bad_response",
            ) from exc

    async def list_collections(self) -> List[str]:
        response = await self._request("GET", "/_all_dbs")
        if response.status_code >= 400:
            raise _error_from_response(response)
        payload = self._parse_json(response)
        if not isinstance(payload, list):
            raise StoreError("Database listing was not a list", status_code=response.status_code, error="bad_response")
        return [str(name) for name in payload]

    async def create_collection(self, name: str) -> None:
        response = await self._request("PUT", _db_path(name))
        if response.status_code == 412:
            logger.info("Database %s already exists", name)
            return
        if response.status_code >= 400:
            raise _error_from_response(response)

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Tuple[str, str]:
        response = await self._request("POST", _db_path(collection), json=dict(document))
        if response.status_code >= 400:
            raise _error_from_response(response)
        payload = self._parse_json(response)
        try:
            return str(payload["id"]), str(payload["rev"])
        except (KeyError, TypeError) as exc:
            raise StoreError(
                "Insert response was missing id or rev",
                status_code=response.status_code,
                error="bad_response",
            ) from exc

    async def query(self, collection: str, selector: Mapping[str, Any]) -> List[Dict[str, Any]]:
        body: Dict[str, Any] = {"selector": dict(selector), "limit": self._page_size}
        documents: List[Dict[str, Any]] = []
        seen_bookmarks = set()

        # _find answers in pages; follow the bookmark until a short page comes back.
        while True:
            response = await self._request("POST", _db_path(collection) + "/_find", json=body)
            if response.status_code >= 400:
                raise _error_from_response(response)
            payload = self._parse_json(response)
            if not isinstance(payload, dict) or not isinstance(payload.get("docs"), list):
                raise StoreError("Query response was missing docs", status_code=response.status_code, error="bad_response")

            page = payload["docs"]
            documents.extend(page)
            bookmark = payload.get("bookmark")
            if len(page) < self._page_size or not bookmark or bookmark in seen_bookmarks:
                break
            seen_bookmarks.add(bookmark)
            body["bookmark"] = bookmark

        return documents

    async def get_metadata(self, collection: str) -> Dict[str, Any]:
        response = await self._request("GET", _db_path(collection))
        if response.status_code >= 400:
            raise _error_from_response(response)
        payload = self._parse_json(response)
        if not isinstance(payload, dict):
            raise StoreError("Database metadata was not an object", status_code=response.status_code, error="bad_response")
        return payload

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["CloudantStore"]
