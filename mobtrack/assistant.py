"""Pass-through client for the Watson Assistant v2 API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import AssistantSettings
from .iam import IAMError, IAMTokenProvider

logger = logging.getLogger("mobtrack.assistant")


class AssistantError(RuntimeError):
    """Raised when the assistant service cannot satisfy a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> Dict[str, object]:
        return {"statusCode": self.status_code, "error": "assistant_error", "reason": str(self)}


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


class AssistantClient:
    """Open assistant sessions and relay chat messages."""

    def __init__(
        self,
        settings: AssistantSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(timeout=settings.timeout, transport=transport)
        self._tokens: Optional[IAMTokenProvider] = None
        if settings.api_key:
            self._tokens = IAMTokenProvider(settings.api_key, settings.iam_token_url, self._client)

    @property
    def configured(self) -> bool:
        return self._settings.configured and self._tokens is not None

    def _sessions_url(self) -> str:
        return f"{self._settings.url}/v2/assistants/{self._settings.assistant_id}/sessions"

    async def _post(self, url: str, payload: Dict[str, Any] | None = None) -> Dict[str, Any]:
        if not self.configured or self._tokens is None:
            raise AssistantError("Assistant credentials are not configured", status_code=503)

        try:
            authorization = await self._tokens.authorization_header()
        except IAMError as exc:
            raise AssistantError(str(exc), status_code=exc.status_code) from exc

        try:
            response = await self._client.post(
                url,
                params={"version": self._settings.version},
                json=payload if payload is not None else {},
                headers={"Authorization": authorization},
            )
        except httpx.RequestError as exc:
            logger.warning("Assistant request to %s failed: %s", url, exc)
            raise AssistantError(f"Failed to contact assistant service: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            message = _extract_error_message(
                data, f"Assistant request failed with status {response.status_code}"
            )
            raise AssistantError(message, status_code=response.status_code)

        if not isinstance(data, dict):
            raise AssistantError("Assistant returned an unexpected response payload", status_code=502)
        return data

    async def create_session(self) -> str:
        data = await self._post(self._sessions_url())
        session_id = data.get("session_id")
        if not isinstance(session_id, str) or not session_id:
            raise AssistantError("Assistant response did not include a session id", status_code=502)
        return session_id

    async def message(self, text: str, session_id: str) -> Dict[str, Any]:
        cleaned = (session_id or "").strip()
        if not cleaned:
            raise AssistantError("A session id must be provided", status_code=400)
        url = f"{self._sessions_url()}/{cleaned}/message"
        return await self._post(url, {"input": {"message_type": "text", "text": text or ""}})

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["AssistantClient", "AssistantError"]
