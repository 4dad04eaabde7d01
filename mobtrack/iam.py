"""IBM Cloud IAM API-key to bearer-token exchange."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

logger = logging.getLogger("mobtrack.iam")

_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"
_REFRESH_MARGIN_SECONDS = 60


class IAMError(RuntimeError):
    """Raised when an IAM access token cannot be obtained."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IAMTokenProvider:
    """Exchange an API key for an access token and cache it until near expiry."""

    def __init__(
        self,
        api_key: str,
        token_url: str,
        client: httpx.AsyncClient,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        cleaned = (api_key or "").strip()
        if not cleaned:
            raise ValueError("IAM API key must not be empty")
        self._api_key = cleaned
        self._token_url = token_url
        self._client = client
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    def _token_is_fresh(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at - _REFRESH_MARGIN_SECONDS

    async def _request_token(self) -> None:
        try:
            response = await self._client.post(
                self._token_url,
                data={"grant_type": _GRANT_TYPE, "apikey": self._api_key},
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as exc:
            raise IAMError(f"Failed to contact IAM token service: {exc}") from exc

        if response.status_code >= 400:
            raise IAMError(
                f"IAM token request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        now = self._clock()
        try:
            payload = response.json()
            token = str(payload["access_token"])
            expiration = payload.get("expiration")
            if isinstance(expiration, (int, float)):
                expires_at = float(expiration)
            else:
                expires_at = now + float(payload.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise IAMError("IAM token service returned an invalid response") from exc

        self._expires_at = expires_at
        self._token = token
        logger.debug("Obtained IAM access token valid for %.0f seconds", self._expires_at - now)

    async def authorization_header(self) -> str:
        if not self._token_is_fresh():
            await self._request_token()
        return f"Bearer {self._token}"


__all__ = ["IAMError", "IAMTokenProvider"]
