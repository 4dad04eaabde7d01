"""Environment-driven configuration for the tracking service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_DB_NAME = "mobtrack_db"
DEFAULT_IAM_TOKEN_URL = "https://iam.cloud.ibm.com/identity/token"
DEFAULT_ASSISTANT_URL = "https://api.us-south.assistant.watson.cloud.ibm.com"
DEFAULT_ASSISTANT_VERSION = "2021-06-14"


class ConfigurationError(RuntimeError):
    """Raised when an environment variable holds an unusable value."""


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _env_int(name: str, default: int) -> int:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid integer value {value!r} for {name}") from exc


def _env_float(name: str, default: float) -> float:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid numeric value {value!r} for {name}") from exc


def _account_url(account: Optional[str]) -> Optional[str]:
    if not account:
        return None
    return f"https://{account}.cloudantnosqldb.appdomain.cloud"


@dataclass(frozen=True)
class StoreSettings:
    """Connection parameters for the Cloudant/CouchDB store."""

    url: Optional[str]
    db_name: str = DEFAULT_DB_NAME
    iam_api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    iam_token_url: str = DEFAULT_IAM_TOKEN_URL
    timeout: float = 30.0
    connect_attempts: int = 1
    connect_backoff: float = 1.0


@dataclass(frozen=True)
class AssistantSettings:
    """Credentials for the conversational assistant."""

    url: str = DEFAULT_ASSISTANT_URL
    api_key: Optional[str] = None
    assistant_id: Optional[str] = None
    version: str = DEFAULT_ASSISTANT_VERSION
    iam_token_url: str = DEFAULT_IAM_TOKEN_URL
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.assistant_id)


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000


def load_store_settings() -> StoreSettings:
    """Load store settings from ``CLOUDANT_*`` environment variables."""

    url = _env_str("CLOUDANT_URL") or _account_url(_env_str("CLOUDANT_ID"))
    attempts = _env_int("CLOUDANT_CONNECT_ATTEMPTS", 1)
    if attempts < 1:
        raise ConfigurationError("CLOUDANT_CONNECT_ATTEMPTS must be at least 1")

    return StoreSettings(
        url=url.rstrip("/") if url else None,
        db_name=_env_str("CLOUDANT_DB_NAME") or DEFAULT_DB_NAME,
        iam_api_key=_env_str("CLOUDANT_IAM_APIKEY"),
        username=_env_str("CLOUDANT_USERNAME"),
        password=_env_str("CLOUDANT_PASSWORD"),
        iam_token_url=_env_str("IAM_TOKEN_URL") or DEFAULT_IAM_TOKEN_URL,
        timeout=_env_float("CLOUDANT_TIMEOUT", 30.0),
        connect_attempts=attempts,
        connect_backoff=_env_float("CLOUDANT_CONNECT_BACKOFF", 1.0),
    )


def load_assistant_settings() -> AssistantSettings:
    """Load assistant settings from ``ASSISTANT_*`` environment variables."""

    url = _env_str("ASSISTANT_URL") or DEFAULT_ASSISTANT_URL
    return AssistantSettings(
        url=url.rstrip("/"),
        api_key=_env_str("ASSISTANT_IAM_APIKEY"),
        assistant_id=_env_str("ASSISTANT_ID"),
        version=_env_str("ASSISTANT_VERSION") or DEFAULT_ASSISTANT_VERSION,
        iam_token_url=_env_str("IAM_TOKEN_URL") or DEFAULT_IAM_TOKEN_URL,
        timeout=_env_float("ASSISTANT_TIMEOUT", 30.0),
    )


def load_server_settings() -> ServerSettings:
    return ServerSettings(
        host=_env_str("MOBTRACK_HOST") or "0.0.0.0",
        port=_env_int("PORT", 3000),
    )


__all__ = [
    "AssistantSettings",
    "ConfigurationError",
    "ServerSettings",
    "StoreSettings",
    "load_assistant_settings",
    "load_server_settings",
    "load_store_settings",
]
