"""Backend for the mobile resource tracking app."""

from __future__ import annotations

from typing import Any

from .models import CreateResult, ResourceRecord, new_record_id
from .store import DocumentStore, StoreConnectionError, StoreError


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "CreateResult",
    "DocumentStore",
    "ResourceRecord",
    "StoreConnectionError",
    "StoreError",
    "create_app",
    "new_record_id",
]
