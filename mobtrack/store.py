"""Capability interface for the document store backing resource records."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple


class StoreError(RuntimeError):
    """Raised when the document store rejects or fails an operation."""

    def __init__(
        self,
        reason: str,
        *,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code
        self.error = error or "store_error"

    def to_dict(self) -> Dict[str, object]:
        return {"statusCode": self.status_code, "error": self.error, "reason": self.reason}


class StoreConnectionError(StoreError):
    """Raised when a handle to the document store cannot be established."""


class DocumentStore(Protocol):
    """Operations the persistence layer needs from a document database."""

    async def list_collections(self) -> List[str]:
        ...

    async def create_collection(self, name: str) -> None:
        ...

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Tuple[str, str]:
        """Insert ``document`` and return its ``(id, revision)`` pair."""
        ...

    async def query(self, collection: str, selector: Mapping[str, Any]) -> List[Dict[str, Any]]:
        ...

    async def get_metadata(self, collection: str) -> Dict[str, Any]:
        ...

    async def close(self) -> None:
        ...


__all__ = ["DocumentStore", "StoreConnectionError", "StoreError"]
