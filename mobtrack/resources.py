"""Create and query resource records through an established store handle."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from .connection import StoreHandle
from .models import CreateResult, ResourceRecord, current_millis, new_record_id
from .store import StoreError

logger = logging.getLogger("mobtrack.resources")


class ResourceValidationError(ValueError):
    """Raised when a resource is missing one of its required fields."""


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_resource_input(name: Optional[str], contact: Optional[str]) -> None:
    if not _clean(name):
        raise ResourceValidationError("Name of associate must be provided")
    if not _clean(contact):
        raise ResourceValidationError("A method of contact must be provided")


def build_selector(
    partial_name: Optional[str] = None,
    transaction_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Translate the optional filters into a Mango selector.

    ``partial_name`` becomes a case-insensitive, unanchored regular expression
    with its metacharacters escaped; ``transaction_type`` is an exact match.
    """

    selector: Dict[str, Any] = {}
    if partial_name:
        selector["name"] = {"$regex": f"(?i).*{re.escape(partial_name)}.*"}
    if transaction_type:
        selector["transactionType"] = transaction_type
    return selector


class ResourceStore:
    """Typed access to resource records."""

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def create(
        self,
        name: str,
        description: Optional[str] = "",
        location: Optional[str] = "",
        contact: str = "",
        user_id: Optional[str] = "",
        transaction_type: Optional[str] = None,
    ) -> CreateResult:
        validate_resource_input(name, contact)

        record = ResourceRecord(
            id=new_record_id(),
            name=name.strip(),
            contact=contact.strip(),
            created_at=current_millis(),
            description=description or "",
            location=location or "",
            user_id=user_id or "",
            transaction_type=transaction_type or None,
        )
        try:
            created_id, revision = await self._handle.insert(record.to_document())
        except StoreError as exc:
            logger.error("Failed to create resource %s: %s", record.id, exc)
            raise

        logger.info("Created resource %s", created_id)
        return CreateResult(created_id=created_id, created_revision=revision)

    async def find(
        self,
        partial_name: Optional[str] = None,
        transaction_type: Optional[str] = None,
    ) -> List[ResourceRecord]:
        selector = build_selector(partial_name, transaction_type)
        try:
            documents = await self._handle.query(selector)
        except StoreError as exc:
            logger.error("Resource query %s failed: %s", selector, exc)
            raise
        return [ResourceRecord.from_document(document) for document in documents]

    async def info(self) -> Dict[str, Any]:
        return await self._handle.info()


__all__ = [
    "ResourceStore",
    "ResourceValidationError",
    "build_selector",
    "validate_resource_input",
]
