"""Domain models for tracked resources."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


def new_record_id() -> str:
    """Return a fresh random 128-bit identifier for a resource record."""

    return str(uuid.uuid4())


def current_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ResourceRecord:
    """A resource reported by a mobile client."""

    id: str
    name: str
    contact: str
    created_at: int
    description: str = ""
    location: str = ""
    user_id: str = ""
    transaction_type: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "contact": self.contact,
            "userID": self.user_id,
            "transactionType": self.transaction_type,
            "createdAt": self.created_at,
        }

    def to_json(self) -> Dict[str, Any]:
        document = self.to_document()
        document.pop("_id")
        return document

    @staticmethod
    def from_document(document: Mapping[str, Any]) -> "ResourceRecord":
        record_id = document.get("id") or document.get("_id")
        if not record_id:
            raise ValueError("Stored document is missing an identifier")
        created_at = document.get("createdAt")
        return ResourceRecord(
            id=str(record_id),
            name=str(document.get("name") or ""),
            contact=str(document.get("contact") or ""),
            created_at=int(created_at) if created_at is not None else 0,
            description=str(document.get("description") or ""),
            location=str(document.get("location") or ""),
            user_id=str(document.get("userID") or ""),
            transaction_type=document.get("transactionType"),
        )


@dataclass(frozen=True)
class CreateResult:
    """Outcome of inserting a new resource record."""

    created_id: str
    created_revision: str
    status_code: int = 201

    def to_json(self) -> Dict[str, str]:
        return {"createdId": self.created_id, "createdRevision": self.created_revision}


__all__ = ["CreateResult", "ResourceRecord", "current_millis", "new_record_id"]
