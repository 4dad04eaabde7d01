"""In-process document store used for local runs and tests.

``$regex`` conditions are evaluated with Python's ``re`` module. Cloudant evaluates
them with its own engine, so case folding of non-ASCII names under ``(?i)``
(accented letters in particular) and support for some pattern syntax may
differ from the real store.
"""

from __future__ import annotations

import copy
import re
import uuid
from typing import Any, Dict, List, Mapping, Tuple

from .store import StoreError


def _missing_collection(name: str) -> StoreError:
    return StoreError(f"Database {name} does not exist.", status_code=404, error="not_found")


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, Mapping):
        for operator, operand in condition.items():
            if operator == "$regex":
                if not isinstance(value, str) or re.search(str(operand), value) is None:
                    return False
            elif operator == "$eq":
                if value != operand:
                    return False
            else:
                raise StoreError(
                    f"Unsupported selector operator {operator!r}",
                    status_code=400,
                    error="invalid_operator",
                )
        return True
    return value == condition


def matches_selector(document: Mapping[str, Any], selector: Mapping[str, Any]) -> bool:
    """Evaluate the subset of Mango selectors the resource layer emits."""

    for field, condition in selector.items():
        if field not in document:
            return False
        if not _matches_condition(document[field], condition):
            return False
    return True


class MemoryStore:
    """Dictionary-backed implementation of :class:`~mobtrack.store.DocumentStore`."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def list_collections(self) -> List[str]:
        return sorted(self._collections)

    async def create_collection(self, name: str) -> None:
        if name in self._collections:
            raise StoreError(
                "The database could not be created, the file already exists.",
                status_code=412,
                error="file_exists",
            )
        self._collections[name] = {}

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Tuple[str, str]:
        documents = self._collections.get(collection)
        if documents is None:
            raise _missing_collection(collection)

        doc_id = str(document.get("_id") or uuid.uuid4().hex)
        if doc_id in documents:
            raise StoreError("Document update conflict.", status_code=409, error="conflict")

        revision = f"1-{uuid.uuid4().hex}"
        stored = copy.deepcopy(dict(document))
        stored["_id"] = doc_id
        stored["_rev"] = revision
        documents[doc_id] = stored
        return doc_id, revision

    async def query(self, collection: str, selector: Mapping[str, Any]) -> List[Dict[str, Any]]:
        documents = self._collections.get(collection)
        if documents is None:
            raise _missing_collection(collection)
        return [
            copy.deepcopy(document)
            for document in documents.values()
            if matches_selector(document, selector)
        ]

    async def get_metadata(self, collection: str) -> Dict[str, Any]:
        documents = self._collections.get(collection)
        if documents is None:
            raise _missing_collection(collection)
        return {"db_name": collection, "doc_count": len(documents), "doc_del_count": 0}

    async def close(self) -> None:
        return None


__all__ = ["MemoryStore", "matches_selector"]
