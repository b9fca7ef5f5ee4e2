"""In-memory document store — implements DocumentStorePort.

Process-local stand-in for the browser's local storage. Useful for
tests and for running without a database.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any

from familysync.data.models import Collection
from familysync.ports.document_store import OnChange, PersistenceError, Unsubscribe

logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    """Dict-backed implementation of DocumentStorePort."""

    def __init__(self) -> None:
        self._data: dict[Collection, dict[str, dict]] = {c: {} for c in Collection}
        self._listeners: dict[Collection, list[OnChange]] = {c: [] for c in Collection}

    def snapshot(self, collection: Collection) -> list[dict]:
        """Copy of every document in a collection, in insertion order."""
        return [copy.deepcopy(doc) for doc in self._data[collection].values()]

    def subscribe(self, collection: Collection, on_change: OnChange) -> Unsubscribe:
        listeners = self._listeners[collection]
        listeners.append(on_change)
        on_change(self.snapshot(collection))

        def unsubscribe() -> None:
            if on_change in listeners:
                listeners.remove(on_change)

        return unsubscribe

    def _notify(self, collection: Collection) -> None:
        items = self.snapshot(collection)
        for listener in list(self._listeners[collection]):
            try:
                listener(items)
            except Exception as exc:
                logger.error("Listener on %s failed: %s", collection.value, exc)

    async def add(self, collection: Collection, doc: dict[str, Any]) -> str:
        doc_id = doc.get("id") or uuid.uuid4().hex
        if doc_id in self._data[collection]:
            raise PersistenceError(f"{collection.value}/{doc_id} already exists")
        self._data[collection][doc_id] = {**copy.deepcopy(doc), "id": doc_id}
        logger.debug("Added %s/%s", collection.value, doc_id)
        self._notify(collection)
        return doc_id

    async def update(self, collection: Collection, doc_id: str, partial: dict[str, Any]) -> None:
        current = self._data[collection].get(doc_id)
        if current is None:
            raise PersistenceError(f"{collection.value}/{doc_id} does not exist")
        current.update(copy.deepcopy(partial))
        current["id"] = doc_id
        logger.debug("Updated %s/%s", collection.value, doc_id)
        self._notify(collection)

    async def delete(self, collection: Collection, doc_id: str) -> None:
        if self._data[collection].pop(doc_id, None) is None:
            raise PersistenceError(f"{collection.value}/{doc_id} does not exist")
        logger.debug("Deleted %s/%s", collection.value, doc_id)
        self._notify(collection)
