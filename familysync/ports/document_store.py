"""Document store port — abstract interface for the persistence backend.

Core modules depend on this protocol, never on a specific backend. Reads
are push-based: a subscriber receives the whole collection after every
change. Writes are fire-and-forget; there are no transactions and the
last write wins.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol

from familysync.data.models import Collection

OnChange = Callable[[list[dict]], None]
Unsubscribe = Callable[[], None]


class PersistenceError(Exception):
    """Raised when the backend rejects a write."""


class DocumentStorePort(Protocol):
    """Abstract document store used by core modules."""

    def subscribe(self, collection: Collection, on_change: OnChange) -> Unsubscribe: ...

    async def add(self, collection: Collection, doc: dict[str, Any]) -> str: ...

    async def update(
        self, collection: Collection, doc_id: str, partial: dict[str, Any]
    ) -> None: ...

    async def delete(self, collection: Collection, doc_id: str) -> None: ...
