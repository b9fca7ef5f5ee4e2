"""Document store factory — creates the right adapter based on config."""

from __future__ import annotations

from familysync.config import settings
from familysync.ports.document_store import DocumentStorePort


def create_document_store(db_path: str | None = None) -> DocumentStorePort:
    """Return the document store matching the STORE_PROVIDER setting.

    Args:
        db_path: Overrides DATABASE_PATH for the sqlite provider.
    """
    provider = settings.STORE_PROVIDER.lower()

    if provider == "memory":
        from familysync.adapters.memory_store import MemoryDocumentStore

        return MemoryDocumentStore()

    if provider == "sqlite":
        from familysync.adapters.sqlite_store import SQLiteDocumentStore

        return SQLiteDocumentStore(db_path=db_path)

    raise ValueError(f"Unknown STORE_PROVIDER: {provider!r}")
