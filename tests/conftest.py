"""Shared test fixtures and configuration.

Sets environment variables before any familysync import so the settings
singleton is deterministic, and provides stores and a wired-up service.
"""

import os

# Patch env vars BEFORE any familysync imports
os.environ.setdefault("STORE_PROVIDER", "memory")
os.environ.setdefault("DATABASE_PATH", "data/test_familysync.db")
os.environ.setdefault("TIGHT_TRANSITION_MINUTES", "15")
os.environ.setdefault("LONG_EVENT_HOURS", "12")
os.environ.setdefault("UNDO_WINDOW_SECONDS", "30")

from datetime import datetime

import pytest


FIXED_NOW = datetime(2024, 1, 15, 9, 0)


@pytest.fixture
def memory_store():
    """Return an empty in-memory document store."""
    from familysync.adapters.memory_store import MemoryDocumentStore
    return MemoryDocumentStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """Return a SQLiteDocumentStore backed by a temp file."""
    from familysync.adapters.sqlite_store import SQLiteDocumentStore
    return SQLiteDocumentStore(db_path=str(tmp_path / "test_documents.db"))


@pytest.fixture
def store(memory_store):
    """Return a Store mirroring the in-memory document store."""
    from familysync.core.store import Store, bind_document_store
    household = Store()
    bind_document_store(household, memory_store)
    return household


@pytest.fixture
def service(store, memory_store):
    """Return an ActionService with a fixed clock and a zero undo window."""
    from familysync.core.action_service import ActionService
    return ActionService(
        store, memory_store, undo_window_seconds=0, clock=lambda: FIXED_NOW,
    )

