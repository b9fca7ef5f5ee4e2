"""Tests for the document store factory."""

import pytest
from unittest.mock import patch

from familysync.adapters.store_factory import create_document_store


class TestCreateDocumentStore:
    @patch("familysync.adapters.store_factory.settings")
    def test_returns_memory_store(self, mock_settings):
        mock_settings.STORE_PROVIDER = "memory"
        store = create_document_store()
        from familysync.adapters.memory_store import MemoryDocumentStore
        assert isinstance(store, MemoryDocumentStore)

    @patch("familysync.adapters.store_factory.settings")
    def test_returns_sqlite_store(self, mock_settings, tmp_path):
        mock_settings.STORE_PROVIDER = "sqlite"
        store = create_document_store(db_path=str(tmp_path / "f.db"))
        from familysync.adapters.sqlite_store import SQLiteDocumentStore
        assert isinstance(store, SQLiteDocumentStore)
        assert store._db_path == str(tmp_path / "f.db")

    @patch("familysync.adapters.store_factory.settings")
    def test_case_insensitive(self, mock_settings):
        mock_settings.STORE_PROVIDER = "Memory"
        from familysync.adapters.memory_store import MemoryDocumentStore
        assert isinstance(create_document_store(), MemoryDocumentStore)

    @patch("familysync.adapters.store_factory.settings")
    def test_unknown_provider_raises(self, mock_settings):
        mock_settings.STORE_PROVIDER = "firestore"
        with pytest.raises(ValueError, match="Unknown STORE_PROVIDER"):
            create_document_store()


class TestSettings:
    def test_provider_is_normalized(self):
        from familysync.config import Settings
        assert Settings(STORE_PROVIDER="  SQLite ").STORE_PROVIDER == "sqlite"
        assert Settings(STORE_PROVIDER="").STORE_PROVIDER == "memory"

    def test_numbers_parsed_from_strings(self):
        from familysync.config import Settings
        parsed = Settings(TIGHT_TRANSITION_MINUTES="20", UNDO_WINDOW_SECONDS="1.5")
        assert parsed.TIGHT_TRANSITION_MINUTES == 20
        assert parsed.UNDO_WINDOW_SECONDS == 1.5

    def test_load_settings_reads_environment(self, monkeypatch):
        from familysync.config import _load_settings
        monkeypatch.setenv("STORE_PROVIDER", "sqlite")
        monkeypatch.setenv("LONG_EVENT_HOURS", "8")
        loaded = _load_settings()
        assert loaded.STORE_PROVIDER == "sqlite"
        assert loaded.LONG_EVENT_HOURS == 8
