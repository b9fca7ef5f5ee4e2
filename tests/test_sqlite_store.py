"""Tests for familysync.adapters.sqlite_store — persistent DocumentStorePort."""

import pytest

from familysync.adapters.sqlite_store import SQLiteDocumentStore
from familysync.data.models import Collection
from familysync.ports.document_store import PersistenceError


class TestSQLiteDocumentStore:
    @pytest.mark.asyncio
    async def test_add_and_snapshot(self, sqlite_store):
        first = await sqlite_store.add(Collection.MEALS, {"name": "Tacos", "tags": ["quick"]})
        second = await sqlite_store.add(Collection.MEALS, {"id": "soup", "name": "Soup"})
        assert second == "soup"
        assert sqlite_store.snapshot(Collection.MEALS) == [
            {"id": first, "name": "Tacos", "tags": ["quick"]},
            {"id": "soup", "name": "Soup"},
        ]

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, sqlite_store):
        await sqlite_store.add(Collection.MEMBERS, {"id": "m1", "name": "Dad"})
        with pytest.raises(PersistenceError):
            await sqlite_store.add(Collection.MEMBERS, {"id": "m1", "name": "Again"})

    @pytest.mark.asyncio
    async def test_same_id_in_different_collections(self, sqlite_store):
        await sqlite_store.add(Collection.MEMBERS, {"id": "x", "name": "Dad"})
        await sqlite_store.add(Collection.NOTES, {"id": "x", "title": "Note"})
        assert sqlite_store.snapshot(Collection.NOTES) == [{"id": "x", "title": "Note"}]

    @pytest.mark.asyncio
    async def test_update_merges(self, sqlite_store):
        doc_id = await sqlite_store.add(Collection.EVENTS, {"title": "A", "deleted_at": None})
        await sqlite_store.update(Collection.EVENTS, doc_id, {"deleted_at": "2024-01-15T09:00:00"})
        assert sqlite_store.snapshot(Collection.EVENTS) == [
            {"id": doc_id, "title": "A", "deleted_at": "2024-01-15T09:00:00"}
        ]

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, sqlite_store):
        with pytest.raises(PersistenceError):
            await sqlite_store.update(Collection.EVENTS, "ghost", {"title": "B"})

    @pytest.mark.asyncio
    async def test_delete(self, sqlite_store):
        doc_id = await sqlite_store.add(Collection.BILLS, {"name": "Gas"})
        await sqlite_store.delete(Collection.BILLS, doc_id)
        assert sqlite_store.snapshot(Collection.BILLS) == []
        with pytest.raises(PersistenceError):
            await sqlite_store.delete(Collection.BILLS, doc_id)

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "family.db")
        doc_id = await SQLiteDocumentStore(db_path=path).add(Collection.NOTES, {"title": "Keep"})
        reopened = SQLiteDocumentStore(db_path=path)
        assert reopened.snapshot(Collection.NOTES) == [{"id": doc_id, "title": "Keep"}]

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "family.db"
        SQLiteDocumentStore(db_path=str(path))
        assert path.exists()

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self, sqlite_store):
        seen = []
        unsubscribe = sqlite_store.subscribe(Collection.MEALS, seen.append)
        await sqlite_store.add(Collection.MEALS, {"id": "a", "name": "Soup"})
        unsubscribe()
        await sqlite_store.add(Collection.MEALS, {"id": "b", "name": "Salad"})
        assert seen == [[], [{"id": "a", "name": "Soup"}]]
