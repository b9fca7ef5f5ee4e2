"""Tests for familysync.adapters.memory_store — in-memory DocumentStorePort."""

import pytest

from familysync.data.models import Collection
from familysync.ports.document_store import PersistenceError


class TestMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_add_generates_id(self, memory_store):
        doc_id = await memory_store.add(Collection.MEALS, {"name": "Tacos"})
        assert doc_id
        assert memory_store.snapshot(Collection.MEALS) == [{"id": doc_id, "name": "Tacos"}]

    @pytest.mark.asyncio
    async def test_add_keeps_given_id(self, memory_store):
        assert await memory_store.add(Collection.MEMBERS, {"id": "member-dad", "name": "Dad"}) == "member-dad"

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, memory_store):
        await memory_store.add(Collection.MEMBERS, {"id": "m1", "name": "Dad"})
        with pytest.raises(PersistenceError):
            await memory_store.add(Collection.MEMBERS, {"id": "m1", "name": "Again"})

    @pytest.mark.asyncio
    async def test_update_merges(self, memory_store):
        doc_id = await memory_store.add(Collection.NOTES, {"title": "A", "pinned": False})
        await memory_store.update(Collection.NOTES, doc_id, {"pinned": True})
        assert memory_store.snapshot(Collection.NOTES) == [{"id": doc_id, "title": "A", "pinned": True}]

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, memory_store):
        with pytest.raises(PersistenceError):
            await memory_store.update(Collection.NOTES, "ghost", {"pinned": True})

    @pytest.mark.asyncio
    async def test_delete(self, memory_store):
        doc_id = await memory_store.add(Collection.BILLS, {"name": "Gas"})
        await memory_store.delete(Collection.BILLS, doc_id)
        assert memory_store.snapshot(Collection.BILLS) == []
        with pytest.raises(PersistenceError):
            await memory_store.delete(Collection.BILLS, doc_id)

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, memory_store):
        await memory_store.add(Collection.NOTES, {"id": "n1", "items": [{"id": "1", "text": "Milk"}]})
        memory_store.snapshot(Collection.NOTES)[0]["items"].append({"id": "2"})
        assert len(memory_store.snapshot(Collection.NOTES)[0]["items"]) == 1

    @pytest.mark.asyncio
    async def test_subscribe_pushes_initial_and_changes(self, memory_store):
        seen = []
        memory_store.subscribe(Collection.MEALS, seen.append)
        await memory_store.add(Collection.MEALS, {"id": "x", "name": "Soup"})
        assert seen == [[], [{"id": "x", "name": "Soup"}]]

    @pytest.mark.asyncio
    async def test_collections_are_isolated(self, memory_store):
        seen = []
        memory_store.subscribe(Collection.EVENTS, seen.append)
        await memory_store.add(Collection.MEALS, {"name": "Soup"})
        assert seen == [[]]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, memory_store):
        seen = []
        unsubscribe = memory_store.subscribe(Collection.MEALS, seen.append)
        unsubscribe()
        unsubscribe()
        await memory_store.add(Collection.MEALS, {"name": "Soup"})
        assert seen == [[]]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_write(self, memory_store):
        def broken(_items):
            raise RuntimeError("boom")

        memory_store.subscribe(Collection.MEALS, lambda items: None)
        memory_store._listeners[Collection.MEALS].append(broken)
        doc_id = await memory_store.add(Collection.MEALS, {"name": "Soup"})
        assert memory_store.snapshot(Collection.MEALS)[0]["id"] == doc_id
