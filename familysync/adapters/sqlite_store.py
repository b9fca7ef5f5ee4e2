"""
FamilySync — SQLite Document Store.

Persistent implementation of DocumentStorePort: every document is a JSON
blob in one table, keyed by (collection, id). Subscribers get the whole
collection after each write, like the hosted store's snapshot listener.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from familysync.data.models import Collection
from familysync.ports.document_store import OnChange, PersistenceError, Unsubscribe

logger = logging.getLogger(__name__)


class SQLiteDocumentStore:
    """SQLite-backed storage for schemaless household documents."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from familysync.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[Collection, list[OnChange]] = {c: [] for c in Collection}
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the documents table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection  TEXT NOT NULL,
                    id          TEXT NOT NULL,
                    body        TEXT NOT NULL,
                    updated_at  TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """)
        logger.debug("Documents table initialized at %s", self._db_path)

    def snapshot(self, collection: Collection) -> list[dict]:
        """Every document in a collection, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? ORDER BY rowid",
                (collection.value,),
            ).fetchall()
        return [{**json.loads(row["body"]), "id": row["id"]} for row in rows]

    def subscribe(self, collection: Collection, on_change: OnChange) -> Unsubscribe:
        listeners = self._listeners[collection]
        listeners.append(on_change)
        on_change(self.snapshot(collection))

        def unsubscribe() -> None:
            if on_change in listeners:
                listeners.remove(on_change)

        return unsubscribe

    def _notify(self, collection: Collection) -> None:
        if not self._listeners[collection]:
            return
        items = self.snapshot(collection)
        for listener in list(self._listeners[collection]):
            try:
                listener(items)
            except Exception as exc:
                logger.error("Listener on %s failed: %s", collection.value, exc)

    async def add(self, collection: Collection, doc: dict[str, Any]) -> str:
        doc_id = doc.get("id") or uuid.uuid4().hex
        body = {k: v for k, v in doc.items() if k != "id"}
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO documents (collection, id, body, updated_at) VALUES (?, ?, ?, ?)",
                    (collection.value, doc_id, json.dumps(body), datetime.now().isoformat()),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to add {collection.value}/{doc_id}: {exc}") from exc
        logger.info("Document added: %s/%s", collection.value, doc_id)
        self._notify(collection)
        return doc_id

    async def update(self, collection: Collection, doc_id: str, partial: dict[str, Any]) -> None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND id = ?",
                    (collection.value, doc_id),
                ).fetchone()
                if row is None:
                    raise PersistenceError(f"{collection.value}/{doc_id} does not exist")
                body = json.loads(row["body"])
                body.update({k: v for k, v in partial.items() if k != "id"})
                conn.execute(
                    "UPDATE documents SET body = ?, updated_at = ? WHERE collection = ? AND id = ?",
                    (json.dumps(body), datetime.now().isoformat(), collection.value, doc_id),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to update {collection.value}/{doc_id}: {exc}") from exc
        logger.info("Document updated: %s/%s", collection.value, doc_id)
        self._notify(collection)

    async def delete(self, collection: Collection, doc_id: str) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    (collection.value, doc_id),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to delete {collection.value}/{doc_id}: {exc}") from exc
        if cursor.rowcount == 0:
            raise PersistenceError(f"{collection.value}/{doc_id} does not exist")
        logger.info("Document deleted: %s/%s", collection.value, doc_id)
        self._notify(collection)
