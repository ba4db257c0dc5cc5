"""
SQLite document store.

A single table holds every collection:

    documents(collection TEXT, key TEXT, body TEXT, updated_at REAL)

Each call opens its own connection, so the store is safe to use from the
worker threads asyncio.to_thread hands out.
"""

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path

from transferstate.exceptions import DecodeError, MediumUnavailableError
from transferstate.persistence.documents import Document, DocumentStore

logger = logging.getLogger(__name__)


class SqliteDocumentStore(DocumentStore):
    """DocumentStore backed by a single SQLite database file."""

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)
        self._schema_ready = False

    @property
    def description(self) -> str:
        return str(self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=FULL")
        if not self._schema_ready:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    key TEXT NOT NULL,
                    body TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, key)
                )
                """
            )
            conn.commit()
            self._schema_ready = True
        return conn

    @staticmethod
    def _decode(body: str, collection: str, key: str) -> Document:
        try:
            document = json.loads(body)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Corrupt document {collection}/{key}: {e}", key=key) from e
        if not isinstance(document, dict):
            raise DecodeError(f"Document {collection}/{key} is not a JSON object", key=key)
        return document

    def _write(self, collection: str, key: str, document: Document) -> None:
        body = json.dumps(document, ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO documents(collection, key, body, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(collection, key)
                DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
                """,
                (collection, key, body, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    def _read(self, collection: str, key: str) -> Document | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return self._decode(row[0], collection, key)

    def _read_all(self, collection: str) -> dict[str, Document]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT key, body FROM documents WHERE collection = ? ORDER BY key",
                (collection,),
            ).fetchall()
        finally:
            conn.close()

        documents: dict[str, Document] = {}
        for key, body in rows:
            try:
                documents[key] = self._decode(body, collection, key)
            except DecodeError as e:
                logger.warning(f"Skipping corrupt document {collection}/{key}: {e}")
        return documents

    def _remove(self, collection: str, key: str | None) -> None:
        conn = self._get_conn()
        try:
            if key is None:
                conn.execute("DELETE FROM documents WHERE collection = ?", (collection,))
            else:
                conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND key = ?",
                    (collection, key),
                )
            conn.commit()
        finally:
            conn.close()

    async def _run(self, operation: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            raise MediumUnavailableError(
                f"SQLite {operation} failed for {self._db_path}: {e}"
            ) from e
        except OSError as e:
            raise MediumUnavailableError(
                f"Cannot access {self._db_path} for {operation}: {e}"
            ) from e

    # ---- DocumentStore ----

    async def put(self, collection: str, key: str, document: Document) -> None:
        await self._run("put", self._write, collection, key, document)

    async def get(self, collection: str, key: str) -> Document | None:
        return await self._run("get", self._read, collection, key)

    async def get_all(self, collection: str) -> dict[str, Document]:
        return await self._run("get_all", self._read_all, collection)

    async def delete(self, collection: str, key: str) -> None:
        await self._run("delete", self._remove, collection, key)

    async def delete_all(self, collection: str) -> None:
        await self._run("delete_all", self._remove, collection, None)
