"""
Local file document store.

One directory per collection, one JSON file per document:

    <root>/<collection>/<key>.json

Keys that cannot be used as a file name (control characters, path
separators, names longer than the filesystem allows) are stored as
~<sha256>.json instead, and that file records the original key:

    {"key": "<key>", "document": {...}}

Writes land in a temp file beside the target, are fsynced, then atomically
replace the target, so a crash leaves either the old or the new document.
"""

import asyncio
import contextlib
import hashlib
import json
import logging
import os
import re
import shutil
import tempfile
from collections import Counter
from collections.abc import AsyncIterator
from pathlib import Path

from transferstate.exceptions import DecodeError, MediumUnavailableError
from transferstate.persistence.documents import Document, DocumentStore

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".json"
HASHED_PREFIX = "~"
MAX_NAME_BYTES = 255

_UNSAFE_NAME = re.compile(r"[\x00-\x1f\x7f/\\]")


def document_file_name(key: str) -> str:
    """File name a document key is stored under."""
    name = f"{key}{DOCUMENT_SUFFIX}"
    try:
        size = len(name.encode("utf-8"))
    except UnicodeEncodeError:
        size = MAX_NAME_BYTES + 1
    usable = not key.startswith(HASHED_PREFIX) and not _UNSAFE_NAME.search(key)
    if usable and size <= MAX_NAME_BYTES:
        return name
    digest = hashlib.sha256(key.encode("utf-8", "surrogatepass")).hexdigest()
    return f"{HASHED_PREFIX}{digest}{DOCUMENT_SUFFIX}"


class LocalDocumentStore(DocumentStore):
    """File-based DocumentStore rooted at a directory."""

    def __init__(self, root: Path | str):
        self._root = Path(root)
        # Per-key locks exist only while someone holds or waits on them
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Counter[tuple[str, str]] = Counter()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def description(self) -> str:
        return str(self._root)

    def _collection_dir(self, collection: str) -> Path:
        return self._root / collection

    def _document_path(self, collection: str, key: str) -> Path:
        # Suffix keeps '', '.' and '..' usable as file names
        return self._collection_dir(collection) / document_file_name(key)

    @contextlib.asynccontextmanager
    async def _key_lock(self, collection: str, key: str) -> AsyncIterator[None]:
        slot = (collection, key)
        lock = self._locks.setdefault(slot, asyncio.Lock())
        self._lock_users[slot] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[slot] -= 1
            if not self._lock_users[slot]:
                del self._lock_users[slot]
                del self._locks[slot]

    # ---- blocking helpers (run in a worker thread) ----

    def _write(self, collection: str, key: str, document: Document) -> None:
        directory = self._collection_dir(collection)
        directory.mkdir(parents=True, exist_ok=True)
        path = self._document_path(collection, key)
        if path.name.startswith(HASHED_PREFIX):
            document = {"key": key, "document": document}
        payload = json.dumps(document, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
        self._sync_directory(directory)

    @staticmethod
    def _sync_directory(directory: Path) -> None:
        # Not supported on every platform; the replace itself is still atomic.
        with contextlib.suppress(OSError):
            fd = os.open(directory, os.O_RDONLY)
            try:
                os.fsync(fd)
            finally:
                os.close(fd)

    @staticmethod
    def _load(path: Path, key: str) -> tuple[str, Document] | None:
        """Read one file, returning (key, document) or None if it does not exist."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            document = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Corrupt document at {path}: {e}", key=key) from e
        if path.name.startswith(HASHED_PREFIX):
            if not isinstance(document, dict) or not isinstance(document.get("key"), str):
                raise DecodeError(f"Document at {path} does not record its key", key=key)
            key, document = document["key"], document.get("document")
        if not isinstance(document, dict):
            raise DecodeError(f"Document at {path} is not a JSON object", key=key)
        return key, document

    def _read(self, collection: str, key: str) -> Document | None:
        loaded = self._load(self._document_path(collection, key), key)
        if loaded is None or loaded[0] != key:
            return None
        return loaded[1]

    def _read_all(self, collection: str) -> dict[str, Document]:
        directory = self._collection_dir(collection)
        if not directory.is_dir():
            return {}

        documents: dict[str, Document] = {}
        for path in sorted(directory.iterdir()):
            if path.name.startswith(".") and path.suffix == ".tmp":
                continue
            if not path.name.endswith(DOCUMENT_SUFFIX):
                continue
            name = path.name[: -len(DOCUMENT_SUFFIX)]
            try:
                loaded = self._load(path, name)
            except DecodeError as e:
                logger.warning(f"Skipping corrupt document {collection}/{name}: {e}")
                continue
            if loaded is not None:
                key, document = loaded
                documents[key] = document
        return documents

    def _remove(self, collection: str, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._document_path(collection, key).unlink()

    def _remove_all(self, collection: str) -> None:
        directory = self._collection_dir(collection)
        if directory.exists():
            shutil.rmtree(directory)

    # ---- DocumentStore ----

    async def put(self, collection: str, key: str, document: Document) -> None:
        async with self._key_lock(collection, key):
            try:
                await asyncio.to_thread(self._write, collection, key, document)
            except (OSError, ValueError) as e:
                raise MediumUnavailableError(
                    f"Cannot write {collection}/{key!r} under {self._root}: {e}"
                ) from e

    async def get(self, collection: str, key: str) -> Document | None:
        try:
            return await asyncio.to_thread(self._read, collection, key)
        except (OSError, ValueError) as e:
            raise MediumUnavailableError(
                f"Cannot read {collection}/{key!r} under {self._root}: {e}"
            ) from e

    async def get_all(self, collection: str) -> dict[str, Document]:
        try:
            return await asyncio.to_thread(self._read_all, collection)
        except (OSError, ValueError) as e:
            raise MediumUnavailableError(
                f"Cannot list {collection} under {self._root}: {e}"
            ) from e

    async def delete(self, collection: str, key: str) -> None:
        async with self._key_lock(collection, key):
            try:
                await asyncio.to_thread(self._remove, collection, key)
            except (OSError, ValueError) as e:
                raise MediumUnavailableError(
                    f"Cannot delete {collection}/{key!r} under {self._root}: {e}"
                ) from e

    async def delete_all(self, collection: str) -> None:
        try:
            await asyncio.to_thread(self._remove_all, collection)
        except (OSError, ValueError) as e:
            raise MediumUnavailableError(
                f"Cannot delete collection {collection} under {self._root}: {e}"
            ) from e
