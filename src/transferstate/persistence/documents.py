"""
Keyed Document Store - Storage medium abstraction.

Defines the contract every backing medium must satisfy so the task-state
store can run on files, SQLite, or memory interchangeably.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any

Document = dict[str, Any]


class DocumentStore(ABC):
    """
    Namespaced, flat key-value surface over JSON-like documents.

    Implementations must make `put` durable before it returns, and must not
    raise from `get`/`delete` for missing keys. Medium failures surface as
    MediumUnavailableError; an unreadable document surfaces as DecodeError
    from `get` and is skipped by `get_all`.
    """

    @abstractmethod
    async def put(self, collection: str, key: str, document: Document) -> None:
        """Write a document, replacing any existing one at the key."""

    @abstractmethod
    async def get(self, collection: str, key: str) -> Document | None:
        """Read a document, or None if the key does not exist."""

    @abstractmethod
    async def get_all(self, collection: str) -> dict[str, Document]:
        """Read every readable document in a collection, keyed by key."""

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None:
        """Remove a single document; no-op if absent."""

    @abstractmethod
    async def delete_all(self, collection: str) -> None:
        """Remove every document in a collection; no-op if empty."""

    async def close(self) -> None:
        """Release any underlying resources."""
        return

    @property
    def description(self) -> str:
        """Human-readable location of the medium."""
        return type(self).__name__


class MemoryDocumentStore(DocumentStore):
    """
    In-process store backed by nested dicts.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = {}

    async def put(self, collection: str, key: str, document: Document) -> None:
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(document)

    async def get(self, collection: str, key: str) -> Document | None:
        document = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(document) if document is not None else None

    async def get_all(self, collection: str) -> dict[str, Document]:
        return copy.deepcopy(self._collections.get(collection, {}))

    async def delete(self, collection: str, key: str) -> None:
        self._collections.get(collection, {}).pop(key, None)

    async def delete_all(self, collection: str) -> None:
        self._collections.pop(collection, None)

    @property
    def description(self) -> str:
        return "memory"
