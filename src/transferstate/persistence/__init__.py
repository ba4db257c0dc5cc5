"""
Transferstate Persistence Module.

Durable task-state storage, document store adapters and schema migration.
"""

from transferstate.persistence.codec import RecordCodec
from transferstate.persistence.documents import DocumentStore, MemoryDocumentStore
from transferstate.persistence.factory import create_document_store, open_task_state_store
from transferstate.persistence.localstore import LocalDocumentStore
from transferstate.persistence.migration import (
    CURRENT_SCHEMA,
    LEGACY_SCHEMA,
    Migration,
    MigrationCoordinator,
    MigrationRegistry,
    SchemaIdentity,
    default_registry,
)
from transferstate.persistence.sqlite import SqliteDocumentStore
from transferstate.persistence.store import RecordCollection, TaskStateStore

__all__ = [
    "CURRENT_SCHEMA",
    "LEGACY_SCHEMA",
    "DocumentStore",
    "LocalDocumentStore",
    "MemoryDocumentStore",
    "Migration",
    "MigrationCoordinator",
    "MigrationRegistry",
    "RecordCodec",
    "RecordCollection",
    "SchemaIdentity",
    "SqliteDocumentStore",
    "TaskStateStore",
    "create_document_store",
    "default_registry",
    "open_task_state_store",
]
