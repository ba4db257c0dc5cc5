"""
Transferstate - Durable task state for background transfers.

Persists task records, paused tasks, modified tasks and resume data so a
transfer manager can recover in-flight work after a restart.

Usage:
    from transferstate import LocalDocumentStore, TaskStateStore

    async with TaskStateStore(LocalDocumentStore("~/.transferstate")) as store:
        await store.store_task_record(record)
        paused = await store.retrieve_all_paused_tasks()
"""

__version__ = "0.1.0"

from transferstate.exceptions import (
    ConfigurationError,
    DecodeError,
    MediumUnavailableError,
    MigrationError,
    TransferStateError,
)
from transferstate.logging import logger, setup_logging
from transferstate.models import ResumeData, Task, TaskException, TaskRecord, TaskStatus, TaskType
from transferstate.persistence import (
    DocumentStore,
    LocalDocumentStore,
    MemoryDocumentStore,
    Migration,
    MigrationRegistry,
    SchemaIdentity,
    SqliteDocumentStore,
    TaskStateStore,
    open_task_state_store,
)

__all__ = [
    "__version__",
    "TaskStateStore",
    "DocumentStore",
    "LocalDocumentStore",
    "MemoryDocumentStore",
    "SqliteDocumentStore",
    "Migration",
    "MigrationRegistry",
    "SchemaIdentity",
    "open_task_state_store",
    "Task",
    "TaskRecord",
    "TaskStatus",
    "TaskType",
    "TaskException",
    "ResumeData",
    "TransferStateError",
    "ConfigurationError",
    "DecodeError",
    "MediumUnavailableError",
    "MigrationError",
    "setup_logging",
    "logger",
]
