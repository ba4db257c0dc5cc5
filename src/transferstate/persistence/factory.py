"""
Document store factory.

Selects the backing medium named by StoreSettings.
"""

from transferstate.config import SQLITE_FILENAME, StoreSettings
from transferstate.exceptions import ConfigurationError
from transferstate.persistence.documents import DocumentStore, MemoryDocumentStore
from transferstate.persistence.store import TaskStateStore


def create_document_store(settings: StoreSettings | None = None) -> DocumentStore:
    """Instantiate the configured document store backend."""
    settings = settings or StoreSettings.from_env()

    if settings.backend == "local":
        from transferstate.persistence.localstore import LocalDocumentStore

        return LocalDocumentStore(settings.path)

    if settings.backend == "sqlite":
        from transferstate.persistence.sqlite import SqliteDocumentStore

        path = settings.path
        if path.suffix not in (".db", ".sqlite", ".sqlite3"):
            path = path / SQLITE_FILENAME
        return SqliteDocumentStore(path)

    if settings.backend == "memory":
        return MemoryDocumentStore()

    raise ConfigurationError(
        f"Unsupported backend '{settings.backend}'. Supported values: local, sqlite or memory"
    )


async def open_task_state_store(settings: StoreSettings | None = None) -> TaskStateStore:
    """Create a TaskStateStore over the configured medium and run its migration."""
    store = TaskStateStore(create_document_store(settings))
    await store.initialize()
    return store
