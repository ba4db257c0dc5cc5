"""
Persistent Task-State Store - Durable record of transfer task state.

Composes the record codec and a DocumentStore into four independently keyed
collections:

- task records, keyed by task id
- paused tasks, keyed by task id
- modified tasks, keyed by task id
- resume data, keyed by task id

Every operation waits for the one-time migration barrier before touching
the medium.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from pydantic import BaseModel

from transferstate.config import (
    MODIFIED_TASKS_COLLECTION,
    PAUSED_TASKS_COLLECTION,
    RESUME_DATA_COLLECTION,
    TASK_RECORDS_COLLECTION,
)
from transferstate.exceptions import DecodeError, MediumUnavailableError
from transferstate.logging import StoreLogger
from transferstate.models import ResumeData, Task, TaskRecord
from transferstate.persistence.codec import RecordCodec
from transferstate.persistence.documents import DocumentStore
from transferstate.persistence.migration import (
    CURRENT_SCHEMA,
    MigrationCoordinator,
    MigrationRegistry,
    SchemaIdentity,
    default_registry,
)
from transferstate.utils.keys import optional_safe_key, safe_key

store_logger = StoreLogger("transferstate.persistence.store")

M = TypeVar("M", bound=BaseModel)


class RecordCollection(Generic[M]):
    """
    Typed store/retrieve/remove surface over one collection.

    The same class serves all four categories; only the collection name,
    codec and key function differ.
    """

    def __init__(
        self,
        documents: DocumentStore,
        name: str,
        codec: RecordCodec[M],
        key_of: Callable[[M], str],
        ready: Callable[[], Awaitable[None]],
    ):
        self._documents = documents
        self._name = name
        self._codec = codec
        self._key_of = key_of
        self._ready = ready

    @property
    def name(self) -> str:
        return self._name

    @property
    def codec(self) -> RecordCodec[M]:
        return self._codec

    async def store(self, entity: M) -> bool:
        """
        Upsert an entity under its sanitized task id.

        Returns:
            True if the write is durable, False if the medium is unavailable
        """
        await self._ready()
        key = safe_key(self._key_of(entity))
        document = self._codec.to_document(entity)
        try:
            await self._documents.put(self._name, key, document)
        except MediumUnavailableError as e:
            store_logger.error(f"Could not store {self._name}/{key}: {e}")
            return False
        store_logger.stored(self._name, key)
        return True

    async def retrieve(self, task_id: str) -> M | None:
        """
        Return the entity stored for task_id, or None.

        Raises:
            DecodeError: If the stored document is corrupt
            MediumUnavailableError: If the medium cannot be read
        """
        await self._ready()
        key = safe_key(task_id)
        document = await self._documents.get(self._name, key)
        if document is None:
            return None
        return self._codec.from_document(document, key=key)

    async def retrieve_all(self) -> list[M]:
        """Return every decodable entity; corrupt documents are logged and skipped."""
        await self._ready()
        documents = await self._documents.get_all(self._name)
        entities: list[M] = []
        for key, document in documents.items():
            try:
                entities.append(self._codec.from_document(document, key=key))
            except DecodeError as e:
                store_logger.anomaly(self._name, key, f"skipped as unreadable: {e}")
        return entities

    async def remove(self, task_id: str | None = None) -> None:
        """Remove the entity for task_id, or every entity if task_id is None."""
        await self._ready()
        key = optional_safe_key(task_id)
        if key is None:
            await self._documents.delete_all(self._name)
        else:
            await self._documents.delete(self._name, key)
        store_logger.removed(self._name, key)

    async def count(self) -> int:
        await self._ready()
        return len(await self._documents.get_all(self._name))


class TaskStateStore:
    """
    Durable task-state store for a background transfer manager.

    Usage:
        async with TaskStateStore(LocalDocumentStore(path)) as store:
            await store.store_task_record(record)
            record = await store.retrieve_task_record(record.task_id)
    """

    def __init__(
        self,
        documents: DocumentStore,
        registry: MigrationRegistry | None = None,
    ):
        self._documents = documents
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._migration_ok = False

        self.task_records: RecordCollection[TaskRecord] = RecordCollection(
            documents, TASK_RECORDS_COLLECTION, RecordCodec(TaskRecord),
            lambda record: record.task_id, self._ready,
        )
        self.paused_tasks: RecordCollection[Task] = RecordCollection(
            documents, PAUSED_TASKS_COLLECTION, RecordCodec(Task),
            lambda task: task.task_id, self._ready,
        )
        self.modified_tasks: RecordCollection[Task] = RecordCollection(
            documents, MODIFIED_TASKS_COLLECTION, RecordCodec(Task),
            lambda task: task.task_id, self._ready,
        )
        self.resume_data: RecordCollection[ResumeData] = RecordCollection(
            documents, RESUME_DATA_COLLECTION, RecordCodec(ResumeData),
            lambda data: data.task_id, self._ready,
        )

        self._coordinator = MigrationCoordinator(
            documents,
            {c.name: c.codec for c in self.collections},
            registry if registry is not None else default_registry(),
            CURRENT_SCHEMA,
        )

    @property
    def collections(self) -> list[RecordCollection]:
        return [self.task_records, self.paused_tasks, self.modified_tasks, self.resume_data]

    @property
    def documents(self) -> DocumentStore:
        return self._documents

    # ---- initialization barrier ----

    async def initialize(self) -> bool:
        """
        Run the one-time schema migration.

        Returns:
            True if the stored schema is (now) current. False means the store
            runs in degraded mode, reading unmigrated documents best-effort.
        """
        async with self._init_lock:
            if self._initialized:
                return self._migration_ok
            self._migration_ok = await self._coordinator.run()
            self._initialized = True
            if not self._migration_ok:
                store_logger.warning(
                    f"Store at {self._documents.description} is running in degraded mode"
                )
            return self._migration_ok

    async def _ready(self) -> None:
        if not self._initialized:
            await self.initialize()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_degraded(self) -> bool:
        return self._initialized and not self._migration_ok

    # ---- schema identity ----

    @property
    def current_schema_identity(self) -> SchemaIdentity:
        return self._coordinator.current

    async def stored_schema_identity(self) -> SchemaIdentity:
        return await self._coordinator.stored_identity()

    async def migrate(self, source: SchemaIdentity) -> bool:
        """Migrate documents from source to the current schema identity."""
        await self._ready()
        result = await self._coordinator.migrate(source)
        if result and source != self.current_schema_identity:
            self._migration_ok = True
        return result

    # ---- task records ----

    async def store_task_record(self, record: TaskRecord) -> bool:
        return await self.task_records.store(record)

    async def retrieve_task_record(self, task_id: str) -> TaskRecord | None:
        return await self.task_records.retrieve(task_id)

    async def retrieve_all_task_records(self) -> list[TaskRecord]:
        return await self.task_records.retrieve_all()

    async def remove_task_record(self, task_id: str | None = None) -> None:
        await self.task_records.remove(task_id)

    # ---- paused tasks ----

    async def store_paused_task(self, task: Task) -> bool:
        return await self.paused_tasks.store(task)

    async def retrieve_paused_task(self, task_id: str) -> Task | None:
        return await self.paused_tasks.retrieve(task_id)

    async def retrieve_all_paused_tasks(self) -> list[Task]:
        return await self.paused_tasks.retrieve_all()

    async def remove_paused_task(self, task_id: str | None = None) -> None:
        await self.paused_tasks.remove(task_id)

    # ---- modified tasks ----

    async def store_modified_task(self, task: Task) -> bool:
        return await self.modified_tasks.store(task)

    async def retrieve_modified_task(self, task_id: str) -> Task | None:
        return await self.modified_tasks.retrieve(task_id)

    async def retrieve_all_modified_tasks(self) -> list[Task]:
        return await self.modified_tasks.retrieve_all()

    async def remove_modified_task(self, task_id: str | None = None) -> None:
        await self.modified_tasks.remove(task_id)

    # ---- resume data ----

    async def store_resume_data(self, resume_data: ResumeData) -> bool:
        return await self.resume_data.store(resume_data)

    async def retrieve_resume_data(self, task_id: str) -> ResumeData | None:
        return await self.resume_data.retrieve(task_id)

    async def retrieve_all_resume_data(self) -> list[ResumeData]:
        return await self.resume_data.retrieve_all()

    async def remove_resume_data(self, task_id: str | None = None) -> None:
        await self.resume_data.remove(task_id)

    # ---- housekeeping ----

    async def purge_final_task_records(self) -> int:
        """Remove task records whose status is final. Returns the number removed."""
        removed = 0
        for record in await self.task_records.retrieve_all():
            if record.status.is_final:
                await self.task_records.remove(record.task_id)
                removed += 1
        if removed:
            store_logger.info(f"Purged {removed} final task record(s)")
        return removed

    async def summary(self) -> dict[str, int]:
        """Number of stored documents per collection."""
        return {c.name: await c.count() for c in self.collections}

    async def close(self) -> None:
        await self._documents.close()

    async def __aenter__(self) -> "TaskStateStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
