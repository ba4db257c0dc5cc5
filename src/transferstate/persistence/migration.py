"""
Schema migration for the task-state store.

Historical schema shapes are registered as data: each Migration maps one
SchemaIdentity to the next and carries per-collection document transforms.
The coordinator only orchestrates (read stored identity, resolve the chain,
transform, write, verify, stamp); it knows nothing about specific versions.
"""

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from transferstate.config import (
    LEGACY_SCHEMA_NAME,
    METADATA_COLLECTION,
    METADATA_KEY,
    MODIFIED_TASKS_COLLECTION,
    PAUSED_TASKS_COLLECTION,
    RESUME_DATA_COLLECTION,
    SCHEMA_NAME,
    SCHEMA_VERSION,
    TASK_RECORDS_COLLECTION,
)
from transferstate.exceptions import (
    DecodeError,
    MediumUnavailableError,
    MigrationError,
)
from transferstate.logging import StoreLogger
from transferstate.models import TaskStatus
from transferstate.persistence.codec import RecordCodec
from transferstate.persistence.documents import Document, DocumentStore

logger = logging.getLogger(__name__)
store_logger = StoreLogger("transferstate.persistence.migration")

DocumentTransform = Callable[[Document], Document]


@dataclass(frozen=True)
class SchemaIdentity:
    """Name and version of a stored document shape."""

    name: str
    version: int

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"

    def to_document(self) -> Document:
        return {"name": self.name, "version": self.version}


CURRENT_SCHEMA = SchemaIdentity(SCHEMA_NAME, SCHEMA_VERSION)
LEGACY_SCHEMA = SchemaIdentity(LEGACY_SCHEMA_NAME, 0)


@dataclass(frozen=True)
class Migration:
    """
    One step from a source schema to a target schema.

    transforms maps a (target) collection name to a function that rewrites a
    single document; collections without a transform are copied unchanged.
    renamed_collections maps a collection name used by the source schema to
    the name the target schema uses.
    """

    source: SchemaIdentity
    target: SchemaIdentity
    transforms: Mapping[str, DocumentTransform] = field(default_factory=dict)
    renamed_collections: Mapping[str, str] = field(default_factory=dict)
    description: str = ""

    def apply(self, collection: str, document: Document) -> Document:
        transform = self.transforms.get(collection)
        if transform is None:
            return document
        return transform(copy.deepcopy(document))

    def source_collection(self, collection: str) -> str | None:
        """Collection the source schema kept this collection's documents in, if renamed."""
        for old, new in self.renamed_collections.items():
            if new == collection:
                return old
        return None


def collection_lineage(steps: list[Migration], collection: str) -> list[str]:
    """
    Names a collection had along a migration chain.

    Entry i is the name under steps[i].source; the last entry is the
    collection itself. Renames compose, so with A -> B then B -> C the
    lineage of C is [A, B, C].
    """
    names = [collection]
    for step in reversed(steps):
        names.insert(0, step.source_collection(names[0]) or names[0])
    return names


class MigrationRegistry:
    """
    Ordered table of migrations keyed by source identity.

    Usage:
        registry = MigrationRegistry()
        registry.register(Migration(SchemaIdentity("legacy", 0), CURRENT_SCHEMA, {...}))
        steps = registry.chain(stored, CURRENT_SCHEMA)
    """

    def __init__(self, migrations: list[Migration] | None = None):
        self._migrations: dict[SchemaIdentity, Migration] = {}
        for migration in migrations or []:
            self.register(migration)

    def register(self, migration: Migration) -> Migration:
        if migration.source == migration.target:
            raise MigrationError(f"Migration from {migration.source} to itself")
        if migration.source in self._migrations:
            raise MigrationError(f"A migration from {migration.source} is already registered")
        self._migrations[migration.source] = migration
        logger.debug(f"Registered migration: {migration.source} -> {migration.target}")
        return migration

    def chain(self, source: SchemaIdentity, target: SchemaIdentity) -> list[Migration]:
        """
        Resolve the ordered migrations leading from source to target.

        Raises:
            MigrationError: If target is older than source, or no path exists
        """
        if source.name == target.name and source.version > target.version:
            raise MigrationError(
                f"Stored schema {source} is newer than {target}; refusing to downgrade"
            )

        steps: list[Migration] = []
        seen = {source}
        current = source
        while current != target:
            migration = self._migrations.get(current)
            if migration is None:
                raise MigrationError(f"No migration registered from {current} towards {target}")
            if migration.target in seen:
                raise MigrationError(f"Migration cycle detected at {migration.target}")
            steps.append(migration)
            seen.add(migration.target)
            current = migration.target
        return steps

    def __len__(self) -> int:
        return len(self._migrations)

    @property
    def migrations(self) -> list[Migration]:
        return list(self._migrations.values())


class MigrationCoordinator:
    """
    Brings stored documents up to the current schema identity.

    Documents are transformed in memory and verified against the current
    codecs before anything is written. Writes replace documents in place
    (each put is atomic), then every written document is read back, and only
    then is the metadata stamped. Source documents are never deleted before
    the stamp, so a failed run leaves data readable and the next start
    retries from the unchanged stored identity. After the stamp only the
    documents actually moved out of a renamed collection are deleted; anything
    left unmigrated stays where it was.
    """

    def __init__(
        self,
        documents: DocumentStore,
        codecs: Mapping[str, RecordCodec],
        registry: MigrationRegistry,
        current: SchemaIdentity = CURRENT_SCHEMA,
    ):
        self._documents = documents
        self._codecs = codecs
        self._registry = registry
        self._current = current

    @property
    def current(self) -> SchemaIdentity:
        return self._current

    async def stored_identity(self) -> SchemaIdentity:
        """Identity stamped in the metadata document, or the legacy identity if unstamped."""
        try:
            metadata = await self._documents.get(METADATA_COLLECTION, METADATA_KEY)
        except DecodeError as e:
            logger.warning(f"Unreadable schema metadata, treating store as legacy: {e}")
            return LEGACY_SCHEMA
        if metadata is None:
            return LEGACY_SCHEMA

        name = metadata.get("name")
        version = metadata.get("version")
        if not isinstance(name, str) or not isinstance(version, int):
            logger.warning(f"Malformed schema metadata {metadata!r}, treating store as legacy")
            return LEGACY_SCHEMA
        return SchemaIdentity(name, version)

    async def stamp(self, identity: SchemaIdentity) -> None:
        await self._documents.put(METADATA_COLLECTION, METADATA_KEY, identity.to_document())

    async def run(self) -> bool:
        """Migrate if the stored identity differs from the current one."""
        try:
            stored = await self.stored_identity()
        except MediumUnavailableError as e:
            store_logger.error(f"Cannot read schema metadata: {e}")
            return False
        if stored == self._current:
            logger.debug(f"Schema is current ({stored})")
            return True
        return await self.migrate(stored)

    async def migrate(self, source: SchemaIdentity) -> bool:
        """
        Migrate all collections from source to the current identity.

        Returns:
            True if every document was migrated and the new identity stamped
        """
        if source == self._current:
            return True

        try:
            steps = self._registry.chain(source, self._current)
            store_logger.migration(f"{source} -> {self._current} ({len(steps)} step(s))")

            staged, moved = await self._stage(steps)
            written = await self._write(staged)
            await self._verify(written)
            await self.stamp(self._current)
        except (MigrationError, MediumUnavailableError, DecodeError) as e:
            store_logger.error(f"Migration from {source} to {self._current} failed: {e}")
            return False

        await self._remove_moved(moved)
        store_logger.success(f"Migrated {len(written)} document(s) to {self._current}")
        return True

    async def _stage(
        self, steps: list[Migration]
    ) -> tuple[dict[tuple[str, str], Document], list[tuple[str, str]]]:
        """
        Transform every document in memory.

        Returns:
            Staged documents keyed by (collection, key), and the (old collection, key)
            pairs whose documents are being moved out of a renamed collection
        """
        staged: dict[tuple[str, str], Document] = {}
        moved: list[tuple[str, str]] = []

        for collection, codec in self._codecs.items():
            names = collection_lineage(steps, collection)
            live = await self._documents.get_all(collection)

            sources: list[tuple[str, Document, str | None]] = [
                (key, document, None) for key, document in live.items()
            ]
            claimed = set(live)
            for old in dict.fromkeys(reversed(names[:-1])):
                if old == collection:
                    continue
                for key, document in (await self._documents.get_all(old)).items():
                    if key in claimed:
                        store_logger.anomaly(old, key, f"superseded by {collection}, left in place")
                        continue
                    claimed.add(key)
                    sources.append((key, document, old))

            for key, document, origin in sources:
                try:
                    migrated = document
                    for step, name in zip(steps, names[1:]):
                        migrated = step.apply(name, migrated)
                    codec.from_document(migrated, key=key)
                except (AttributeError, DecodeError, KeyError, TypeError, ValueError) as e:
                    store_logger.anomaly(origin or collection, key, f"left unmigrated: {e}")
                    continue
                if origin is not None:
                    moved.append((origin, key))
                if origin is not None or migrated != document:
                    staged[(collection, key)] = migrated

        return staged, moved

    async def _write(self, staged: dict[tuple[str, str], Document]) -> dict[tuple[str, str], Document]:
        for (collection, key), document in staged.items():
            await self._documents.put(collection, key, document)
        return staged

    async def _verify(self, written: dict[tuple[str, str], Document]) -> None:
        for (collection, key), document in written.items():
            stored = await self._documents.get(collection, key)
            if stored != document:
                raise MigrationError(f"Verification failed for {collection}/{key}")

    async def _remove_moved(self, moved: list[tuple[str, str]]) -> None:
        """Delete documents from renamed collections once their copies are stamped."""
        for old, key in moved:
            try:
                await self._documents.delete(old, key)
            except MediumUnavailableError as e:
                store_logger.warning(f"Could not remove {old}/{key} after moving it: {e}")


# ===== Legacy (unstamped) -> Localstore v1 =====


def _iso_from_epoch_millis(value: int | float) -> str:
    return datetime.fromtimestamp(value / 1000, UTC).isoformat()


def _upgrade_task(document: Document) -> Document:
    document.setdefault("taskType", "DownloadTask")
    creation_time = document.get("creationTime")
    if creation_time is None:
        document["creationTime"] = _iso_from_epoch_millis(0)
    elif isinstance(creation_time, int | float) and not isinstance(creation_time, bool):
        document["creationTime"] = _iso_from_epoch_millis(creation_time)
    return document


def _upgrade_status(value: Any) -> str:
    return TaskStatus.from_document(value).value


def _upgrade_task_record(document: Document) -> Document:
    document["task"] = _upgrade_task(document["task"])
    if "status" in document:
        document["status"] = _upgrade_status(document["status"])
    document.setdefault("updatedAt", document["task"]["creationTime"])
    return document


def _upgrade_resume_data(document: Document) -> Document:
    document["task"] = _upgrade_task(document["task"])
    document.setdefault("requiredStartByte", 0)
    document.setdefault("eTag", None)
    return document


LEGACY_TO_V1 = Migration(
    source=LEGACY_SCHEMA,
    target=SchemaIdentity(SCHEMA_NAME, 1),
    transforms={
        TASK_RECORDS_COLLECTION: _upgrade_task_record,
        PAUSED_TASKS_COLLECTION: _upgrade_task,
        MODIFIED_TASKS_COLLECTION: _upgrade_task,
        RESUME_DATA_COLLECTION: _upgrade_resume_data,
    },
    description="Name integer statuses, default taskType, ISO creation times",
)


def default_registry() -> MigrationRegistry:
    """Registry holding every known historical migration."""
    return MigrationRegistry([LEGACY_TO_V1])
