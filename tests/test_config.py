"""Tests for StoreSettings and the document store factory."""

from pathlib import Path

import pytest

from transferstate.config import SQLITE_FILENAME, StoreSettings
from transferstate.exceptions import ConfigurationError
from transferstate.persistence import (
    LocalDocumentStore,
    MemoryDocumentStore,
    SqliteDocumentStore,
    create_document_store,
    open_task_state_store,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TRANSFERSTATE_BACKEND", "TRANSFERSTATE_PATH", "TRANSFERSTATE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestStoreSettings:
    def test_defaults(self):
        settings = StoreSettings.from_env()
        assert settings.backend == "local"
        assert settings.log_level == "INFO"

    def test_reads_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TRANSFERSTATE_BACKEND", " SQLite ")
        monkeypatch.setenv("TRANSFERSTATE_PATH", str(tmp_path))
        monkeypatch.setenv("TRANSFERSTATE_LOG_LEVEL", "debug")
        settings = StoreSettings.from_env()
        assert settings.backend == "sqlite"
        assert settings.path == Path(tmp_path)
        assert settings.log_level == "DEBUG"

    def test_unknown_backend_raises(self, monkeypatch):
        monkeypatch.setenv("TRANSFERSTATE_BACKEND", "floppy")
        with pytest.raises(ConfigurationError):
            StoreSettings.from_env()


class TestCreateDocumentStore:
    def test_local(self, tmp_path):
        store = create_document_store(StoreSettings(backend="local", path=tmp_path))
        assert isinstance(store, LocalDocumentStore)
        assert store.root == tmp_path

    def test_sqlite_directory_gets_default_filename(self, tmp_path):
        store = create_document_store(StoreSettings(backend="sqlite", path=tmp_path))
        assert isinstance(store, SqliteDocumentStore)
        assert store.description == str(tmp_path / SQLITE_FILENAME)

    def test_sqlite_file_path_used_as_is(self, tmp_path):
        db = tmp_path / "custom.db"
        store = create_document_store(StoreSettings(backend="sqlite", path=db))
        assert store.description == str(db)

    def test_memory(self):
        assert isinstance(create_document_store(StoreSettings(backend="memory")), MemoryDocumentStore)

    def test_reads_environment_when_no_settings(self, monkeypatch):
        monkeypatch.setenv("TRANSFERSTATE_BACKEND", "memory")
        assert isinstance(create_document_store(), MemoryDocumentStore)

    @pytest.mark.asyncio
    async def test_open_task_state_store_initializes(self):
        store = await open_task_state_store(StoreSettings(backend="memory"))
        assert store.is_initialized
        assert await store.stored_schema_identity() == store.current_schema_identity
