"""Tests for the transferstate command line interface."""

import asyncio

import pytest
from typer.testing import CliRunner

from transferstate.cli import app
from transferstate.models import ResumeData, Task, TaskRecord, TaskStatus
from transferstate.persistence import LocalDocumentStore, TaskStateStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TRANSFERSTATE_BACKEND", "TRANSFERSTATE_PATH", "TRANSFERSTATE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def seeded(tmp_path):
    async def _seed():
        async with TaskStateStore(LocalDocumentStore(tmp_path)) as store:
            task = Task(task_id="t1", url="https://example.com/big.iso")
            await store.store_task_record(TaskRecord(task=task, status=TaskStatus.RUNNING))
            await store.store_task_record(
                TaskRecord(task=Task(task_id="t2", url="https://x/y"), status=TaskStatus.COMPLETE)
            )
            await store.store_resume_data(ResumeData(task=task, data="offset=4096"))

    asyncio.run(_seed())
    return tmp_path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


class TestCli:
    def test_version(self):
        result = _invoke("version")
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_info_reports_schema_and_counts(self, seeded):
        result = _invoke("info", "--path", str(seeded))
        assert result.exit_code == 0
        assert "Localstore v1" in result.output
        assert "backgroundDownloaderTaskRecords" in result.output

    def test_list_records(self, seeded):
        result = _invoke("list", "records", "--path", str(seeded))
        assert result.exit_code == 0
        assert "t1" in result.output
        assert "running" in result.output

    def test_show_prints_document(self, seeded):
        result = _invoke("show", "resume", "t1", "--path", str(seeded))
        assert result.exit_code == 0
        assert "offset=4096" in result.output

    def test_show_missing_exits_nonzero(self, seeded):
        result = _invoke("show", "paused", "t1", "--path", str(seeded))
        assert result.exit_code == 1

    def test_remove_single_entry(self, seeded):
        assert _invoke("remove", "records", "t1", "--path", str(seeded)).exit_code == 0
        assert _invoke("show", "records", "t1", "--path", str(seeded)).exit_code == 1
        assert _invoke("show", "resume", "t1", "--path", str(seeded)).exit_code == 0

    def test_remove_requires_id_or_all(self, seeded):
        assert _invoke("remove", "records", "--path", str(seeded)).exit_code == 2
        assert _invoke("remove", "records", "t1", "--all", "--path", str(seeded)).exit_code == 2

    def test_remove_all(self, seeded):
        assert _invoke("remove", "resume", "--all", "--path", str(seeded)).exit_code == 0
        assert _invoke("show", "resume", "t1", "--path", str(seeded)).exit_code == 1

    def test_purge(self, seeded):
        result = _invoke("purge", "--path", str(seeded))
        assert result.exit_code == 0
        assert "Purged 1" in result.output

    def test_migrate(self, tmp_path):
        result = _invoke("migrate", "--path", str(tmp_path))
        assert result.exit_code == 0
        assert "current" in result.output

    def test_invalid_backend(self, tmp_path):
        result = _invoke("info", "--path", str(tmp_path), "--backend", "floppy")
        assert result.exit_code == 2
