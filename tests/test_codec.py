"""Unit tests for domain models, the record codec and key sanitization."""

from datetime import UTC, datetime

import pytest

from transferstate.exceptions import DecodeError
from transferstate.models import (
    ResumeData,
    Task,
    TaskException,
    TaskRecord,
    TaskStatus,
    TaskType,
)
from transferstate.persistence.codec import RecordCodec
from transferstate.utils.keys import optional_safe_key, safe_key


# ── Helpers ──────────────────────────────────────────────────────────────────


def _task(task_id: str = "t1", **kwargs) -> Task:
    return Task(task_id=task_id, url="https://example.com/file.bin", filename="file.bin", **kwargs)


# ── TaskStatus ────────────────────────────────────────────────────────────────


class TestTaskStatus:
    def test_final_statuses(self):
        assert TaskStatus.COMPLETE.is_final
        assert TaskStatus.CANCELED.is_final
        assert not TaskStatus.RUNNING.is_final
        assert not TaskStatus.PAUSED.is_final

    def test_from_document_accepts_name(self):
        assert TaskStatus.from_document("waitingToRetry") is TaskStatus.WAITING_TO_RETRY

    def test_from_document_accepts_legacy_index(self):
        assert TaskStatus.from_document(0) is TaskStatus.ENQUEUED
        assert TaskStatus.from_document(7) is TaskStatus.PAUSED

    def test_from_document_rejects_out_of_range_index(self):
        with pytest.raises(ValueError):
            TaskStatus.from_document(42)


# ── RecordCodec ───────────────────────────────────────────────────────────────


class TestRecordCodec:
    def test_task_document_uses_camel_case_keys(self):
        doc = RecordCodec(Task).to_document(_task(retries=3, retries_remaining=2))
        assert doc["taskId"] == "t1"
        assert doc["taskType"] == "DownloadTask"
        assert doc["retriesRemaining"] == 2
        assert "task_id" not in doc

    def test_task_record_round_trip(self):
        codec = RecordCodec(TaskRecord)
        record = TaskRecord(
            task=_task(),
            status=TaskStatus.FAILED,
            progress=0.25,
            expected_file_size=4096,
            exception=TaskException(description="timeout", http_response_code=504),
        )
        assert codec.from_document(codec.to_document(record)) == record

    def test_resume_data_round_trip(self):
        codec = RecordCodec(ResumeData)
        data = ResumeData(task=_task(), data="offset=4096", required_start_byte=4096, e_tag='"abc"')
        decoded = codec.from_document(codec.to_document(data))
        assert decoded == data
        assert decoded.task_id == "t1"

    def test_document_is_json_compatible(self):
        doc = RecordCodec(Task).to_document(_task(creation_time=datetime(2024, 1, 2, tzinfo=UTC)))
        assert isinstance(doc["creationTime"], str)

    def test_decoding_accepts_snake_case_names(self):
        task = RecordCodec(Task).from_document({"task_id": "t9", "url": "https://x"})
        assert task.task_id == "t9"

    def test_missing_required_field_raises_decode_error(self):
        with pytest.raises(DecodeError) as exc_info:
            RecordCodec(ResumeData).from_document({"data": "x"}, key="t1")
        assert exc_info.value.key == "t1"

    def test_wrong_shape_raises_decode_error(self):
        with pytest.raises(DecodeError):
            RecordCodec(TaskRecord).from_document({"task": "not-a-task", "status": "running"})

    def test_non_mapping_raises_decode_error(self):
        with pytest.raises(DecodeError, match="mapping"):
            RecordCodec(Task).from_document(["not", "a", "dict"])

    def test_legacy_status_index_decodes(self):
        doc = {"task": {"taskId": "t1", "url": "https://x"}, "status": 1}
        record = RecordCodec(TaskRecord).from_document(doc)
        assert record.status is TaskStatus.RUNNING
        assert record.task.task_type is TaskType.DOWNLOAD

    def test_legacy_millisecond_creation_time_decodes(self):
        doc = {"taskId": "t1", "url": "https://x", "creationTime": 1_700_000_000_000}
        task = RecordCodec(Task).from_document(doc)
        assert task.creation_time == datetime.fromtimestamp(1_700_000_000, UTC)


# ── Key sanitization ─────────────────────────────────────────────────────────


class TestSafeKey:
    def test_illegal_characters_replaced(self):
        assert safe_key('a\\b/c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"

    def test_legal_identifier_unchanged(self):
        assert safe_key("task-1.part_2") == "task-1.part_2"

    def test_deterministic(self):
        assert safe_key("x/y") == safe_key("x/y")

    def test_distinct_ids_can_share_a_key(self):
        assert safe_key("a/b") == safe_key("a\\b") == "a_b"

    def test_optional_passes_none_through(self):
        assert optional_safe_key(None) is None
        assert optional_safe_key("") == ""
