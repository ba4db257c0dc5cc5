"""
Transferstate Models - Shared Pydantic models.

Value objects persisted by the task-state store. Field names are snake_case
in Python and camelCase in stored documents.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for models that round-trip through camelCase documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===== Enumerations =====


class TaskStatus(str, Enum):
    """Lifecycle states of a transfer task."""

    ENQUEUED = "enqueued"
    RUNNING = "running"
    COMPLETE = "complete"
    NOT_FOUND = "notFound"
    FAILED = "failed"
    CANCELED = "canceled"
    WAITING_TO_RETRY = "waitingToRetry"
    PAUSED = "paused"

    @property
    def is_final(self) -> bool:
        return self in _FINAL_STATUSES

    @classmethod
    def from_document(cls, value: Any) -> "TaskStatus":
        """Accept a status name, or the integer index older documents stored."""
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"status index out of range: {value}")
        return cls(value)


_FINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETE, TaskStatus.NOT_FOUND, TaskStatus.FAILED, TaskStatus.CANCELED}
)


class TaskType(str, Enum):
    DOWNLOAD = "DownloadTask"
    UPLOAD = "UploadTask"
    MULTI_UPLOAD = "MultiUploadTask"
    PARALLEL_DOWNLOAD = "ParallelDownloadTask"
    DATA = "DataTask"


class BaseDirectory(str, Enum):
    APPLICATION_DOCUMENTS = "applicationDocuments"
    TEMPORARY = "temporary"
    APPLICATION_SUPPORT = "applicationSupport"
    APPLICATION_LIBRARY = "applicationLibrary"
    ROOT = "root"


class Updates(str, Enum):
    NONE = "none"
    STATUS = "status"
    PROGRESS = "progress"
    STATUS_AND_PROGRESS = "statusAndProgress"


# ===== Entities =====


class Task(DocumentModel):
    """Full definition of a transfer task, sufficient to re-enqueue it."""

    task_id: str = Field(default_factory=lambda: str(uuid4()))
    task_type: TaskType = TaskType.DOWNLOAD
    url: str
    urls: list[str] = Field(default_factory=list)
    filename: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    http_request_method: str = "GET"
    post: str | None = None
    directory: str = ""
    base_directory: BaseDirectory = BaseDirectory.APPLICATION_DOCUMENTS
    group: str = "default"
    updates: Updates = Updates.STATUS
    requires_wifi: bool = False
    retries: int = Field(default=0, ge=0)
    retries_remaining: int = Field(default=0, ge=0)
    allow_pause: bool = False
    priority: int = Field(default=5, ge=0, le=10)
    meta_data: str = ""
    display_name: str = ""
    creation_time: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TaskException(DocumentModel):
    """Failure detail attached to a failed task record."""

    exception_type: str = "TaskException"
    description: str = ""
    http_response_code: int | None = None


class TaskRecord(DocumentModel):
    """Durable status entry for a task."""

    task: Task
    status: TaskStatus = TaskStatus.ENQUEUED
    progress: float = 0.0
    expected_file_size: int = -1
    exception: TaskException | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> TaskStatus:
        return TaskStatus.from_document(value)

    @property
    def task_id(self) -> str:
        return self.task.task_id


class ResumeData(DocumentModel):
    """Engine state needed to resume a partially completed transfer."""

    task: Task
    data: str
    required_start_byte: int = Field(default=0, ge=0)
    e_tag: str | None = None

    @property
    def task_id(self) -> str:
        return self.task.task_id


__all__ = [
    "BaseDirectory",
    "DocumentModel",
    "ResumeData",
    "Task",
    "TaskException",
    "TaskRecord",
    "TaskStatus",
    "TaskType",
    "Updates",
]
