"""
Transferstate Configuration.

Centralizes default values and environment-driven settings.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from transferstate.exceptions import ConfigurationError

# Collection names
TASK_RECORDS_COLLECTION = "backgroundDownloaderTaskRecords"
RESUME_DATA_COLLECTION = "backgroundDownloaderResumeData"
PAUSED_TASKS_COLLECTION = "backgroundDownloaderPausedTasks"
MODIFIED_TASKS_COLLECTION = "backgroundDownloaderModifiedTasks"
METADATA_COLLECTION = "backgroundDownloaderDatabase"
METADATA_KEY = "metaData"

# Schema identity
SCHEMA_NAME = "Localstore"
SCHEMA_VERSION = 1
LEGACY_SCHEMA_NAME = "legacy"

# Storage defaults
DEFAULT_BACKEND = "local"
DEFAULT_STORE_PATH = Path.home() / ".transferstate"
SQLITE_FILENAME = "transferstate.sqlite3"

Backend = Literal["local", "sqlite", "memory"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class StoreSettings(BaseModel):
    """Runtime settings for the task-state store."""

    backend: Backend = DEFAULT_BACKEND
    path: Path = Field(default_factory=lambda: DEFAULT_STORE_PATH)
    log_level: LogLevel = "INFO"

    @classmethod
    def from_env(cls) -> "StoreSettings":
        """
        Build settings from TRANSFERSTATE_* environment variables.

        Raises:
            ConfigurationError: If a variable holds an unsupported value
        """
        values: dict[str, str] = {}
        backend = os.getenv("TRANSFERSTATE_BACKEND")
        if backend:
            values["backend"] = backend.strip().lower()
        path = os.getenv("TRANSFERSTATE_PATH")
        if path:
            values["path"] = path
        level = os.getenv("TRANSFERSTATE_LOG_LEVEL")
        if level:
            values["log_level"] = level.strip().upper()

        try:
            return cls.model_validate(values)
        except ValueError as e:
            raise ConfigurationError(f"Invalid transferstate settings: {e}") from e
