"""
Transferstate Logging Module.

Provides structured logging with Rich console output.
"""

from transferstate.logging.config import (
    StoreLogger,
    console,
    get_logger,
    logger,
    setup_logging,
)
from transferstate.logging.formatters import (
    CompactFormatter,
    JSONFormatter,
    create_file_handler,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "StoreLogger",
    "logger",
    "console",
    "JSONFormatter",
    "CompactFormatter",
    "create_file_handler",
]
