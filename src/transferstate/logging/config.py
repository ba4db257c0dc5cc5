"""
Logging Configuration - Structured logging with Rich console.

Provides pretty, structured logging for task-state store operations.
"""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

from transferstate.logging.formatters import create_file_handler

STORE_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim",
        "store": "bold green",
        "remove": "bold magenta",
        "migration": "bold blue",
    }
)

# Shared console instance
console = Console(theme=STORE_THEME)


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    show_path: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Configure logging with Rich console handler.

    Args:
        level: Logging level
        show_path: Show file path in log messages
        log_file: Optional path for an additional JSON log file
    """
    handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=show_path,
        rich_tracebacks=True,
        markup=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    handlers: list[logging.Handler] = [handler]
    if log_file:
        handlers.append(create_file_handler(log_file))

    root_logger = logging.getLogger("transferstate")
    root_logger.setLevel(level)
    root_logger.handlers = handlers
    root_logger.propagate = False

    for name in ["transferstate.persistence", "transferstate.cli"]:
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with transferstate prefix.

    Args:
        name: Logger name (will be prefixed with 'transferstate.')

    Returns:
        Configured logger
    """
    if not name.startswith("transferstate."):
        name = f"transferstate.{name}"
    return logging.getLogger(name)


class StoreLogger:
    """
    Structured logger for store operations.

    Provides semantic logging methods for the operations the store performs.
    """

    def __init__(self, name: str = "transferstate"):
        self._logger = get_logger(name)

    def stored(self, collection: str, key: str) -> None:
        """Log a document write (debug level)."""
        self._logger.debug(
            f"[store]put[/store] {collection}/{escape(key)}",
            extra={"collection": collection, "key": key},
        )

    def removed(self, collection: str, key: str | None) -> None:
        """Log a document or collection removal."""
        target = escape(key) if key is not None else "*"
        self._logger.debug(
            f"[remove]delete[/remove] {collection}/{target}",
            extra={"collection": collection, "key": key},
        )

    def anomaly(self, collection: str, key: str, reason: str) -> None:
        """Log a recoverable data anomaly, such as a corrupt record."""
        self._logger.warning(
            f"[warning]Document {collection}/{escape(key)}: "
            f"{escape(reason)}[/warning]",
            extra={"collection": collection, "key": key},
        )

    def migration(self, message: str) -> None:
        """Log migration progress."""
        self._logger.info(f"[migration]migration[/migration] {message}")

    def error(self, message: str, exc: Exception | None = None) -> None:
        """Log error."""
        self._logger.error(f"[error]{escape(message)}[/error]", exc_info=exc)

    def warning(self, message: str) -> None:
        """Log warning."""
        self._logger.warning(f"[warning]{escape(message)}[/warning]")

    def success(self, message: str) -> None:
        """Log success message."""
        self._logger.info(f"[green]✓[/green] {message}")

    def debug(self, message: str) -> None:
        """Log debug message."""
        self._logger.debug(message)

    def info(self, message: str) -> None:
        """Log info message."""
        self._logger.info(message)


# Default logger instance
logger = StoreLogger()
