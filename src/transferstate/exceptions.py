"""
Transferstate Exceptions.

Centralized exception hierarchy for the task-state store.
"""


class TransferStateError(Exception):
    """Base exception for all transferstate errors."""
    pass


class ConfigurationError(TransferStateError):
    """Raised when configuration is invalid or missing."""
    pass


class DecodeError(TransferStateError):
    """Raised when a stored document does not match the expected entity shape."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class MediumUnavailableError(TransferStateError):
    """Raised when the backing storage medium cannot be read or written."""
    pass


class MigrationError(TransferStateError):
    """Raised when a schema migration cannot be completed."""
    pass
