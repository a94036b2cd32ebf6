"""Error taxonomy for configstore."""

from typing import Any


class ConfigStoreError(Exception):
    """Base class for every error raised by configstore."""


class ValidationError(ConfigStoreError, ValueError):
    """Missing or malformed caller input. Never reaches a backend."""


class BackendConnectionError(ConfigStoreError, ConnectionError):
    """Connect or ping failure."""


class NotConnected(ConfigStoreError, RuntimeError):
    """Operation attempted before a successful connect()."""

    def __init__(self, backend: str) -> None:
        super().__init__(f"{backend} connection not established. Call connect() first.")
        self.backend = backend


class UnsupportedOperation(ConfigStoreError):
    """Verb not valid for the backend, or unknown governance operation."""

    def __init__(self, operation: str, backend: str | None = None) -> None:
        if backend:
            message = f"unsupported operation '{operation}' for backend {backend}"
        else:
            message = f"unsupported operation '{operation}'"
        super().__init__(message)
        self.operation = operation
        self.backend = backend


class NotFound(ConfigStoreError, LookupError):
    """Approval request absent or not pending."""


class BackendExecutionError(ConfigStoreError):
    """
    Native driver error wrapped with operation context.

    The driver message is kept verbatim in the text and the original
    exception is available as __cause__.
    """

    def __init__(self, operation: str, backend: str, cause: Any) -> None:
        super().__init__(f"{backend} {operation} failed: {cause}")
        self.operation = operation
        self.backend = backend
        self.cause = cause


class OperationTimeout(BackendExecutionError, TimeoutError):
    """Driver reported that the deadline was exceeded."""
