"""Error taxonomy shared by the storage adapters and the HTTP layer."""

from __future__ import annotations


class RailnodeError(Exception):
    """Base exception for railnode."""


class ConfigurationError(RailnodeError):
    """Raised when a required setting is missing or invalid.

    Always raised before any store operation runs.
    """

    def __init__(self, message: str, *, setting: str | None = None, sources: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.setting = setting
        self.sources = sources


class StoreOperationError(RailnodeError):
    """Raised when a backend is unreachable or an operation fails.

    Only the underlying message is kept; the driver exception object is not
    attached (callers raise it ``from None``) so connection details do not
    leak into responses or chained tracebacks.
    """

    def __init__(self, backend: str, operation: str, detail: str, *, entity: str | None = None) -> None:
        self.backend = backend
        self.operation = operation
        self.detail = detail
        self.entity = entity
        prefix = f"{backend} ({entity})" if entity else backend
        super().__init__(f"{prefix} {operation} failed: {detail}")


def error_message(exc: BaseException) -> str:
    """Best-effort human readable message for a driver exception."""
    message = str(exc).strip()
    return message or exc.__class__.__name__
