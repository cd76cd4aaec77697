"""Standard domain error types.

Catalog of the error taxonomy shared by the stores, the sync client and
the persistence service.
"""

from typing import Any

from .base import AppError
from .schemas import ErrorDetail


class ValidationError(AppError):
    """Input validation error."""


class NotFoundError(AppError):
    """Password entry not found."""

    def __init__(self, entry_id: str | None = None, message: str | None = None) -> None:
        self.entry_id = entry_id
        details = {"resource_type": "password", "resource_id": entry_id} if entry_id else None
        super().__init__(
            message or (f"Password entry {entry_id} not found" if entry_id else None),
            details=details,
        )


class StorageError(AppError):
    """Local store is unavailable."""


class SyncError(AppError):
    """Remote sync failed."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | ErrorDetail | None = None,
        *,
        cause: BaseException | None = None,
        status: int | None = None,
    ) -> None:
        self.cause = cause
        self.status = status
        super().__init__(message, details=details)
        if status is not None:
            self.details.setdefault("status", status)


class ConfigurationError(AppError):
    """Backend configuration is invalid."""
