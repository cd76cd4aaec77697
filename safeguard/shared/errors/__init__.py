"""Shared errors package.

Centralized error taxonomy and exception mapping.
"""

from .base import AppError
from .decorators import safe, safe_with_fallback
from .domain import (
    ConfigurationError,
    NotFoundError,
    StorageError,
    SyncError,
    ValidationError,
)
from .mapping import ExceptionMapper
from .schemas import ErrorDetail, ErrorPayload

__all__ = [
    # Base
    "AppError",
    # Domain errors
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "SyncError",
    "ConfigurationError",
    # Mapping
    "ExceptionMapper",
    # Decorators
    "safe",
    "safe_with_fallback",
    # Schemas
    "ErrorDetail",
    "ErrorPayload",
]
