"""Mapping of infrastructure errors to domain errors.

Centralized exception mapping for SQLAlchemy, the filesystem and the HTTP client.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .base import AppError
from .domain import StorageError, SyncError

logger = logging.getLogger(__name__)


class ExceptionMapper:
    """Centralized mapping of technical exceptions to domain exceptions."""

    _handlers: dict[type[Exception], Callable[[Exception, str], AppError]] = {}

    @classmethod
    def register(
        cls, *exception_types: type[Exception]
    ) -> Callable[[Callable[[Any, str], AppError]], Callable[[Any, str], AppError]]:
        """Register a handler for exception types.

        Usage:
            @ExceptionMapper.register(OperationalError)
            def _handle_operational_error(exc: OperationalError, func_name: str) -> AppError:
                return StorageError(message="Local database is unavailable")
        """

        def decorator(
            handler: Callable[[Any, str], AppError]
        ) -> Callable[[Any, str], AppError]:
            for exc_type in exception_types:
                cls._handlers[exc_type] = handler
            return handler

        return decorator

    @classmethod
    def map(
        cls,
        exc: Exception,
        func_name: str = "",
        *,
        fallback: type[AppError] = AppError,
    ) -> AppError:
        """Map a technical exception to a domain exception.

        Args:
            exc: The technical exception to map
            func_name: Name of the function where exception occurred (for logging)
            fallback: Domain error used when no handler is registered for ``exc``

        Returns:
            Mapped domain exception (AppError subclass)
        """
        handler = cls._handlers.get(type(exc))

        if handler is None:
            for exc_type, exc_handler in cls._handlers.items():
                if isinstance(exc, exc_type):
                    handler = exc_handler
                    break

        if handler:
            return handler(exc, func_name)

        logger.exception(f"Unhandled {type(exc).__name__} in {func_name or '<unknown>'}")
        error = fallback(
            f"Unexpected failure in {func_name}" if func_name and fallback is not AppError else None,
            details={"operation": func_name} if func_name else None,
        )
        if isinstance(error, SyncError):
            error.cause = exc
        return error


# --- Register default handlers ---


@ExceptionMapper.register(OperationalError)
def _handle_operational_error(exc: OperationalError, func_name: str) -> AppError:
    """Database: locked, read-only, disk full or closed connection."""
    logger.error(f"Local database error in {func_name}: {exc}")
    return StorageError(
        message="Local database is unavailable",
        details={"service": "local_store", "operation": func_name or None},
    )


@ExceptionMapper.register(SQLAlchemyError)
def _handle_sqlalchemy_error(exc: SQLAlchemyError, func_name: str) -> AppError:
    """Database: any other driver or ORM failure."""
    logger.error(f"Local database failure in {func_name}: {type(exc).__name__}: {exc}")
    return StorageError(
        message="Local database operation failed",
        details={"service": "local_store", "operation": func_name or None},
    )


@ExceptionMapper.register(OSError)
def _handle_os_error(exc: OSError, func_name: str) -> AppError:
    """Filesystem: database file cannot be created or written."""
    logger.error(f"Filesystem error in {func_name}: {exc}")
    return StorageError(
        message="Local database file is not accessible",
        details={"service": "local_store", "operation": func_name or None},
    )


@ExceptionMapper.register(httpx.TimeoutException)
def _handle_timeout(exc: httpx.TimeoutException, func_name: str) -> AppError:
    """HTTPX: request exceeded the configured timeout."""
    logger.warning(f"Remote request timed out in {func_name}")
    return SyncError(
        message="Remote request timed out",
        details={"service": "remote_sync", "operation": func_name or None},
        cause=exc,
    )


@ExceptionMapper.register(httpx.HTTPStatusError)
def _handle_status_error(exc: httpx.HTTPStatusError, func_name: str) -> AppError:
    """HTTPX: remote answered with a non-2xx status."""
    status = exc.response.status_code

    if status >= 500:
        logger.error(f"Remote HTTP {status} in {func_name}")
    else:
        logger.warning(f"Remote HTTP {status} in {func_name}")

    return SyncError(
        message=f"Remote store responded with HTTP {status}",
        details={"service": "remote_sync", "operation": func_name or None},
        cause=exc,
        status=status,
    )


@ExceptionMapper.register(httpx.HTTPError)
def _handle_http_error(exc: httpx.HTTPError, func_name: str) -> AppError:
    """HTTPX: connection refused, DNS failure, protocol error."""
    logger.warning(f"Remote HTTP error in {func_name}: {exc}")
    return SyncError(
        message="Remote store is unreachable",
        details={"service": "remote_sync", "operation": func_name or None},
        cause=exc,
    )
