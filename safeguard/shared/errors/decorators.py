"""Decorators that turn infrastructure failures into domain errors.

Every store and client method in this package is a coroutine, so the
wrappers are async-only.
"""

import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from .base import AppError
from .mapping import ExceptionMapper

logger = logging.getLogger(__name__)
P = ParamSpec("P")
T = TypeVar("T")

AsyncFunc = Callable[P, Awaitable[T]]


def safe(
    error_cls: type[AppError] = AppError,
) -> Callable[[AsyncFunc[P, T]], AsyncFunc[P, T]]:
    """Map technical exceptions raised by a store or client method.

    Domain errors pass through untouched. Known infrastructure exceptions
    (SQLAlchemy, filesystem, httpx) go through ``ExceptionMapper``; anything
    the mapper has no handler for becomes ``error_cls``, so a bug inside
    the remote client still surfaces as a ``SyncError`` and a bug inside
    the local store as a ``StorageError``.

    Usage:
        @safe(StorageError)
        async def get_all(self) -> list[PasswordEntry]:
            ...

    Args:
        error_cls: Domain error for exceptions without a registered handler
    """

    def decorator(func: AsyncFunc[P, T]) -> AsyncFunc[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except AppError:
                raise
            except Exception as e:
                raise ExceptionMapper.map(e, func.__name__, fallback=error_cls) from e

        return wrapper

    return decorator


def safe_with_fallback(
    fallback: T,
    log_level: int = logging.WARNING,
) -> Callable[[AsyncFunc[P, T]], AsyncFunc[P, T]]:
    """Return ``fallback`` instead of raising; used by health checks.

    Usage:
        @safe_with_fallback(False)
        async def health_check(self) -> bool:
            ...

    Args:
        fallback: Value returned when the check fails for any reason
        log_level: Level at which the swallowed failure is logged
    """

    def decorator(func: AsyncFunc[P, T]) -> AsyncFunc[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.log(log_level, f"{func.__qualname__} failed, reporting {fallback!r}: {e}")
                return fallback

        return wrapper

    return decorator
