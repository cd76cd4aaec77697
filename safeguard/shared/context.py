"""
Context variables for correlating log lines and errors of one operation.

Every public call on the persistence service runs inside an operation scope.
Background mirror tasks inherit the scope of the call that spawned them, so
a failed remote sync can be traced back to the write that caused it.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

NO_OPERATION = "-"

operation_id_var: ContextVar[str] = ContextVar("operation_id", default=NO_OPERATION)


def get_operation_id() -> str:
    """Get current operation ID from context.

    Returns:
        Operation ID string or ``"-"`` outside of an operation.
    """
    return operation_id_var.get()


def new_operation_id() -> str:
    """Generate a short random operation ID."""
    return uuid.uuid4().hex[:12]


@contextmanager
def operation_scope(operation_id: str | None = None) -> Iterator[str]:
    """Bind an operation ID for the duration of the block.

    Nested scopes keep the outer ID so that internal calls (e.g. ``get_stats``
    calling ``get_all``) are reported under the caller's operation.

    Args:
        operation_id: Explicit ID to bind; generated when omitted.

    Yields:
        The operation ID in effect inside the block.
    """
    current = operation_id_var.get()
    if current != NO_OPERATION and operation_id is None:
        yield current
        return

    token = operation_id_var.set(operation_id or new_operation_id())
    try:
        yield operation_id_var.get()
    finally:
        operation_id_var.reset(token)
