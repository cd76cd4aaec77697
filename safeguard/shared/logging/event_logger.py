"""Memory Safe Guard - Event Logger.

Structured audit events for credential operations. Field values are
identifiers, service names and counts only; secrets are never passed here.
"""

from loguru import logger


def log_password_created(entry_id: str, service: str) -> None:
    """Log creation of a password entry.

    Args:
        entry_id: Store-assigned identifier of the new entry
        service: Account/site name of the entry
    """
    logger.info(
        "Password entry created",
        event="password.created",
        entry_id=entry_id,
        service=service,
    )


def log_password_updated(entry_id: str, changed_fields: list[str]) -> None:
    """Log a partial update of a password entry.

    Args:
        entry_id: Identifier of the updated entry
        changed_fields: Names of the fields supplied by the caller
    """
    logger.info(
        "Password entry updated",
        event="password.updated",
        entry_id=entry_id,
        changed_fields=sorted(changed_fields),
    )


def log_password_deleted(entry_id: str) -> None:
    """Log deletion of a password entry."""
    logger.info(
        "Password entry deleted",
        event="password.deleted",
        entry_id=entry_id,
    )


def log_store_cleared(removed: int) -> None:
    """Log a bulk delete of every entry.

    Args:
        removed: Number of entries that were removed
    """
    logger.warning(
        "All password entries cleared",
        event="store.cleared",
        removed=removed,
    )


def log_search_performed(query_length: int, result_count: int, *, source: str = "local") -> None:
    """Log a search.

    Only the query length is recorded; the query itself may contain
    fragments of account names the user would rather not see in logs.

    Args:
        query_length: Length of the stripped query
        result_count: Number of matching entries
        source: Backend that served the search ("local" or "remote")
    """
    logger.debug(
        "Password search performed",
        event="search.performed",
        query_length=query_length,
        result_count=result_count,
        source=source,
    )


def log_sync_failed(
    operation: str,
    entry_id: str,
    error: str,
    *,
    error_type: str | None = None,
    status: int | None = None,
) -> None:
    """Log a failed best-effort mirror of a local write.

    Args:
        operation: Mirrored operation ("insert", "update", "delete")
        entry_id: Local identifier of the entry
        error: Error message describing the failure
        error_type: Optional error classification
        status: HTTP status returned by the remote, if any
    """
    logger.warning(
        "Remote sync failed",
        event="sync.failed",
        operation=operation,
        entry_id=entry_id,
        error=error,
        error_type=error_type,
        status=status,
    )


def log_read_fallback(operation: str, error: str) -> None:
    """Log that a read was served by the remote after a local failure.

    Args:
        operation: Read operation ("get_all" or "search")
        error: Message of the local storage error
    """
    logger.warning(
        "Local store failed, falling back to remote",
        event="read.fallback",
        operation=operation,
        error=error,
    )
