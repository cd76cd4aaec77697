"""Memory Safe Guard - Shared Logging Configuration.

Loguru-based logging module with:
- Structured JSON logging for production
- Colored console output for development
- Operation ID correlation
- Automatic sensitive data redaction
- Audit events for credential operations
"""

from loguru import logger

from .config import (
    InterceptHandler,
    build_log_entry,
    configure_third_party_loggers,
    get_logger,
    setup_logger,
)
from .event_logger import (
    log_password_created,
    log_password_deleted,
    log_password_updated,
    log_read_fallback,
    log_search_performed,
    log_store_cleared,
    log_sync_failed,
)

__all__ = [
    # Core logging
    "logger",
    "setup_logger",
    "get_logger",
    "build_log_entry",
    "InterceptHandler",
    "configure_third_party_loggers",
    # Audit events
    "log_password_created",
    "log_password_updated",
    "log_password_deleted",
    "log_store_cleared",
    "log_search_performed",
    "log_sync_failed",
    "log_read_fallback",
]
