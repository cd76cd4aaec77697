"""Memory Safe Guard - Logger Configuration.

Loguru-based structured logging configuration.

This module configures a unified logger for the application:
- Loguru for application logs (pretty format, colors, structured data)
- Intercept handler for third-party library logs (sqlalchemy, aiosqlite, httpx)
- Operation ID correlation for every record
- Redaction of credential-bearing fields
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import TYPE_CHECKING, Any

from loguru import logger

from ..context import get_operation_id

if TYPE_CHECKING:
    from safeguard.core.config import Settings

REDACTED = "***REDACTED***"

# Sensitive field patterns for redaction
SENSITIVE_PATTERNS = re.compile(
    r"(password|passwd|token|secret|api_key|access_token|refresh_token|credential)",
    re.IGNORECASE,
)

THIRD_PARTY_LOGGERS = (
    "",  # root logger
    "sqlalchemy",
    "sqlalchemy.engine",
    "aiosqlite",
    "httpx",
    "httpcore",
)


class InterceptHandler(logging.Handler):
    """Handler for intercepting standard logging and redirecting to Loguru.

    SQLAlchemy, aiosqlite and httpx use the standard logging module, as do the
    error mapping helpers of this package. To have all logs in the unified
    Loguru format, they are intercepted through this handler.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a single standard logging record to Loguru.

        Args:
            record: Log record from standard logging with all information
                   (level, message, file, line, exception, etc.)
        """
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        frame = logging.currentframe()
        depth = 2

        if frame:
            while frame.f_code.co_filename == logging.__file__:
                if frame.f_back:
                    frame = frame.f_back
                    depth += 1
                else:
                    break

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _context_patcher(record: dict[str, Any]) -> None:
    """Inject the active operation ID into every record."""
    record["extra"].setdefault("operation_id", get_operation_id())


def _redact_sensitive_value(key: str, value: Any) -> Any:
    """Redact sensitive values based on key name.

    Nested dictionaries are walked so that ``fields={"password": ...}``
    never reaches a sink in clear text.

    Args:
        key: The field name
        value: The field value

    Returns:
        Redacted value if sensitive, original value otherwise
    """
    if SENSITIVE_PATTERNS.search(key):
        return REDACTED
    if isinstance(value, dict):
        return {k: _redact_sensitive_value(str(k), v) for k, v in value.items()}
    return value


def build_log_entry(record: dict[str, Any], service_name: str) -> dict[str, Any]:
    """Build the JSON-serialisable representation of a Loguru record.

    Args:
        record: Loguru log record
        service_name: Name of the service for log entries

    Returns:
        Flat dictionary with sensitive extra fields redacted
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["extra"].get("name", record["name"]),
        "function": record["function"],
        "line": record["line"],
        "operation_id": record["extra"].get("operation_id", get_operation_id()),
        "service": service_name,
    }

    excluded_keys = {"operation_id", "name"}
    for key, value in record["extra"].items():
        if key not in excluded_keys:
            log_entry[key] = _redact_sensitive_value(key, value)

    if record.get("exception"):
        exc = record["exception"]
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return log_entry


def _create_json_sink(service_name: str) -> Any:
    """Create a JSON sink for stdout logging.

    Args:
        service_name: Name of the service for log entries

    Returns:
        Sink function for Loguru
    """

    def json_sink(message: Any) -> None:
        """Write JSON formatted log to stdout."""
        log_entry = build_log_entry(message.record, service_name)
        sys.stdout.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
        sys.stdout.flush()

    return json_sink


def _redacting_patcher(record: dict[str, Any]) -> None:
    """Redact sensitive extra fields before any sink sees them."""
    _context_patcher(record)
    for key, value in list(record["extra"].items()):
        record["extra"][key] = _redact_sensitive_value(key, value)


def setup_logger(settings: Settings | None = None, *, enqueue: bool = True) -> None:
    """Configure Loguru logger.

    Sets up:
    - Console handler with colored output (dev) or JSON format (prod)
    - Operation ID correlation and field redaction
    - Third-party library log interception

    Args:
        settings: Settings to read levels and format from (defaults to the
            cached process settings)
        enqueue: Route records through a background queue (thread-safe)
    """
    if settings is None:
        from safeguard.core.config import get_settings

        settings = get_settings()

    logger.remove()
    logger.configure(patcher=_redacting_patcher)

    is_prod = settings.logging.format.lower() == "json"

    if is_prod:
        logger.add(
            _create_json_sink(settings.app.name),
            level=settings.logging.level.upper(),
            backtrace=True,
            diagnose=False,  # Don't expose local variables (credentials) in production
            enqueue=enqueue,
        )
    else:
        dev_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level> | "
            "<dim>op={extra[operation_id]}</dim>"
        )
        logger.add(
            sys.stdout,
            format=dev_format,
            level=settings.logging.level.upper(),
            colorize=True,
            backtrace=True,
            diagnose=settings.app.debug,
            enqueue=enqueue,
        )

    configure_third_party_loggers(settings)

    logger.info(
        "Logger configured",
        level=settings.logging.level,
        format="json" if is_prod else "console",
    )


def configure_third_party_loggers(settings: Settings) -> None:
    """Route stdlib loggers through Loguru and tame their verbosity.

    SQLAlchemy echoes every statement at INFO, which would include the
    bound credential values, so it is held at WARNING unless the store
    is explicitly configured to echo.
    """
    logging.root.handlers = []
    logging.root.setLevel(logging.INFO)

    for logger_name in THIRD_PARTY_LOGGERS:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers.clear()
        logging_logger.addHandler(InterceptHandler())
        logging_logger.propagate = False

        if logger_name in ("sqlalchemy", "sqlalchemy.engine"):
            logging_logger.setLevel(logging.INFO if settings.store.echo else logging.WARNING)
        elif logger_name in ("httpx", "httpcore", "aiosqlite"):
            logging_logger.setLevel(logging.WARNING)
        else:
            logging_logger.setLevel(logging.INFO)

    logger.debug("Third-party loggers configured")


def get_logger(name: str):
    """Get a logger with the specified name.

    Args:
        name: Logger name (usually __name__ of the module)

    Returns:
        Configured Loguru logger with bound name
    """
    return logger.bind(name=name)
