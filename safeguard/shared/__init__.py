"""
Shared module - cross-cutting concerns and utilities.

This module provides shared functionality used across the application:
- Context variables for operation IDs
- Logging utilities with Loguru
"""

from .context import (
    get_operation_id,
    new_operation_id,
    operation_id_var,
    operation_scope,
)
from .logging import (
    get_logger,
    logger,
    setup_logger,
)

__all__ = [
    # Context
    "get_operation_id",
    "new_operation_id",
    "operation_id_var",
    "operation_scope",
    # Logging
    "logger",
    "setup_logger",
    "get_logger",
]
