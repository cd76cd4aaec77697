"""Pydantic models for error handling.

Data structures for error details and serialised error payloads.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Strict schema for error details."""

    model_config = ConfigDict(extra="allow")

    field: str | None = None
    value: Any | None = None
    constraint: str | None = None
    resource_id: str | None = None
    resource_type: str | None = None
    errors: list[dict[str, Any]] | None = None
    service: str | None = None
    operation: str | None = None
    status: int | None = None


class ErrorPayload(BaseModel):
    """Unified error payload handed to the UI layer."""

    error: str = Field(..., description="Error code (SNAKE_CASE)")
    message: str = Field(..., description="Human-readable error description")
    details: dict[str, Any] = Field(default_factory=dict)
    operation_id: str = Field(default="", description="Operation correlation ID")
