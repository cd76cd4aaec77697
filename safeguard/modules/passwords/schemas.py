"""Pydantic schemas for password entries."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from safeguard.shared.errors import ValidationError
from safeguard.shared.schemas import BaseSchema, InputSchema

SERVICE_MAX_LENGTH = 100
USERNAME_MAX_LENGTH = 100
PASSWORD_MAX_LENGTH = 200


def _require_text(value: str | None, *, strip: bool) -> str:
    """Reject missing or whitespace-only strings."""
    if value is None:
        raise ValueError("must not be null")
    if not value.strip():
        raise ValueError("must not be empty")
    return value.strip() if strip else value


class PasswordEntry(BaseSchema):
    """A stored credential as handed to callers."""

    id: str = Field(..., description="Store-assigned identifier")
    service: str = Field(..., description="Account or site name")
    username: str = Field(..., description="Login name")
    password: str = Field(..., repr=False, description="Secret, as stored")
    created_at: datetime = Field(..., description="Creation time")
    updated_at: datetime = Field(..., description="Time of the last mutation")


class PasswordCreate(InputSchema):
    """Fields supplied by the caller when adding an entry.

    ``service`` and ``username`` are trimmed; ``password`` is kept exactly as
    typed but may not be blank.
    """

    service: str = Field(..., max_length=SERVICE_MAX_LENGTH, examples=["GitHub"])
    username: str = Field(..., max_length=USERNAME_MAX_LENGTH, examples=["octocat"])
    password: str = Field(..., max_length=PASSWORD_MAX_LENGTH, repr=False)

    @field_validator("service", "username", mode="before")
    @classmethod
    def _strip_names(cls, value: Any) -> Any:
        if isinstance(value, str) or value is None:
            return _require_text(value, strip=True)
        return value

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> Any:
        if isinstance(value, str) or value is None:
            return _require_text(value, strip=False)
        return value


class PasswordUpdate(InputSchema):
    """Partial update: only supplied fields are merged onto the entry."""

    service: str | None = Field(default=None, max_length=SERVICE_MAX_LENGTH)
    username: str | None = Field(default=None, max_length=USERNAME_MAX_LENGTH)
    password: str | None = Field(default=None, max_length=PASSWORD_MAX_LENGTH, repr=False)

    @field_validator("service", "username", mode="before")
    @classmethod
    def _strip_names(cls, value: Any) -> Any:
        if isinstance(value, str) or value is None:
            return _require_text(value, strip=True)
        return value

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> Any:
        if isinstance(value, str) or value is None:
            return _require_text(value, strip=False)
        return value

    def changes(self) -> dict[str, str]:
        """Fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


class PasswordStats(BaseSchema):
    """Summary derived from the current entry list."""

    total: int = Field(..., ge=0)
    has_passwords: bool


class RemotePasswordRecord(BaseModel):
    """Wire representation used by the remote collection (snake_case)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    service: str
    username: str
    password: str = Field(..., repr=False)
    created_at: datetime
    updated_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Postgres-backed endpoints may return integer or UUID keys
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Offset-less timestamps from the remote are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def to_entry(self) -> PasswordEntry:
        """Translate to the internal entry shape."""
        return PasswordEntry(
            id=self.id,
            service=self.service,
            username=self.username,
            password=self.password,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def _to_domain_error(exc: PydanticValidationError) -> ValidationError:
    # Inputs are left out: they may hold the password
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in errors)
    return ValidationError(f"Invalid password entry: {fields}", details={"errors": errors})


def validate_create(fields: PasswordCreate | dict[str, Any]) -> PasswordCreate:
    """Coerce caller input into a ``PasswordCreate``.

    Raises:
        ValidationError: A field is missing, blank, too long or unknown
    """
    if isinstance(fields, PasswordCreate):
        return fields
    try:
        return PasswordCreate.model_validate(fields)
    except PydanticValidationError as e:
        raise _to_domain_error(e) from e


def validate_update(fields: PasswordUpdate | dict[str, Any]) -> PasswordUpdate:
    """Coerce caller input into a ``PasswordUpdate``.

    Raises:
        ValidationError: A supplied field is blank, null, too long or unknown
    """
    if isinstance(fields, PasswordUpdate):
        return fields
    try:
        return PasswordUpdate.model_validate(fields)
    except PydanticValidationError as e:
        raise _to_domain_error(e) from e
