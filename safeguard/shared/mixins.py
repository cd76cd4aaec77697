"""SQLAlchemy model mixins for common functionality."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, String, TypeDecorator
from sqlalchemy.orm import Mapped, mapped_column

from .identifiers import new_entry_id


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime column for SQLite.

    SQLite has no native timestamp type and drops the offset on storage.
    Values are normalised to UTC on the way in and come back as aware UTC
    datetimes, so comparisons between stored and freshly generated
    timestamps never mix naive and aware values.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> datetime | None:
        """Convert an aware datetime to naive UTC for storage.

        Args:
            value: The datetime to store, or None.
            dialect: The SQLAlchemy dialect being used.

        Returns:
            Naive datetime expressed in UTC, or None.
        """
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value: Any, dialect) -> datetime | None:
        """Attach UTC to a stored naive datetime."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class EntryIdMixin:
    """Mixin providing a store-assigned, time-ordered string primary key.

    Example:
        class PasswordRecord(EntryIdMixin, Base):
            __tablename__ = "passwords"
            service: Mapped[str] = mapped_column(String(100))
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_entry_id,
        nullable=False,
    )


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps.

    Both are assigned in Python rather than by the database so that an
    insert yields ``created_at == updated_at`` exactly and an update can
    clamp ``updated_at`` against the stored value.
    """

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    def touch(self, now: datetime | None = None) -> datetime:
        """Bump ``updated_at`` without ever moving it backwards.

        Args:
            now: Timestamp to apply; defaults to the current UTC time.

        Returns:
            The timestamp that was stored.
        """
        candidate = now or utcnow()
        current = self.updated_at
        if current is not None and candidate < current:
            candidate = current
        self.updated_at = candidate
        return candidate
