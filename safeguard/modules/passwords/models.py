"""
SQLAlchemy model for stored credentials.

Main components:
    - PasswordRecord: one credential row in the local store
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from safeguard.core.database import Base
from safeguard.shared.mixins import EntryIdMixin, TimestampMixin


class PasswordRecord(EntryIdMixin, TimestampMixin, Base):
    """
    Authoritative copy of a credential.

    Attributes:
        id: Store-assigned identifier (UUID7 string)
        service: Account or site name
        username: Login name for the service
        password: Secret, stored as provided
        remote_id: Identifier of the mirrored record on the remote store
        created_at: Creation time, never modified
        updated_at: Time of the last successful mutation
    """

    __tablename__ = "passwords"

    service: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(200), nullable=False)
    remote_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)

    def __repr__(self) -> str:
        return f"PasswordRecord(id={self.id!r}, service={self.service!r}, username={self.username!r})"
