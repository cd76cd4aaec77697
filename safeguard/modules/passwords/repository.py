"""Data access for password rows."""

from collections.abc import Sequence

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.shared.repository import BaseRepository

from .models import PasswordRecord

# Most recently modified first; created_at and id break ties deterministically
DEFAULT_ORDERING = (
    PasswordRecord.updated_at.desc(),
    PasswordRecord.created_at.desc(),
    PasswordRecord.id.desc(),
)


class PasswordRepository(BaseRepository[PasswordRecord]):
    """Repository for the ``passwords`` table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PasswordRecord)

    async def list_recent(self) -> Sequence[PasswordRecord]:
        """All rows, most recently updated first."""
        return await self.list(order_by=list(DEFAULT_ORDERING))

    async def search(self, term: str) -> Sequence[PasswordRecord]:
        """Rows whose service or username contains ``term``, case-insensitively.

        ``%`` and ``_`` in the term are matched literally.
        """
        condition = or_(
            PasswordRecord.service.icontains(term, autoescape=True),
            PasswordRecord.username.icontains(term, autoescape=True),
        )
        return await self.list(where=[condition], order_by=list(DEFAULT_ORDERING))

    async def set_remote_id(self, record: PasswordRecord, remote_id: str | None) -> None:
        """Store the mirror link without touching ``updated_at``."""
        record.remote_id = remote_id
        await self.session.flush()
