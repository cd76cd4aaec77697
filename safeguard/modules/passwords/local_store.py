"""
Local store: the authoritative copy of every password entry.

Main components:
    - LocalStore: async CRUD and search over the embedded SQLite database
"""

from __future__ import annotations

from typing import Any

from safeguard.core.database import DatabaseManager
from safeguard.shared.errors import NotFoundError, StorageError, safe, safe_with_fallback
from safeguard.shared.logging import get_logger
from safeguard.shared.mixins import utcnow

from .repository import PasswordRepository
from .schemas import (
    PasswordCreate,
    PasswordEntry,
    PasswordUpdate,
    validate_create,
    validate_update,
)

logger = get_logger(__name__)


class LocalStore:
    """
    Password store backed by SQLite.

    Every method opens its own session, so each call is one transaction.
    Infrastructure failures surface as ``StorageError``; there is no retry.

    Example:
        store = LocalStore(DatabaseManager("sqlite+aiosqlite:///safeguard.db"))
        await store.open()
        entry = await store.insert({"service": "GitHub", "username": "dev", "password": "s3cret"})
    """

    name = "local"

    def __init__(self, database: DatabaseManager) -> None:
        """
        Args:
            database: Manager of the SQLite database to use
        """
        self._db = database

    @property
    def database(self) -> DatabaseManager:
        return self._db

    @safe(StorageError)
    async def open(self) -> None:
        """Create the engine and any missing tables."""
        self._db.init()
        await self._db.create_schema()
        logger.info("Local store opened", url=self._db.url)

    async def close(self) -> None:
        await self._db.close()

    @safe(StorageError)
    async def get_all(self) -> list[PasswordEntry]:
        """All entries, most recently updated first."""
        async with self._db.session() as session:
            records = await PasswordRepository(session).list_recent()
            return [PasswordEntry.model_validate(r) for r in records]

    @safe(StorageError)
    async def search(self, query: str) -> list[PasswordEntry]:
        """
        Case-insensitive substring match on service or username.

        Args:
            query: Search term. Leading and trailing whitespace is ignored,
                so " dev " matches like "dev"; a blank term returns every entry

        Returns:
            Matching entries, most recently updated first
        """
        term = (query or "").strip()
        if not term:
            return await self.get_all()

        async with self._db.session() as session:
            records = await PasswordRepository(session).search(term)
            return [PasswordEntry.model_validate(r) for r in records]

    @safe(StorageError)
    async def get(self, entry_id: str) -> PasswordEntry | None:
        async with self._db.session() as session:
            record = await PasswordRepository(session).get_by_id(entry_id)
            return PasswordEntry.model_validate(record) if record else None

    @safe(StorageError)
    async def insert(self, fields: PasswordCreate | dict[str, Any]) -> PasswordEntry:
        """
        Persist a new entry.

        Args:
            fields: service, username and password

        Returns:
            The stored entry with its assigned id and timestamps

        Raises:
            ValidationError: A field is blank or malformed
            StorageError: The write failed
        """
        data = validate_create(fields)
        now = utcnow()

        async with self._db.session() as session:
            record = await PasswordRepository(session).create(
                {
                    **data.model_dump(),
                    "created_at": now,
                    "updated_at": now,
                }
            )
            return PasswordEntry.model_validate(record)

    @safe(StorageError)
    async def update(self, entry_id: str, fields: PasswordUpdate | dict[str, Any]) -> PasswordEntry:
        """
        Merge the supplied fields onto an existing entry and bump ``updated_at``.

        Raises:
            ValidationError: A supplied field is blank or malformed
            NotFoundError: No entry with this id
            StorageError: The write failed
        """
        changes = validate_update(fields).changes()

        async with self._db.session() as session:
            repo = PasswordRepository(session)
            record = await repo.get_by_id(entry_id)
            if record is None:
                raise NotFoundError(entry_id)

            record.touch()
            record = await repo.update(record, changes)
            return PasswordEntry.model_validate(record)

    @safe(StorageError)
    async def delete(self, entry_id: str) -> bool:
        """
        Remove an entry. Deleting a missing id is not an error.

        Returns:
            True if a row was removed
        """
        async with self._db.session() as session:
            return await PasswordRepository(session).delete_by_id(entry_id)

    @safe(StorageError)
    async def clear_all(self) -> int:
        """Remove every entry and return how many were removed."""
        async with self._db.session() as session:
            return await PasswordRepository(session).delete_all()

    @safe(StorageError)
    async def count(self) -> int:
        async with self._db.session() as session:
            return await PasswordRepository(session).count()

    @safe_with_fallback(False)
    async def health_check(self) -> bool:
        return await self._db.health_check()

    @safe(StorageError)
    async def get_remote_id(self, entry_id: str) -> str | None:
        """Identifier of the remote copy of an entry, if it has been mirrored."""
        async with self._db.session() as session:
            record = await PasswordRepository(session).get_by_id(entry_id)
            return record.remote_id if record else None

    @safe(StorageError)
    async def link_remote_id(self, entry_id: str, remote_id: str) -> bool:
        """
        Record the remote identifier of a mirrored entry.

        ``updated_at`` is left alone: linking is bookkeeping, not a mutation.

        Returns:
            False if the entry no longer exists locally
        """
        async with self._db.session() as session:
            repo = PasswordRepository(session)
            record = await repo.get_by_id(entry_id)
            if record is None:
                return False
            await repo.set_remote_id(record, remote_id)
            return True
