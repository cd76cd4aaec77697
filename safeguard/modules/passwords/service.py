"""
Persistence service for password entries.

This module is the single entry point the UI layer calls. It writes to the
primary store first and mirrors successful writes to the remote store in
the background; reads fall back to the remote when the local store fails.

Main components:
    - PasswordStore: interface shared by the local and remote stores
    - PersistenceService: dual-write policy, read fallback, audit events
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Protocol

from safeguard.shared.context import operation_scope
from safeguard.shared.errors import AppError, NotFoundError, StorageError, SyncError
from safeguard.shared.logging import (
    get_logger,
    log_password_created,
    log_password_deleted,
    log_password_updated,
    log_read_fallback,
    log_search_performed,
    log_store_cleared,
    log_sync_failed,
)

from .remote import RemoteSyncClient, sort_recent
from .schemas import (
    PasswordCreate,
    PasswordEntry,
    PasswordStats,
    PasswordUpdate,
    validate_create,
    validate_update,
)

logger = get_logger(__name__)

# A mirror step receives the remote id known from earlier steps of the same
# entry and returns the remote id known after it ran.
MirrorStep = Callable[[str | None], Awaitable[str | None]]


class PasswordStore(Protocol):
    """Operations the persistence service needs from a primary store."""

    name: str

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def get_all(self) -> list[PasswordEntry]: ...

    async def search(self, query: str) -> list[PasswordEntry]: ...

    async def get(self, entry_id: str) -> PasswordEntry | None: ...

    async def insert(self, fields: PasswordCreate | dict[str, Any]) -> PasswordEntry: ...

    async def update(self, entry_id: str, fields: PasswordUpdate | dict[str, Any]) -> PasswordEntry: ...

    async def delete(self, entry_id: str) -> bool: ...

    async def clear_all(self) -> int: ...

    async def count(self) -> int: ...

    async def health_check(self) -> bool: ...

    async def get_remote_id(self, entry_id: str) -> str | None: ...

    async def link_remote_id(self, entry_id: str, remote_id: str) -> bool: ...


class PersistenceService:
    """
    Facade over the primary store and the optional remote mirror.

    The primary write alone decides success. When remote sync is enabled a
    detached task mirrors the write afterwards; its failure is logged and
    never reaches the caller. Mirror tasks of one entry run in the order
    their writes were issued.

    Example:
        service = PersistenceService(local_store, remote_client, enable_remote_sync=True)
        entry = await service.add({"service": "GitHub", "username": "dev", "password": "s3cret"})
        await service.wait_for_sync()
    """

    def __init__(
        self,
        store: PasswordStore,
        remote: RemoteSyncClient | None = None,
        *,
        enable_remote_sync: bool = False,
    ) -> None:
        """
        Args:
            store: Primary store holding the authoritative copy
            remote: Client for the remote mirror, if one is configured
            enable_remote_sync: Mirror writes and fall back on reads
        """
        self._store = store
        self._remote = remote
        self._enable_remote_sync = enable_remote_sync
        self._pending: set[asyncio.Task[str | None]] = set()
        self._mirror_chain: dict[str, asyncio.Task[str | None]] = {}

    @property
    def store(self) -> PasswordStore:
        return self._store

    @property
    def remote(self) -> RemoteSyncClient | None:
        return self._remote

    @property
    def enable_remote_sync(self) -> bool:
        return self._enable_remote_sync

    @property
    def pending_sync_count(self) -> int:
        """Number of mirror tasks that have not finished yet."""
        return len(self._pending)

    def update_config(self, *, enable_remote_sync: bool) -> None:
        """
        Toggle remote sync at runtime.

        Operations already in progress keep the value they started with.
        """
        if enable_remote_sync and self._remote is None:
            logger.warning("Remote sync requested but no remote store is configured")
        self._enable_remote_sync = enable_remote_sync
        logger.info("Remote sync setting changed", enable_remote_sync=enable_remote_sync)

    def _sync_enabled(self) -> bool:
        return self._enable_remote_sync and self._remote is not None

    # --- Lifecycle ---

    async def open(self) -> None:
        """
        Open the primary store.

        With remote sync enabled a primary that cannot be opened is not
        fatal: the service starts anyway, reads go to the remote and writes
        keep failing with ``StorageError``.

        Raises:
            StorageError: The primary could not be opened and sync is disabled
        """
        try:
            await self._store.open()
        except StorageError as e:
            if not self._sync_enabled():
                raise
            logger.warning(
                "Primary store unavailable, reads will use the remote",
                store=self._store.name,
                error=e.message,
            )

    async def close(self) -> None:
        """Wait for outstanding mirror tasks, then close the primary store."""
        await self.wait_for_sync()
        await self._store.close()

    async def wait_for_sync(self) -> None:
        """Wait until every scheduled mirror task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- Reads ---

    async def _read_with_fallback(
        self,
        operation: str,
        primary: Callable[[], Awaitable[list[PasswordEntry]]],
        query: str | None = None,
    ) -> tuple[list[PasswordEntry], str]:
        """
        Run a primary read; on StorageError use the remote if sync is on.

        Returns:
            Entries and the name of the backend that produced them

        Raises:
            StorageError: Primary failed and sync is disabled
            SyncError: Primary failed and the remote failed too
        """
        sync = self._sync_enabled()
        try:
            return await primary(), self._store.name
        except StorageError as e:
            if not sync:
                raise
            storage_error = e

        log_read_fallback(operation, storage_error.message)
        try:
            entries = await self._remote.fetch_all(query)
        except SyncError as sync_error:
            raise sync_error from storage_error
        return sort_recent(entries), "remote"

    async def get_all(self) -> list[PasswordEntry]:
        """All entries, most recently updated first."""
        with operation_scope():
            entries, _ = await self._read_with_fallback("get_all", self._store.get_all)
            return entries

    async def search(self, query: str) -> list[PasswordEntry]:
        """
        Entries whose service or username contains ``query``.

        Args:
            query: Case-insensitive search term. It is stripped before use,
                on the local store and in the remote request alike; a blank
                term returns every entry
        """
        with operation_scope():
            term = (query or "").strip()
            entries, source = await self._read_with_fallback(
                "search",
                partial(self._store.search, term),
                query=term,
            )
            log_search_performed(len(term), len(entries), source=source)
            return entries

    async def get_stats(self) -> PasswordStats:
        with operation_scope():
            entries = await self.get_all()
            return PasswordStats(total=len(entries), has_passwords=bool(entries))

    async def health_check(self) -> dict[str, bool | None]:
        """Reachability of each backend; None for a backend not in use."""
        with operation_scope():
            status: dict[str, bool | None] = {"local": None, "remote": None}
            status[self._store.name] = await self._store.health_check()
            if self._remote is not None:
                status["remote"] = await self._remote.health_check()
            return status

    # --- Writes ---

    async def add(self, fields: PasswordCreate | dict[str, Any]) -> PasswordEntry:
        """
        Store a new entry and mirror it if sync is enabled.

        Raises:
            ValidationError: A field is blank or malformed; nothing is written
            StorageError: The primary write failed
        """
        with operation_scope():
            data = validate_create(fields)
            sync = self._sync_enabled()

            entry = await self._store.insert(data)
            log_password_created(entry.id, entry.service)

            if sync:
                self._schedule_mirror(entry.id, "insert", partial(self._mirror_insert, entry.id, data))
            return entry

    async def update(self, entry_id: str, fields: PasswordUpdate | dict[str, Any]) -> PasswordEntry:
        """
        Apply a partial update and mirror it if sync is enabled.

        Raises:
            ValidationError: A supplied field is blank or malformed
            NotFoundError: No entry with this id
            StorageError: The primary write failed
        """
        with operation_scope():
            data = validate_update(fields)
            changes = data.changes()
            sync = self._sync_enabled()

            entry = await self._store.update(entry_id, data)
            log_password_updated(entry.id, list(changes))

            if sync:
                self._schedule_mirror(
                    entry_id, "update", partial(self._mirror_update, entry_id, changes)
                )
            return entry

    async def delete(self, entry_id: str) -> None:
        """
        Delete an entry and mirror the deletion if sync is enabled.

        Raises:
            NotFoundError: No entry with this id
            StorageError: The primary delete failed
        """
        with operation_scope():
            sync = self._sync_enabled()
            # A mirror of this entry may finish while we await below
            previous = self._mirror_chain.get(entry_id)
            # The link disappears with the row, so read it first
            linked = await self._store.get_remote_id(entry_id) if sync else None

            if not await self._store.delete(entry_id):
                raise NotFoundError(entry_id)
            log_password_deleted(entry_id)

            if sync:
                self._schedule_mirror(
                    entry_id, "delete", partial(self._mirror_delete, entry_id, linked),
                    previous=previous,
                )

    async def clear_all(self) -> int:
        """Remove every entry from the primary store. Not mirrored."""
        with operation_scope():
            removed = await self._store.clear_all()
            log_store_cleared(removed)
            return removed

    # --- Remote mirroring ---

    def _schedule_mirror(
        self,
        entry_id: str,
        operation: str,
        step: MirrorStep,
        previous: asyncio.Task[str | None] | None = None,
    ) -> None:
        previous = self._mirror_chain.get(entry_id) or previous
        task = asyncio.create_task(
            self._run_mirror(entry_id, operation, step, previous),
            name=f"mirror-{operation}-{entry_id}",
        )
        self._pending.add(task)
        self._mirror_chain[entry_id] = task
        task.add_done_callback(partial(self._on_mirror_done, entry_id))

    async def _run_mirror(
        self,
        entry_id: str,
        operation: str,
        step: MirrorStep,
        previous: asyncio.Task[str | None] | None,
    ) -> str | None:
        known_remote_id: str | None = None
        if previous is not None:
            (result,) = await asyncio.gather(previous, return_exceptions=True)
            if isinstance(result, str):
                known_remote_id = result

        try:
            return await step(known_remote_id)
        except AppError as e:
            log_sync_failed(
                operation,
                entry_id,
                e.message,
                error_type=e.code,
                status=e.status if isinstance(e, SyncError) else None,
            )
            return known_remote_id

    def _on_mirror_done(self, entry_id: str, task: asyncio.Task[str | None]) -> None:
        self._pending.discard(task)
        if self._mirror_chain.get(entry_id) is task:
            del self._mirror_chain[entry_id]

        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(
                "Unexpected failure in remote mirror task",
                entry_id=entry_id,
            )

    async def _mirror_insert(
        self, entry_id: str, data: PasswordCreate, known_remote_id: str | None
    ) -> str | None:
        remote_entry = await self._remote.insert(data)
        try:
            await self._store.link_remote_id(entry_id, remote_entry.id)
        except StorageError as e:
            log_sync_failed("link", entry_id, e.message, error_type=e.code)
        return remote_entry.id

    async def _mirror_update(
        self, entry_id: str, changes: dict[str, Any], known_remote_id: str | None
    ) -> str | None:
        remote_id = known_remote_id or await self._store.get_remote_id(entry_id)
        if remote_id is None:
            logger.warning(
                "Entry has no remote copy, skipping mirror",
                entry_id=entry_id,
                operation="update",
            )
            return None

        await self._remote.update(remote_id, changes)
        return remote_id

    async def _mirror_delete(
        self, entry_id: str, linked_remote_id: str | None, known_remote_id: str | None
    ) -> str | None:
        remote_id = known_remote_id or linked_remote_id
        if remote_id is None:
            logger.warning(
                "Entry has no remote copy, skipping mirror",
                entry_id=entry_id,
                operation="delete",
            )
            return None

        await self._remote.delete(remote_id)
        return None
