"""
Remote sync client for the password collection API.

Main components:
    - RemoteSyncClient: stateless HTTP client for the remote collection
    - RemoteStore: the client behind the store interface, for remote-only mode
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from safeguard.shared.errors import (
    NotFoundError,
    SyncError,
    safe,
    safe_with_fallback,
)
from safeguard.shared.logging import get_logger

from .schemas import (
    PasswordCreate,
    PasswordEntry,
    PasswordUpdate,
    RemotePasswordRecord,
    validate_create,
    validate_update,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 5.0
ENVELOPE_KEYS = ("items", "data")


class RemoteSyncClient:
    """
    Async client for the remote password collection.

    A fresh ``httpx.AsyncClient`` is created per call, so the client holds no
    connection state between operations. Every failure (network, timeout,
    non-2xx status, unreadable body) is raised as ``SyncError``; nothing is
    retried.

    Example:
        client = RemoteSyncClient("https://vault.example.com/api/passwords")
        entries = await client.fetch_all("git")
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Collection endpoint, e.g. ``https://host/api/passwords``
            timeout: Per-request timeout in seconds
            transport: Custom transport (tests pass ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Perform one request and decode the JSON body.

        Returns:
            Decoded body, or None for an empty response
        """
        async with self._client() as client:
            response = await client.request(method, endpoint, json=json, params=params)
            response.raise_for_status()

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise SyncError(
                "Remote store returned a malformed body",
                details={"service": "remote_sync", "operation": f"{method} {endpoint}"},
                cause=e,
                status=response.status_code,
            ) from e

    @staticmethod
    def _parse_record(payload: Any) -> PasswordEntry:
        if isinstance(payload, dict):
            for key in ENVELOPE_KEYS:
                if isinstance(payload.get(key), dict):
                    payload = payload[key]
                    break
        try:
            return RemotePasswordRecord.model_validate(payload).to_entry()
        except PydanticValidationError as e:
            raise SyncError(
                "Remote store returned an invalid record",
                details={"service": "remote_sync"},
                cause=e,
            ) from e

    @classmethod
    def _parse_records(cls, payload: Any) -> list[PasswordEntry]:
        if isinstance(payload, dict):
            for key in ENVELOPE_KEYS:
                if isinstance(payload.get(key), list):
                    payload = payload[key]
                    break
        if not isinstance(payload, list):
            raise SyncError(
                "Remote store returned an unexpected list payload",
                details={"service": "remote_sync"},
            )
        return [cls._parse_record(item) for item in payload]

    @safe(SyncError)
    async def fetch_all(self, query: str | None = None) -> list[PasswordEntry]:
        """
        List the remote collection, optionally filtered.

        Args:
            query: Search term forwarded as ``searchQuery``; blank means no filter

        Returns:
            Remote entries, in the order the remote returned them
        """
        term = (query or "").strip()
        params = {"searchQuery": term} if term else None
        payload = await self._request("GET", "/", params=params)
        return self._parse_records(payload)

    @safe(SyncError)
    async def insert(self, fields: PasswordCreate | dict[str, Any]) -> PasswordEntry:
        """Create a remote record; the remote assigns its own id."""
        data = validate_create(fields)
        payload = await self._request("POST", "/", json=data.model_dump())
        return self._parse_record(payload)

    @safe(SyncError)
    async def update(self, remote_id: str, fields: PasswordUpdate | dict[str, Any]) -> PasswordEntry:
        """Send a partial update for a remote record."""
        changes = validate_update(fields).changes()
        payload = await self._request("PUT", f"/{remote_id}", json=changes)
        return self._parse_record(payload)

    @safe(SyncError)
    async def delete(self, remote_id: str) -> None:
        await self._request("DELETE", f"/{remote_id}")

    @safe_with_fallback(False)
    async def health_check(self) -> bool:
        """Whether the remote answers ``GET /health`` with a 2xx status."""
        await self._request("GET", "/health")
        return True


class RemoteStore:
    """
    Store interface over the remote collection, used when local storage is
    disabled. Remote ids are the entry ids in this mode.
    """

    name = "remote"

    def __init__(self, client: RemoteSyncClient) -> None:
        self._client = client

    @property
    def client(self) -> RemoteSyncClient:
        return self._client

    async def open(self) -> None:
        logger.info("Remote store in use", base_url=self._client.base_url)

    async def close(self) -> None:
        return None

    async def get_all(self) -> list[PasswordEntry]:
        entries = await self._client.fetch_all()
        return sort_recent(entries)

    async def search(self, query: str) -> list[PasswordEntry]:
        entries = await self._client.fetch_all(query)
        return sort_recent(entries)

    async def get(self, entry_id: str) -> PasswordEntry | None:
        for entry in await self._client.fetch_all():
            if entry.id == entry_id:
                return entry
        return None

    async def insert(self, fields: PasswordCreate | dict[str, Any]) -> PasswordEntry:
        return await self._client.insert(fields)

    async def update(self, entry_id: str, fields: PasswordUpdate | dict[str, Any]) -> PasswordEntry:
        try:
            return await self._client.update(entry_id, fields)
        except SyncError as e:
            if e.status == 404:
                raise NotFoundError(entry_id) from e
            raise

    async def delete(self, entry_id: str) -> bool:
        try:
            await self._client.delete(entry_id)
        except SyncError as e:
            if e.status == 404:
                return False
            raise
        return True

    async def clear_all(self) -> int:
        removed = 0
        for entry in await self._client.fetch_all():
            if await self.delete(entry.id):
                removed += 1
        return removed

    async def count(self) -> int:
        return len(await self._client.fetch_all())

    async def health_check(self) -> bool:
        return await self._client.health_check()

    async def get_remote_id(self, entry_id: str) -> str | None:
        return entry_id

    async def link_remote_id(self, entry_id: str, remote_id: str) -> bool:
        return True


def sort_recent(entries: list[PasswordEntry]) -> list[PasswordEntry]:
    return sorted(entries, key=lambda e: (e.updated_at, e.created_at, e.id), reverse=True)
