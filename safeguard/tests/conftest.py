"""Pytest configuration and fixtures for safeguard tests."""

import os
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from safeguard.core.config import get_settings
from safeguard.core.database import DatabaseManager
from safeguard.modules.passwords.local_store import LocalStore
from safeguard.modules.passwords.remote import RemoteSyncClient
from safeguard.modules.passwords.schemas import PasswordEntry

SAMPLE_ENTRY = {
    "service": "GitHub",
    "username": "dev",
    "password": "s3cret!",
}


# ==================== Settings Fixtures ====================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Isolate every test from SAFEGUARD_* variables and any local .env file."""
    for key in list(os.environ):
        if key.startswith("SAFEGUARD_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==================== Database Fixtures ====================


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of a fresh SQLite file for one test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'safeguard.db'}"


@pytest.fixture
async def local_store(database_url: str) -> AsyncGenerator[LocalStore, None]:
    """An opened local store on a temporary database file."""
    store = LocalStore(DatabaseManager(database_url))
    await store.open()
    yield store
    await store.close()


# ==================== Entry Fixtures ====================


@pytest.fixture
def sample_fields() -> dict[str, str]:
    """Valid input for adding an entry."""
    return dict(SAMPLE_ENTRY)


# ==================== Remote Fixtures ====================


@pytest.fixture
def entry_factory() -> Callable[..., PasswordEntry]:
    """Build PasswordEntry objects with sensible defaults."""

    def _make(**overrides: Any) -> PasswordEntry:
        now = datetime.now(UTC)
        data: dict[str, Any] = {
            "id": "r-1",
            **SAMPLE_ENTRY,
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return PasswordEntry(**data)

    return _make


@pytest.fixture
def mock_remote(entry_factory) -> AsyncMock:
    """A RemoteSyncClient mock whose insert assigns remote id ``r-1``."""
    remote = AsyncMock(spec=RemoteSyncClient)
    remote.insert.return_value = entry_factory(id="r-1")
    remote.update.return_value = entry_factory(id="r-1")
    remote.delete.return_value = None
    remote.fetch_all.return_value = []
    remote.health_check.return_value = True
    return remote
