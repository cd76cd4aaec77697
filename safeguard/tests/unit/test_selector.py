"""Unit tests for backend selection from environment settings."""

import httpx
import pytest
from pydantic import ValidationError as PydanticValidationError

from safeguard.core.config import Settings
from safeguard.modules.passwords import selector as selector_module
from safeguard.modules.passwords.local_store import LocalStore
from safeguard.modules.passwords.remote import RemoteStore
from safeguard.modules.passwords.selector import (
    BackendMode,
    BackendSelector,
    SelectorState,
    get_password_service,
    reset_password_service,
    resolve_backend_plan,
)
from safeguard.shared.errors import ConfigurationError, StorageError

REMOTE_URL = "https://vault.test/api/passwords"


@pytest.fixture
def store_path(monkeypatch, tmp_path):
    """Point the local store at a temporary file."""
    path = tmp_path / "vault.db"
    monkeypatch.setenv("SAFEGUARD_STORE_PATH", str(path))
    return path


# ==================== Plan Resolution Tests ====================


class TestResolveBackendPlan:
    """Tests for the settings -> plan rules."""

    def test_defaults_to_local_only(self):
        plan = resolve_backend_plan(Settings())

        assert plan.mode is BackendMode.LOCAL_ONLY
        assert plan.remote_url is None
        assert plan.enable_remote_sync is False

    def test_url_without_sync_is_hybrid_with_sync_off(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL + "/")

        plan = resolve_backend_plan(Settings())

        assert plan.mode is BackendMode.HYBRID
        assert plan.remote_url == REMOTE_URL
        assert plan.enable_remote_sync is False

    def test_enable_sync(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL)
        monkeypatch.setenv("SAFEGUARD_REMOTE_ENABLE_SYNC", "true")
        monkeypatch.setenv("SAFEGUARD_REMOTE_TIMEOUT", "2.5")

        plan = resolve_backend_plan(Settings())

        assert plan.mode is BackendMode.HYBRID
        assert plan.enable_remote_sync is True
        assert plan.timeout == 2.5

    def test_force_sync(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL)
        monkeypatch.setenv("SAFEGUARD_REMOTE_FORCE", "1")

        plan = resolve_backend_plan(Settings())

        assert plan.mode is BackendMode.HYBRID
        assert plan.enable_remote_sync is True

    def test_disable_local_is_remote_only(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL)
        monkeypatch.setenv("SAFEGUARD_STORE_DISABLE_LOCAL", "true")

        plan = resolve_backend_plan(Settings())

        assert plan.mode is BackendMode.REMOTE_ONLY

    @pytest.mark.parametrize(
        "variable",
        ["SAFEGUARD_REMOTE_ENABLE_SYNC", "SAFEGUARD_REMOTE_FORCE", "SAFEGUARD_STORE_DISABLE_LOCAL"],
    )
    def test_missing_url_is_configuration_error(self, monkeypatch, variable):
        monkeypatch.setenv(variable, "true")

        with pytest.raises(ConfigurationError) as exc_info:
            resolve_backend_plan(Settings())

        assert exc_info.value.code == "CONFIGURATION"

    @pytest.mark.parametrize("url", ["ftp://vault.test/", "not a url", "http://"])
    def test_invalid_url_is_configuration_error(self, monkeypatch, url):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", url)

        with pytest.raises(ConfigurationError):
            resolve_backend_plan(Settings())

    def test_non_positive_timeout_rejected(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_TIMEOUT", "0")

        with pytest.raises(PydanticValidationError):
            Settings()

    def test_invalid_configuration_fails_selector_construction(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_ENABLE_SYNC", "true")

        with pytest.raises(ConfigurationError):
            BackendSelector(Settings())


# ==================== Selector Tests ====================


@pytest.mark.asyncio
class TestBackendSelector:
    """Tests for building the persistence service."""

    async def test_local_only_service(self, store_path, sample_fields):
        selector = BackendSelector(Settings())

        assert selector.state is SelectorState.LOCAL_ONLY

        service = await selector.get_service()
        try:
            assert isinstance(service.store, LocalStore)
            assert service.remote is None
            await service.add(sample_fields)
            assert store_path.exists()
            assert await selector.get_service() is service
        finally:
            await selector.close()

    async def test_hybrid_service(self, monkeypatch, store_path):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL)
        monkeypatch.setenv("SAFEGUARD_REMOTE_ENABLE_SYNC", "true")
        selector = BackendSelector(Settings())

        service = await selector.get_service()
        try:
            assert selector.state is SelectorState.HYBRID
            assert service.remote is not None
            assert service.enable_remote_sync is True
        finally:
            await selector.close()

    async def test_hybrid_service_starts_without_local_store(self, monkeypatch, tmp_path, sample_fields):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        monkeypatch.setenv("SAFEGUARD_STORE_PATH", str(blocker / "sub" / "db.sqlite"))
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL)
        monkeypatch.setenv("SAFEGUARD_REMOTE_ENABLE_SYNC", "true")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        selector = BackendSelector(Settings(), transport=httpx.MockTransport(handler))
        service = await selector.get_service()
        try:
            assert selector.state is SelectorState.HYBRID
            assert await service.get_all() == []
            with pytest.raises(StorageError):
                await service.add(sample_fields)
        finally:
            await selector.close()

    async def test_local_only_service_fails_without_local_store(self, monkeypatch, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        monkeypatch.setenv("SAFEGUARD_STORE_PATH", str(blocker / "sub" / "db.sqlite"))
        selector = BackendSelector(Settings())

        with pytest.raises(StorageError):
            await selector.get_service()

    async def test_remote_only_service(self, monkeypatch):
        monkeypatch.setenv("SAFEGUARD_REMOTE_BASE_URL", REMOTE_URL)
        monkeypatch.setenv("SAFEGUARD_STORE_DISABLE_LOCAL", "true")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        selector = BackendSelector(Settings(), transport=httpx.MockTransport(handler))
        service = await selector.get_service()
        try:
            assert selector.state is SelectorState.REMOTE_ONLY
            assert isinstance(service.store, RemoteStore)
            assert await service.get_all() == []
        finally:
            await selector.close()

    async def test_process_wide_service(self, store_path):
        try:
            first = await get_password_service()
            second = await get_password_service()

            assert first is second

            await reset_password_service()
            assert selector_module._selector is None

            third = await get_password_service()
            assert third is not first
        finally:
            await reset_password_service()
