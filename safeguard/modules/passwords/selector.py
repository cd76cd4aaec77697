"""
Backend selection for the persistence service.

The configuration is evaluated once, when the selector is created, into a
``BackendPlan``. Invalid combinations fail right there with
``ConfigurationError`` instead of at the first read or write.

Main components:
    - BackendMode: which stores are wired together
    - resolve_backend_plan: pure settings -> plan resolution
    - BackendSelector: builds and caches the PersistenceService
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum

import httpx

from safeguard.core.config import Settings, get_settings
from safeguard.core.database import DatabaseManager
from safeguard.shared.errors import ConfigurationError
from safeguard.shared.logging import get_logger

from .local_store import LocalStore
from .remote import RemoteStore, RemoteSyncClient
from .service import PersistenceService

logger = get_logger(__name__)

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class BackendMode(StrEnum):
    """Store topology."""

    LOCAL_ONLY = "local-only"
    REMOTE_ONLY = "remote-only"
    HYBRID = "hybrid"


class SelectorState(StrEnum):
    """Lifecycle of a selector; the last three are terminal."""

    UNCONFIGURED = "unconfigured"
    EVALUATING = "evaluating"
    LOCAL_ONLY = "local-only"
    REMOTE_ONLY = "remote-only"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class BackendPlan:
    """Resolved backend configuration."""

    mode: BackendMode
    remote_url: str | None = None
    timeout: float = 5.0
    enable_remote_sync: bool = False


def validate_remote_url(url: str) -> str:
    """
    Check that ``url`` is an absolute http(s) URL.

    Args:
        url: Configured remote collection URL

    Returns:
        The URL without a trailing slash

    Raises:
        ConfigurationError: URL is malformed or not http(s)
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ConfigurationError(
            f"Invalid remote URL: {url!r}",
            details={"field": "remote.base_url", "value": url},
        ) from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationError(
            f"Remote URL must be an absolute http(s) URL: {url!r}",
            details={"field": "remote.base_url", "value": url, "constraint": "http(s) with host"},
        )

    if parsed.scheme == "http" and parsed.host not in LOOPBACK_HOSTS:
        logger.warning(
            "Remote URL uses plain HTTP; credentials will travel unencrypted",
            host=parsed.host,
        )

    return url.rstrip("/")


def _require_remote_url(settings: Settings, reason: str) -> str:
    url = settings.remote.base_url.strip()
    if not url:
        raise ConfigurationError(
            f"{reason} requires SAFEGUARD_REMOTE_BASE_URL",
            details={"field": "remote.base_url", "constraint": "required"},
        )
    return validate_remote_url(url)


def resolve_backend_plan(settings: Settings) -> BackendPlan:
    """
    Decide which stores to use.

    Rules, first match wins:
        1. local store disabled -> remote-only
        2. remote sync forced -> hybrid, sync on
        3. remote sync enabled -> hybrid, sync on
        4. remote URL present -> hybrid, sync off (can be enabled at runtime)
        5. otherwise -> local-only

    Raises:
        ConfigurationError: A rule needs a remote URL that is missing or invalid
    """
    remote = settings.remote

    if settings.store.disable_local:
        url = _require_remote_url(settings, "Disabling the local store")
        return BackendPlan(BackendMode.REMOTE_ONLY, url, remote.timeout, enable_remote_sync=False)

    if remote.force:
        url = _require_remote_url(settings, "Forced remote sync")
        return BackendPlan(BackendMode.HYBRID, url, remote.timeout, enable_remote_sync=True)

    if remote.enable_sync:
        url = _require_remote_url(settings, "Remote sync")
        return BackendPlan(BackendMode.HYBRID, url, remote.timeout, enable_remote_sync=True)

    if remote.base_url.strip():
        url = validate_remote_url(remote.base_url.strip())
        return BackendPlan(BackendMode.HYBRID, url, remote.timeout, enable_remote_sync=False)

    return BackendPlan(BackendMode.LOCAL_ONLY, timeout=remote.timeout)


class BackendSelector:
    """
    Wires stores into a PersistenceService according to the settings.

    Example:
        selector = BackendSelector()
        service = await selector.get_service()
        entries = await service.get_all()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            settings: Configuration to evaluate; process settings if omitted
            transport: HTTP transport handed to the remote client

        Raises:
            ConfigurationError: Settings describe an invalid backend
        """
        self._settings = settings or get_settings()
        self._transport = transport
        self._service: PersistenceService | None = None
        self._state = SelectorState.UNCONFIGURED
        self._plan = self._evaluate()

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def plan(self) -> BackendPlan:
        return self._plan

    def _evaluate(self) -> BackendPlan:
        self._state = SelectorState.EVALUATING
        try:
            plan = resolve_backend_plan(self._settings)
        except ConfigurationError:
            self._state = SelectorState.UNCONFIGURED
            raise

        self._state = SelectorState(plan.mode.value)
        logger.info(
            "Persistence backend selected",
            mode=plan.mode.value,
            remote_url=plan.remote_url,
            enable_remote_sync=plan.enable_remote_sync,
        )
        return plan

    def _build_service(self) -> PersistenceService:
        plan = self._plan
        remote = None
        if plan.remote_url:
            remote = RemoteSyncClient(plan.remote_url, timeout=plan.timeout, transport=self._transport)

        if plan.mode is BackendMode.REMOTE_ONLY:
            return PersistenceService(RemoteStore(remote))

        database = DatabaseManager(self._settings.store.async_url, echo=self._settings.store.echo)
        return PersistenceService(
            LocalStore(database),
            remote,
            enable_remote_sync=plan.enable_remote_sync,
        )

    async def get_service(self) -> PersistenceService:
        """Build, open and cache the service on first use."""
        if self._service is None:
            service = self._build_service()
            await service.open()
            self._service = service
        return self._service

    async def close(self) -> None:
        if self._service is not None:
            await self._service.close()
            self._service = None


_selector: BackendSelector | None = None
_selector_lock = asyncio.Lock()


async def get_password_service() -> PersistenceService:
    """Process-wide persistence service built from the environment."""
    global _selector
    async with _selector_lock:
        if _selector is None:
            _selector = BackendSelector()
        return await _selector.get_service()


async def reset_password_service() -> None:
    """Close the process-wide service; the next call rebuilds it."""
    global _selector
    async with _selector_lock:
        if _selector is not None:
            await _selector.close()
            _selector = None
