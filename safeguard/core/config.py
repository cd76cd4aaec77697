"""
Application configuration.

All values come from environment variables (or a local ``.env`` file) and are
read once, when the backend selector resolves which stores to wire together.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseSettings):
    """Local embedded store (SQLite)."""

    model_config = SettingsConfigDict(env_prefix="SAFEGUARD_STORE_", env_file=".env", extra="ignore")

    path: str = "safeguard.db"
    # Full SQLAlchemy URL, overrides ``path`` when set
    url: str = ""
    echo: bool = False
    disable_local: bool = False

    @property
    def async_url(self) -> str:
        """URL for the aiosqlite driver."""
        if self.url:
            return self.url
        if self.path == ":memory:":
            return "sqlite+aiosqlite:///:memory:"
        return f"sqlite+aiosqlite:///{Path(self.path).expanduser()}"


class RemoteConfig(BaseSettings):
    """Remote HTTP collection used as a best-effort mirror."""

    model_config = SettingsConfigDict(env_prefix="SAFEGUARD_REMOTE_", env_file=".env", extra="ignore")

    base_url: str = ""
    # Seconds before a remote call is abandoned
    timeout: float = Field(default=5.0, gt=0)
    enable_sync: bool = False
    # Always mirror writes when a remote endpoint is configured
    force: bool = False


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="SAFEGUARD_LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    format: str = "console"


class AppConfig(BaseSettings):
    """General application configuration."""

    model_config = SettingsConfigDict(env_prefix="SAFEGUARD_APP_", env_file=".env", extra="ignore")

    name: str = "Memory Safe Guard"
    debug: bool = False


class Settings:
    """Aggregates every configuration section."""

    def __init__(self) -> None:
        self.store = StoreConfig()
        self.remote = RemoteConfig()
        self.logging = LoggingConfig()
        self.app = AppConfig()


@lru_cache
def get_settings() -> Settings:
    """Get the settings singleton (cached)."""
    return Settings()
