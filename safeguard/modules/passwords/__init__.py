"""Passwords module: local store, remote mirror and the persistence service."""

from .local_store import LocalStore
from .models import PasswordRecord
from .remote import RemoteStore, RemoteSyncClient
from .schemas import (
    PasswordCreate,
    PasswordEntry,
    PasswordStats,
    PasswordUpdate,
    RemotePasswordRecord,
)
from .selector import (
    BackendMode,
    BackendPlan,
    BackendSelector,
    SelectorState,
    get_password_service,
    reset_password_service,
    resolve_backend_plan,
)
from .service import PasswordStore, PersistenceService

__all__ = [
    "BackendMode",
    "BackendPlan",
    "BackendSelector",
    "LocalStore",
    "PasswordCreate",
    "PasswordEntry",
    "PasswordRecord",
    "PasswordStats",
    "PasswordStore",
    "PasswordUpdate",
    "PersistenceService",
    "RemotePasswordRecord",
    "RemoteStore",
    "RemoteSyncClient",
    "SelectorState",
    "get_password_service",
    "reset_password_service",
    "resolve_backend_plan",
]
