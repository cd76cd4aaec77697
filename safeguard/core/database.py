"""
Async SQLAlchemy setup for the embedded SQLite store.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import MetaData, event, make_url, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from safeguard.shared.errors import StorageError
from safeguard.shared.logging import get_logger

logger = get_logger(__name__)

# Naming conventions for constraints
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for every model."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class DatabaseManager:
    """Owns the engine and session factory of one SQLite database.

    A manager is opened once and reused by every store operation; the
    backend selector keeps one per process. Tests construct their own.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self._url = url
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        """Database URL this manager connects to."""
        return self._url

    @property
    def is_initialized(self) -> bool:
        """Whether ``init()`` has been called and ``close()`` has not."""
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if self._engine is None:
            raise StorageError("Local database is not open", details={"service": "local_store"})
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory."""
        if self._session_factory is None:
            raise StorageError("Local database is not open", details={"service": "local_store"})
        return self._session_factory

    def init(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return

        url = make_url(self._url)
        in_memory = url.database in (None, "", ":memory:")

        if in_memory:
            # One shared connection, otherwise every checkout sees an empty database
            self._engine = create_async_engine(
                self._url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=self._echo,
            )
        else:
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_async_engine(self._url, echo=self._echo)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        self._setup_connection_events(in_memory=in_memory)
        logger.debug("Local database engine created", url=self._url)

    def _setup_connection_events(self, *, in_memory: bool) -> None:
        """Configure SQLite pragmas on every new connection."""
        if self._engine is None or in_memory:
            return

        sync_engine = self._engine.sync_engine

        @event.listens_for(sync_engine, "connect")
        def on_connect(dbapi_connection, connection_record) -> None:  # noqa: ANN001, ARG001
            """Enable write-ahead logging for file databases."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    async def create_schema(self) -> None:
        """Create tables and indexes that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.debug("Local database engine disposed", url=self._url)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session context manager with automatic commit/rollback."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception:
            return False
