"""Async database access for the ledger and response services.

PostgreSQL (asyncpg) is the production target. SQLite (aiosqlite) backs the
tests and local development; there every transaction is opened with
``BEGIN IMMEDIATE`` so concurrent writers queue up instead of racing on the
balance check.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
)

from ..logging.config import get_logger
from .models import Base

if TYPE_CHECKING:
    from ..config import DatabaseSettings

logger = get_logger(__name__)

CONNECT_ATTEMPTS = 3
POOL_RECYCLE_SECONDS = 1800

_ASYNC_DRIVERS = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def normalize_url(url: str) -> str:
    """Switch plain PostgreSQL and SQLite URLs to their async drivers."""
    for prefix, replacement in _ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def _configure_sqlite(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Let the "begin" hook below issue BEGIN instead of the driver.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _log_connect_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Database not reachable, retrying",
        attempt=retry_state.attempt_number,
        error_type=type(exc).__name__ if exc else None,
    )


class DatabaseConnection:
    """Owns the engine and hands out transactional sessions.

    Services receive an instance instead of reaching for a module-level
    engine, so tests can pass in a throwaway database.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.url = normalize_url(url)
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> DatabaseConnection:
        return cls(
            url=settings.url,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            echo=settings.echo,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            if self.is_sqlite:
                self._engine = create_async_engine(self.url, echo=self._echo)
                _configure_sqlite(self._engine)
            else:
                self._engine = create_async_engine(
                    self.url,
                    pool_size=self._pool_size,
                    max_overflow=self._max_overflow,
                    pool_recycle=POOL_RECYCLE_SECONDS,
                    pool_pre_ping=True,
                    echo=self._echo,
                )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open one transaction.

        Commits when the block exits normally and rolls back when it raises.

        Usage:
            async with db.session() as session:
                result = await session.execute(query)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def connect(self) -> None:
        """Check the database is reachable, retrying with backoff."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(CONNECT_ATTEMPTS),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            before_sleep=_log_connect_retry,
            reraise=True,
        ):
            with attempt:
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Process-wide connection used by the HTTP layer
_db: DatabaseConnection | None = None


def get_db() -> DatabaseConnection:
    global _db
    if _db is None:
        from ..config import get_settings

        _db = DatabaseConnection.from_settings(get_settings().database)
    return _db


def set_db(db: DatabaseConnection | None) -> None:
    """Replace the process-wide connection (application startup, tests)."""
    global _db
    _db = db
