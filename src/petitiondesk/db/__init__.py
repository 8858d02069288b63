"""Database engine and unit-of-work helpers.

A process holds one Database: an async engine plus its session factory,
built from DatabaseSettings the first time it is needed. Request handlers
receive a plain session from api.dependencies.get_db_session and commit
when their operation succeeds; scripts use Database.transaction(), which
commits on a clean exit and rolls back otherwise.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from petitiondesk.core.config import DatabaseSettings

logger = logging.getLogger(__name__)

# Plain PostgreSQL URLs are served through the psycopg async driver
_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+psycopg://",
    "postgres://": "postgresql+psycopg://",
}


def async_database_url(url: str) -> str:
    """Rewrite a configured URL so it names an async driver.

    URLs that already name a driver are returned unchanged.
    """
    for scheme, replacement in _ASYNC_DRIVERS.items():
        if url.startswith(scheme):
            return replacement + url[len(scheme) :]
    return url


class Database:
    """An engine and the sessions bound to it.

    Example:
        database = Database.from_settings(settings.database)
        async with database.transaction() as session:
            session.add(user)
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> Database:
        engine = create_async_engine(
            async_database_url(str(settings.url)),
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_pre_ping=True,
            echo=settings.echo,
        )
        logger.info(
            "Database engine created",
            extra={"pool_size": settings.pool_size, "max_overflow": settings.max_overflow},
        )
        return cls(engine)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """A session whose uncommitted work is discarded on exit.

        The caller decides when to commit.
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """A session committed when the block completes without raising."""
        async with self.session() as session:
            yield session
            await session.commit()

    async def dispose(self) -> None:
        await self.engine.dispose()


_database: Database | None = None


def get_database() -> Database:
    """The process-wide database, created from settings on first use."""
    global _database

    if _database is None:
        from petitiondesk.core.settings import get_settings

        _database = Database.from_settings(get_settings().database)
    return _database


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """Session on the process-wide database; see Database.session()."""
    async with get_database().session() as session:
        yield session


async def close_engine() -> None:
    """Dispose of the process-wide engine, if one was created."""
    global _database

    if _database is not None:
        await _database.dispose()
        _database = None
