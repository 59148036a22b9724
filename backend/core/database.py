"""
Engine and session lifecycle for the timing database.

One process-wide DatabaseManager holds the async engine. Repositories and the
SQL timing store borrow sessions from it; a session commits when its block
exits cleanly and rolls back otherwise.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from models.base import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the engine and session factory of one timing database."""

    def __init__(self, database_url: str) -> None:
        self._database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def _is_sqlite(self) -> bool:
        return self._database_url.startswith("sqlite+aiosqlite")

    async def init(self) -> None:
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self._database_url,
            echo=False,
            pool_pre_ping=not self._is_sqlite,
        )
        if self._is_sqlite:

            @event.listens_for(self._engine.sync_engine, "connect")
            def _sqlite_pragmas(dbapi_connection, connection_record) -> None:  # pragma: no cover
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.close()

        self._sessionmaker = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )
        logger.info("Timing database engine ready (%s)", self._engine.url.get_backend_name())

    async def create_schema(self) -> None:
        """Create the event, pilot, stage and released-time tables when missing."""
        if self._engine is None:
            raise RuntimeError("DatabaseManager is not initialized. Call init() first.")
        import models  # noqa: F401  (registers all tables on Base.metadata)

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Timing schema ready")

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Timing database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._sessionmaker is None:
            raise RuntimeError("DatabaseManager is not initialized. Call init() first.")

        session: AsyncSession = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


_db_manager: Optional[DatabaseManager] = None


async def init_database(database_url: str, create_schema: bool = True) -> DatabaseManager:
    """Open (once) the shared timing database, creating its tables by default."""
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)
    await _db_manager.init()
    if create_schema:
        await _db_manager.create_schema()
    return _db_manager


async def dispose_database() -> None:
    global _db_manager

    if _db_manager is not None:
        await _db_manager.dispose()
        _db_manager = None


def get_database_manager() -> DatabaseManager:
    if _db_manager is None:
        raise RuntimeError("DatabaseManager is not initialized.")
    return _db_manager
