"""Async SQLAlchemy engine, session factory and lifecycle.

The engine is owned by a `Database` instance that the FastAPI lifespan
constructs at startup, stores on ``app.state.db`` and disposes on
shutdown.  Nothing here connects at import time, so tests and scripts can
build their own `Database` against any URL (``sqlite+aiosqlite://`` for an
in-memory database, ``postgresql+asyncpg://...`` in production).

One request = one session = one transaction: `get_session` commits when
the handler returns and rolls back when it raises.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from lms.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def _engine_kwargs(url: str, echo: bool) -> dict:
    parsed = make_url(url)
    kwargs: dict = {"echo": echo}

    if parsed.get_backend_name() == "sqlite":
        # check_same_thread: TestClient drives the app from a portal thread.
        kwargs["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            # An in-memory database lives and dies with its connection, so
            # every session must share the same one.
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
        kwargs["pool_pre_ping"] = True

    return kwargs


class Database:
    """Explicitly constructed persistence dependency.

    Usage::

        db = Database.from_settings(SETTINGS)
        await db.create_schema()
        async with db.session() as session:
            ...
        await db.dispose()
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **_engine_kwargs(url, echo))
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(settings.database_url, echo=settings.is_dev)

    async def create_schema(self) -> None:
        # Importing the table module registers every table on Base.metadata.
        import lms.db.tables  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Transactional scope: commit on success, roll back on exception."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


@asynccontextmanager
async def lifespan_db(settings: Settings) -> AsyncIterator[Database]:
    """Startup/shutdown hook for the database.

    Call from FastAPI's lifespan context manager.
    """
    db = Database.from_settings(settings)
    logger.info(
        "Database engine created: %s",
        db.engine.url.render_as_string(hide_password=True),
    )
    if settings.db_create_schema:
        await db.create_schema()
    try:
        yield db
    finally:
        await db.dispose()
        logger.info("Database engine disposed")


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a request-scoped async session."""
    db: Database | None = getattr(request.app.state, "db", None)
    if db is None:
        raise RuntimeError("Database is not initialised; is the lifespan running?")
    async with db.session() as session:
        yield session
