import logging
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from marketplace.core.config import settings

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    SQLite connections get foreign keys switched on so cascades and
    references behave as they do on a server database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(url, echo=echo, **kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


class Database:
    """Owns the process-wide engine and session factory."""

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _ensure_engine(self) -> None:
        if self.engine is None:
            self.engine = build_engine(self.url, echo=settings.DB_ECHO)
            self.session_factory = build_session_factory(self.engine)

    async def connect(self) -> None:
        self._ensure_engine()
        # Register every table on the metadata before create_all
        from marketplace.db import base  # noqa: F401

        async with self.engine.begin() as conn:
            if settings.DB_CREATE_TABLES:
                await conn.run_sync(SQLModel.metadata.create_all)
            else:
                await conn.execute(text("SELECT 1"))
        logger.info("Database connection established")

    async def disconnect(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connection closed")
        self.engine = None
        self.session_factory = None

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        self._ensure_engine()
        async with self.session_factory() as session:
            yield session


db = Database(settings.DATABASE_URL)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async for session in db.session():
        yield session
