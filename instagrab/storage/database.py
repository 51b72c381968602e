"""Database engine and session management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from instagrab.models.schema import Base
from instagrab.utils.config import DB_URL
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


def to_async_url(db_url: str) -> str:
    """SQLite async requires aiosqlite."""
    if db_url.startswith("sqlite://"):
        return db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return db_url


def create_engine_for(db_url: str) -> AsyncEngine:
    is_sqlite = db_url.startswith("sqlite")
    engine = create_async_engine(
        to_async_url(db_url),
        echo=False,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )

    if is_sqlite:
        # Background jobs write concurrently
        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# Application engine and session factory
async_engine = create_engine_for(DB_URL)
AsyncSessionLocal = create_session_factory(async_engine)


async def init_db(engine: AsyncEngine = async_engine) -> None:
    """
    Initialize the database by creating all tables.
    This should be called once at application startup.
    """
    logger.info(f"Initializing database at: {engine.url}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized successfully")


def session_scope(factory: async_sessionmaker):
    """
    Build a ``get_async_session``-style context manager for ``factory``.

    Commits when the block succeeds, rolls back and re-raises otherwise.
    """
    @asynccontextmanager
    async def scope() -> AsyncGenerator[AsyncSession, None]:
        session = factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    return scope


# Usage:
#     async with get_async_session() as session:
#         await session.execute(...)
get_async_session = session_scope(AsyncSessionLocal)


async def close_db(engine: AsyncEngine = async_engine) -> None:
    """Clean up database connections."""
    await engine.dispose()
    logger.info("Database connections closed")
