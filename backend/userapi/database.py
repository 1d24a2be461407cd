"""
User Directory API: Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   `Database` owns one async engine with connection pooling and a session
       factory. The app factory builds exactly one `Database` per process and
       stores it on `app.state`; request handlers reach it through the
       `get_db_session` dependency, which auto-commits on success and
       auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created with the app; sessions are created per-request.

Connection Pooling Strategy (server databases):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs keep the dialect's default pool; only pre-ping is applied.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Awaitable, Dict, TypeVar

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from userapi.config import Settings
from userapi.exceptions import StoreTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share a single metadata
    object, which `Database.create_tables()` uses to build the schema.
    """
    pass


class Database:
    """
    Process-wide store handle: one engine, one session factory.

    The engine is safe for concurrent use by many requests; each request
    gets its own session from `session_factory`.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.operation_timeout = settings.db_operation_timeout

        engine_kwargs: Dict[str, Any] = {
            "pool_pre_ping": settings.db_pool_pre_ping,
            # Echo SQL queries in DEBUG mode for development visibility
            "echo": settings.log_level == "DEBUG",
        }
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)

        # expire_on_commit=False: ORM objects stay readable after commit,
        # the session dependency commits before the response is serialized
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        """Create any missing tables registered on `Base.metadata`."""
        # Import models so they are registered with Base before create_all
        from userapi.models.user import User  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("User store schema ready")

    async def ping(self) -> bool:
        """Run `SELECT 1`; returns False instead of raising when unreachable."""
        try:
            async with self.engine.connect() as conn:
                await run_with_timeout(
                    conn.execute(text("SELECT 1")), "ping", self.operation_timeout
                )
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """
        What:  Gracefully closes all connections in the pool.
        When:  Called during application shutdown (lifespan handler).
        """
        await self.engine.dispose()


async def run_with_timeout(awaitable: Awaitable[T], operation: str, timeout: float) -> T:
    """
    Await a single store call under a fixed time budget.

    The budget is released as soon as the call completes or expires;
    nothing is retried. Expiry raises StoreTimeoutError.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Store operation '%s' exceeded %.1fs budget", operation, timeout)
        raise StoreTimeoutError(operation=operation, timeout=timeout)


# ── Dependencies ──────────────────────────────────────────────────────────
def get_database(request: Request) -> Database:
    """FastAPI dependency returning the process-wide Database from app state."""
    return request.app.state.database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the app's session factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Raises:
        Any exception from the handler is re-raised after rollback, so the
        global error handlers can respond with the right status code.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
