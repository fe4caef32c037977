"""
Pinboard Backend: Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, FastAPI session dependency
       and the transaction helper used for multi-row writes.
How:   Creates an async engine with connection pooling and provides a
       session dependency that commits on success and rolls back on error.
Who:   Route handlers receive a session via FastAPI's dependency injection
       and pass it explicitly to the services; nothing else touches the engine.
When:  Engine is created at module import; sessions are created per request.

Connection Pooling:
    pool_size=20, max_overflow=10, pool_pre_ping and pool_recycle=3600 for
    PostgreSQL. SQLite URLs (development and tests) use SQLAlchemy's default
    pool for the dialect, which does not accept the sizing arguments.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pinboard.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Pool sizing options are only passed for server databases; the SQLite
    dialects reject them.
    """
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(database_url, **options)


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine(settings.database_url)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, which the
# services rely on to build responses once a transaction has committed.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations and
    the test suite uses for create_all().
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler, which hands it to a service
        3. On success: commits anything still pending
        4. On error: rolls back
        5. Always: closes the session (returns the connection to the pool)

    Services that need all-or-nothing writes commit explicitly through
    `atomic()`; the trailing commit here is then a no-op.

    Example usage in a route:
        @router.get("/positions")
        async def list_positions(db: AsyncSession = Depends(get_db_session)):
            return await position_service.list_positions(db)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Transactions ──────────────────────────────────────────────────────────
@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block of writes as one transaction on the given session.

    What:    Commits every change made inside the block together, or none.
    How:     The session autobegins a transaction on first use. Leaving the
             block normally commits it; any exception rolls it back and is
             re-raised to the caller.

    Example:
        async with atomic(db):
            db.add(position)
            user.positions.append(position)
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def check_connection() -> bool:
    """
    Verify the database is reachable with a SELECT 1.

    Returns False (and logs) instead of raising, so a database that is down
    at startup does not take the process with it.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database connection check failed: %s", str(e))
        return False


async def dispose_engine() -> None:
    """Close all pooled connections. Called during application shutdown."""
    await engine.dispose()
