"""
CampusNotes Backend: Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, scoped transactions and the
       FastAPI session dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that commits on success and rolls back on error, and an
       `atomic()` scope for multi-statement writes that must land together.
Who:   Routes receive sessions via dependency injection; services open
       `atomic()` scopes on those sessions.
When:  Engine is created at module import; sessions are created per-request.

Transaction Model:
    Every request gets one session. Plain CRUD relies on the commit performed
    by `get_db_session()` at the end of the request. Operations with work that
    must only happen after a successful commit (cascade delete, note delete:
    blob removal follows the metadata commit) wrap their writes in
    `atomic(session)` and commit explicitly before touching the object store.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    stop_after_attempt,
    wait_fixed,
)

from campusnotes.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    """Pool sizing only applies to server databases; SQLite picks its own pool."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: response building reads attributes after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits whatever the handler left pending
        4. On error: rolls back and re-raises for the global handlers
        5. Always: closes the session (returns connection to pool)
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


# ── Scoped Transaction ────────────────────────────────────────────────────
@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Commit-or-rollback scope around a group of writes.

    What:    Everything executed on `session` inside the block is committed as
             one unit when the block exits cleanly, and rolled back when any
             exception escapes it.
    Who:     CascadeDeletionEngine, NoteService.delete_note, FacultyService.
    Why:     The caller gets a definite point after which the metadata state is
             final, which is where best-effort blob deletion may start.

    Example:
        async with atomic(db):
            await db.execute(delete(Note).where(Note.id.in_(ids)))
            await db.execute(delete(Subject).where(Subject.id == subject_id))
        # committed here
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
@retry(
    stop=stop_after_attempt(settings.db_connect_attempts),
    wait=wait_fixed(settings.db_connect_wait),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def verify_connection() -> None:
    """
    Probe the database with SELECT 1, retrying while it comes up.

    Called once from the lifespan handler. Containers frequently start the
    API before the database accepts connections; the probe waits a bounded
    number of attempts instead of failing the first request.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection established")


async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool (shutdown)."""
    await engine.dispose()
