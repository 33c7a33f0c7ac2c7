"""
PhotoFiler Backend: Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and lifecycle helpers.
How:   Creates an async engine (aiosqlite by default) and a session factory
       shared by the DirectoryHandleStore and the health check.
When:  Engine is created at module import; sessions are created per operation.

The only durable state in the application is the persisted root folder
reference, so the schema is a single key-value table (see
models/directory_handle.py). SQLite needs no pool sizing; other drivers get a
small pool with pre-ping.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from photofiler.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options per driver; SQLite rejects the QueuePool arguments."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=5, pool_pre_ping=True, pool_recycle=3600)
    return options


def create_engine(database_url: str) -> AsyncEngine:
    """Build an async engine for `database_url` (tests pass a temp SQLite URL)."""
    return create_async_engine(database_url, **_engine_options(database_url))


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory with expire_on_commit=False so records stay readable
    after the transaction that loaded them has committed.
    """
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = create_engine(settings.database_url)
async_session_factory = create_session_factory(engine)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers models with a shared metadata object, used both by
    `init_models()` and by Alembic autogenerate.
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def init_models(bind: Optional[AsyncEngine] = None) -> None:
    """
    What:  Creates any missing tables (idempotent).
    When:  Application startup, before the root folder is loaded.
    """
    # Import models so they register with Base.metadata
    from photofiler.models import directory_handle  # noqa: F401

    target = bind or engine
    db_path = target.url.database
    if target.url.get_backend_name() == "sqlite" and db_path and db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Closes all pooled connections. Called during application shutdown."""
    await engine.dispose()
