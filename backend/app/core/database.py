"""
Database layer — async SQLAlchemy 2.0 engine for the record store.

Holds the risk-score log and the SOS emergency reports. The risk and
responder computations never touch the database.

Usage:
    from backend.app.core.database import get_db, Base

    @router.get("/reports")
    async def list_reports(db: AsyncSession = Depends(get_db)):
        ...
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.DATABASE_ECHO}
    # SQLite (tests, local demos) uses its own pool class without sizing knobs
    if not settings.DATABASE_URL.startswith("sqlite"):
        options["pool_size"] = settings.DATABASE_POOL_SIZE
        options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
        options["pool_pre_ping"] = True
    return options


# ── Engine ──
engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

# ── Session Factory ──
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── ORM Base ──
class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Dependency ──
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an async database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Lifecycle ──
async def init_db() -> None:
    """Create all tables (dev/test only; production uses migrations)."""
    # Import models so they register on Base.metadata
    from backend.app.records import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")


async def close_db() -> None:
    """Dispose engine connections."""
    await engine.dispose()
    logger.info("Database connections closed")
