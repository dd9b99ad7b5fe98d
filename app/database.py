"""
Database engine and session handling.

Postgres via asyncpg in deployment; any SQLAlchemy async URL works
(tests use sqlite+aiosqlite). An empty DATABASE_URL leaves the engine
unset and every session request fails loudly.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for catalog, billing and practice tables."""
    pass


def get_database_url() -> str:
    """DATABASE_URL with any sslmode query param dropped; SSL goes through connect_args."""
    url = settings.database_url
    if not url:
        return ""

    base, _, query = url.partition("?")
    if not query:
        return url

    params = [p for p in query.split("&") if p and not p.startswith("sslmode=")]
    return f"{base}?{'&'.join(params)}" if params else base


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.debug)

    return create_async_engine(
        url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        connect_args={"ssl": settings.is_production},
    )


def create_engine_if_configured() -> Optional[AsyncEngine]:
    url = get_database_url()
    if not url:
        logger.warning("DATABASE_URL not configured. Database features disabled.")
        return None
    return build_engine(url)


engine = create_engine_if_configured()

async_session_maker = (
    async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    if engine
    else None
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One unit of work: commit on success, roll back on any error."""
    if not async_session_maker:
        raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: request-scoped session."""
    async with session_scope() as session:
        yield session


# Workers and scripts
get_db_context = session_scope


async def check_db() -> str:
    """Connectivity for /health: ok, disabled or error."""
    if not engine:
        return "disabled"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return "error"


async def init_db() -> None:
    """Create all tables directly. Development only; deployments run alembic."""
    if not engine:
        logger.info("Skipping database initialization - DATABASE_URL not configured")
        return

    import app.models  # noqa: F401  registers all tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db() -> None:
    if engine:
        await engine.dispose()
