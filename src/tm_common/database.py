"""Async engine, session factory and the FastAPI session dependency.

Money columns are NUMERIC and come back as Decimal; nothing here converts them.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """ORM base. Only the users table is mapped; everything else is raw SQL."""


def build_engine(url: str = settings.DATABASE_URL) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


engine: AsyncEngine = build_engine()

# Shared by request handlers and the matching engine (one session per settled order)
async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine, expire_on_commit=False
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def check_database() -> None:
    """Round-trip a trivial query; raises if PostgreSQL is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
