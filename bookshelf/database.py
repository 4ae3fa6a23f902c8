"""SQLAlchemy async engine, session, and dependency."""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bookshelf.config import get_settings


settings = get_settings()


def build_engine(dsn: str) -> AsyncEngine:
    # SQLite (local runs, tests) does not take a sized connection pool
    if dsn.startswith("sqlite"):
        return create_async_engine(dsn, echo=False)
    return create_async_engine(
        dsn,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
        echo=False,
    )


engine = build_engine(settings.database_dsn)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def insert_ignore(dialect_name: str, model):
    """INSERT for ``model`` that skips rows colliding with a primary or unique key."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert

        return pg_insert(model).on_conflict_do_nothing()
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        return sqlite_insert(model).on_conflict_do_nothing()
    raise ValueError(f"insert_ignore does not support the {dialect_name!r} dialect")
