"""Async SQLAlchemy engine and session management for the catalog store."""

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from streamgate.core.config import settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given database URL."""
    return create_async_engine(database_url, echo=echo)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
async_session_maker = create_session_maker(engine)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet.

    Args:
        bind: Engine to use (defaults to the application engine)
    """
    # Import models so they are registered on Base.metadata
    from streamgate.modules.catalog import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session on the application's catalog database."""
    session_maker = getattr(request.app.state, "session_maker", async_session_maker)
    async with session_maker() as session:
        yield session
