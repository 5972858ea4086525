"""Database engine and session factory for the shorturl service.

This module builds the SQLAlchemy async engine and session factory. The
service manager owns one engine per process; tests build their own against a
temporary SQLite file.

Flow Diagram - Store Operation
==============================
::
    ┌─────────────┐
    │ MappingStore│
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Open short  │
    │ session     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Execute /   │
    │ commit      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (async with) │
    └─────────────┘

How to Use
===========
**Step 1 - Build on startup**::
    engine = build_engine(settings)
    sessionmaker = build_sessionmaker(engine)

**Step 2 - Cleanup on shutdown**::
    await engine.dispose()

Key Behaviours
===============
- Connection pooling is configured for server databases only; SQLite keeps
  SQLAlchemy's default pool.
- ``expire_on_commit`` is off so rows stay readable after commit.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the async engine from settings.
    build_sessionmaker():  Creates the session factory bound to an engine.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shorturl.config import Settings

__all__ = ["Base", "build_engine", "build_sessionmaker"]


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    options: dict[str, Any] = {
        "echo": settings.DATABASE_ECHO,
        "pool_pre_ping": True,
    }
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10, pool_recycle=3600)
    return create_async_engine(settings.DATABASE_URL, **options)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
