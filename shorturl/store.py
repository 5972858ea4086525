"""Mapping store: durable, uniqueness-enforcing persistence of short codes.

The store is the only source of truth for uniqueness. Concurrent requests can
race between "does this URL exist" and "insert", so ``insert_mapping`` relies
on the unique constraints and reports which side of the pair collided.

Insert Flow Diagram
===================
::
    ┌──────────────────┐
    │ insert_mapping() │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐   OK    ┌──────────────┐
    │ INSERT + COMMIT  ├────────►│ STORED       │
    └────────┬─────────┘         └──────────────┘
             │ IntegrityError
             ▼
    ┌──────────────────┐   HIT   ┌──────────────┐
    │ re-read by URL   ├────────►│ALREADY_EXISTS│
    └────────┬─────────┘         └──────────────┘
             │ MISS
             ▼
    ┌──────────────────────┐
    │ DUPLICATE_SHORT_CODE │
    └──────────────────────┘

Key Behaviours
===============
- Each operation runs in its own short-lived session.
- Lookups return ``None`` for "absent"; storage failures raise
  ``StorageError`` so the two are never conflated.
- Nothing is retried here; retry policy belongs to the caller or the driver.

Classes:
    InsertOutcome:  Result of ``insert_mapping``.
    MappingStore:  SQLAlchemy-backed store.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import Connection, func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shorturl.database import Base
from shorturl.enums import InsertStatus
from shorturl.errors import StorageError
from shorturl.models import UrlMapping

__all__ = ["InsertOutcome", "MappingStore"]

logger = logging.getLogger("shorturl.store")


@dataclass(frozen=True)
class InsertOutcome:
    """Result of persisting a pair.

    ``short_code`` is the stored code for STORED, the winner's code for
    ALREADY_EXISTS and the rejected candidate for DUPLICATE_SHORT_CODE.
    """

    status: InsertStatus
    short_code: str

    @property
    def stored(self) -> bool:
        return self.status is InsertStatus.STORED


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        logger.error(f"Storage failure during {operation}: {exc}")
        raise StorageError(f"Storage failure during {operation}") from exc


def _create_schema(sync_conn: Connection) -> None:
    Base.metadata.create_all(sync_conn)
    for index in UrlMapping.__table__.indexes:
        index.create(sync_conn, checkfirst=True)


class MappingStore:
    """Persistence of ``UrlMapping`` rows with both columns unique."""

    def __init__(self, engine: AsyncEngine, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._engine = engine
        self._sessionmaker = sessionmaker

    async def ensure_schema(self) -> None:
        """Create the table and its unique indexes if they are missing.

        Safe to call on every boot. The indexes are checked even when the
        table already exists, so a table created without them gains them.
        """
        with _storage_errors("ensure_schema"):
            async with self._engine.begin() as conn:
                await conn.run_sync(_create_schema)
        logger.info(f"Schema ready: table '{UrlMapping.__tablename__}'")

    async def find_short_code_by_url(self, original_url: str) -> str | None:
        with _storage_errors("find_short_code_by_url"):
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(UrlMapping.short_code).where(UrlMapping.original_url == original_url)
                )
                return result.scalar_one_or_none()

    async def find_url_by_short_code(self, short_code: str) -> str | None:
        with _storage_errors("find_url_by_short_code"):
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(UrlMapping.original_url).where(UrlMapping.short_code == short_code)
                )
                return result.scalar_one_or_none()

    async def insert_mapping(self, short_code: str, original_url: str) -> InsertOutcome:
        """Persist a new pair and report which constraint, if any, rejected it."""
        if await self._insert(short_code, original_url):
            logger.info(f"Stored mapping {short_code} -> {original_url}")
            return InsertOutcome(InsertStatus.STORED, short_code)

        existing = await self.find_short_code_by_url(original_url)
        if existing is not None:
            logger.info(f"URL already mapped to {existing} by a concurrent writer: {original_url}")
            return InsertOutcome(InsertStatus.ALREADY_EXISTS, existing)

        logger.error(f"Duplicate short code '{short_code}' rejected by the store")
        return InsertOutcome(InsertStatus.DUPLICATE_SHORT_CODE, short_code)

    async def _insert(self, short_code: str, original_url: str) -> bool:
        """Return False when a unique constraint rejected the row."""
        with _storage_errors("insert_mapping"):
            try:
                async with self._sessionmaker() as session:
                    async with session.begin():
                        session.add(UrlMapping(short_code=short_code, original_url=original_url))
            except IntegrityError:
                return False
        return True

    async def max_short_code(self) -> str | None:
        with _storage_errors("max_short_code"):
            async with self._sessionmaker() as session:
                result = await session.execute(select(func.max(UrlMapping.short_code)))
                return result.scalar_one_or_none()

    async def ping(self) -> None:
        with _storage_errors("ping"):
            async with self._sessionmaker() as session:
                await session.execute(text("SELECT 1"))
