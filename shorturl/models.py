"""SQLAlchemy ORM models for the shorturl service.

Data Model Layout
=================
::
    url_mappings table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ short_code (VARCHAR(20), UNIQUE INDEX uq_url_mappings_short_code)
    ├─ original_url (TEXT NOT NULL, UNIQUE INDEX uq_url_mappings_original_url)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

Key Behaviours
===============
- Both ``short_code`` and ``original_url`` carry a named unique index; the
  database, not the application, is the arbiter of uniqueness.
- Rows are written once and never updated or deleted.
- Short codes are fixed width, so the lexical maximum is the numeric maximum.

Classes:
    UrlMapping:  One short code to original URL pair.
"""

import datetime

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shorturl.database import Base

__all__ = ["UrlMapping"]


class UrlMapping(Base):
    __tablename__ = "url_mappings"
    __table_args__ = (
        Index("uq_url_mappings_short_code", "short_code", unique=True),
        Index("uq_url_mappings_original_url", "original_url", unique=True),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(20), nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<UrlMapping(id={self.id}, short_code='{self.short_code}')>"
