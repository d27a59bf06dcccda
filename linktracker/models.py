"""SQLAlchemy ORM models for the link tracker.

Data Model Layout
=================
::
    links table
    ├─ id (VARCHAR(32) PRIMARY KEY, nanoid)
    ├─ name (VARCHAR(100) NOT NULL)
    ├─ original_url (TEXT NOT NULL)
    ├─ short_code (VARCHAR(20) UNIQUE, idx_links_short_code)
    ├─ created_at (TIMESTAMPTZ NOT NULL)
    └─ click_count (INTEGER DEFAULT 0)

    clicks table
    ├─ id (INTEGER PRIMARY KEY AUTOINCREMENT)
    ├─ link_id (FK -> links.id, idx_clicks_link_id)
    ├─ ip_address, country, city, region (nullable)
    ├─ latitude, longitude (FLOAT, nullable)
    ├─ user_agent, referer (TEXT, nullable)
    └─ clicked_at (TIMESTAMPTZ NOT NULL, idx_clicks_clicked_at)

Key Behaviours
===============
- A Link owns its Clicks. Deletion is cascaded by the service layer, which
  removes the clicks explicitly before the link row.
- short_code is assigned once at creation and never changes.
- click_count is a denormalized counter maintained by click recording.
- Timestamps are set in Python as timezone-aware UTC values.

Classes:
    Link:  A named short link with its destination and click counter.
    Click:  One recorded visit through a tracking URL.
"""

import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from linktracker.database import Base

__all__ = ["Link", "Click", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Link(Base):
    __tablename__ = "links"
    __table_args__ = (Index("idx_links_short_code", "short_code"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    short_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Link(id='{self.id}', short_code='{self.short_code}', click_count={self.click_count})>"


class Click(Base):
    __tablename__ = "clicks"
    __table_args__ = (
        Index("idx_clicks_link_id", "link_id"),
        Index("idx_clicks_clicked_at", "clicked_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    link_id: Mapped[str] = mapped_column(ForeignKey("links.id"), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    country: Mapped[str | None] = mapped_column(String(100))
    city: Mapped[str | None] = mapped_column(String(100))
    region: Mapped[str | None] = mapped_column(String(100))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    user_agent: Mapped[str | None] = mapped_column(Text)
    referer: Mapped[str | None] = mapped_column(Text)
    clicked_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Click(id={self.id}, link_id='{self.link_id}', country='{self.country}')>"
