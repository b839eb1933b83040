import hashlib
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SqlEnum, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from sydney_events.db.session import Base


def url_digest(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class EventStatus(str, Enum):
    new = "new"
    updated = "updated"
    inactive = "inactive"
    imported = "imported"


class CatalogEvent(Base):
    __tablename__ = "events"
    __table_args__ = (
        UniqueConstraint("source", "url_hash", name="uq_events_source_url"),
        Index("ix_events_source_last_seen", "source", "last_seen_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    source: Mapped[str] = mapped_column(String(64), nullable=False)
    original_event_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    # sha256 of original_event_url; full URLs are too long for a MySQL unique key.
    url_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    venue_name: Mapped[str] = mapped_column(String(255), nullable=False, default="TBD")
    address: Mapped[str | None] = mapped_column(String(512))
    city: Mapped[str] = mapped_column(String(255), nullable=False, default="Sydney")
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(100), index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    image_url: Mapped[str | None] = mapped_column(String(1024))

    status: Mapped[EventStatus] = mapped_column(
        SqlEnum(EventStatus), nullable=False, default=EventStatus.new, index=True
    )
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    imported_at: Mapped[datetime | None] = mapped_column(DateTime)
    imported_by: Mapped[str | None] = mapped_column(String(255))
    import_notes: Mapped[str | None] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )
