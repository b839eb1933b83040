from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from sydney_events.core.errors import PersistenceFailed
from sydney_events.models.event import CatalogEvent, EventStatus, url_digest

# The sweep never touches rows an operator has already acted on.
_SWEEP_EXEMPT = (EventStatus.inactive, EventStatus.imported)


class CatalogStore:
    """The four catalog operations the reconciliation engine relies on.

    Every call runs in its own short session and commits before returning, so
    a failure in one call leaves earlier writes in place.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def find_one(self, source: str, original_event_url: str) -> CatalogEvent | None:
        try:
            with self.session_factory() as db:
                return db.scalar(
                    select(CatalogEvent).where(
                        CatalogEvent.source == source,
                        CatalogEvent.url_hash == url_digest(original_event_url),
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceFailed(f"lookup failed: {exc}") from exc

    def insert_one(self, fields: dict[str, Any]) -> int:
        try:
            with self.session_factory() as db:
                fields = {**fields, "url_hash": url_digest(fields["original_event_url"])}
                row = CatalogEvent(**fields)
                db.add(row)
                db.commit()
                return row.id
        except SQLAlchemyError as exc:
            raise PersistenceFailed(f"insert failed: {exc}") from exc

    def update_one(self, event_id: int, fields: dict[str, Any]) -> None:
        try:
            with self.session_factory() as db:
                result = db.execute(
                    update(CatalogEvent)
                    .where(CatalogEvent.id == event_id)
                    .values(**fields)
                    .execution_options(synchronize_session=False)
                )
                matched = result.rowcount
                db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceFailed(f"update failed: {exc}") from exc
        if matched == 0:
            raise PersistenceFailed(f"update matched no row for id={event_id}")

    def mark_stale_inactive(self, source: str, cutoff: datetime) -> int:
        """Flip rows of ``source`` not seen since ``cutoff`` to inactive."""
        try:
            with self.session_factory() as db:
                result = db.execute(
                    update(CatalogEvent)
                    .where(
                        CatalogEvent.source == source,
                        CatalogEvent.last_seen_at < cutoff,
                        CatalogEvent.status.not_in(_SWEEP_EXEMPT),
                    )
                    .values(status=EventStatus.inactive)
                    .execution_options(synchronize_session=False)
                )
                flipped = result.rowcount
                db.commit()
                return flipped
        except SQLAlchemyError as exc:
            raise PersistenceFailed(f"sweep failed: {exc}") from exc
