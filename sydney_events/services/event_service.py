from datetime import datetime, timezone

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from sydney_events.models.event import CatalogEvent, EventStatus

MAX_IMPORT_NOTES_LENGTH = 500


class EventNotFound(LookupError):
    pass


def list_events(
    db: Session,
    *,
    status: EventStatus | None = None,
    source: str | None = None,
    city: str | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 200,
) -> list[CatalogEvent]:
    stmt: Select[tuple[CatalogEvent]] = select(CatalogEvent)

    filters = []
    if status is not None:
        filters.append(CatalogEvent.status == status)
    if source:
        filters.append(CatalogEvent.source == source)
    if city:
        filters.append(func.lower(CatalogEvent.city).like(f"%{city.lower()}%"))
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(CatalogEvent.title).like(pattern),
                func.lower(CatalogEvent.venue_name).like(pattern),
                func.lower(CatalogEvent.description).like(pattern),
            )
        )
    if date_from is not None:
        filters.append(CatalogEvent.start_at >= date_from)
    if date_to is not None:
        filters.append(CatalogEvent.start_at <= date_to)

    if filters:
        stmt = stmt.where(*filters)

    stmt = stmt.order_by(CatalogEvent.start_at.asc()).limit(max(1, min(limit, 500)))
    return list(db.scalars(stmt))


def import_event(
    db: Session,
    event_id: int,
    *,
    imported_by: str,
    import_notes: str | None = None,
) -> CatalogEvent:
    """Mark an event as imported by an operator.

    This is the only code path that writes the ``imported`` status or the
    import fields; the scrape pipeline leaves both alone afterwards.
    """
    event = db.get(CatalogEvent, event_id)
    if event is None:
        raise EventNotFound(event_id)

    notes = (import_notes or "").strip()
    if len(notes) > MAX_IMPORT_NOTES_LENGTH:
        raise ValueError(f"import notes must be at most {MAX_IMPORT_NOTES_LENGTH} characters")

    event.status = EventStatus.imported
    event.imported_at = datetime.now(timezone.utc).replace(tzinfo=None)
    event.imported_by = imported_by
    if notes:
        event.import_notes = notes
    db.commit()
    db.refresh(event)
    return event


def status_breakdown(db: Session) -> dict[str, int]:
    rows = db.execute(
        select(CatalogEvent.status, func.count(CatalogEvent.id)).group_by(CatalogEvent.status)
    ).all()
    counts = {status.value: 0 for status in EventStatus}
    for status, count in rows:
        counts[EventStatus(status).value] = count
    return counts
