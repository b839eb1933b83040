from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from sydney_events.crawlers.scheduler import ScrapeScheduler
from sydney_events.db.session import get_db
from sydney_events.models.event import EventStatus
from sydney_events.schemas.event import EventRead, EventStats, ImportRequest, RunSummaryRead
from sydney_events.services.event_service import EventNotFound, import_event, list_events, status_breakdown

router = APIRouter(tags=["events"])


def get_scheduler(request: Request) -> ScrapeScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler is not configured")
    return scheduler


@router.get("/events", response_model=list[EventRead])
def get_events(
    status: EventStatus | None = None,
    source: str | None = None,
    city: str | None = None,
    search: str | None = Query(default=None, max_length=100),
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[EventRead]:
    events = list_events(
        db,
        status=status,
        source=source,
        city=city,
        search=search,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    return [EventRead.model_validate(event) for event in events]


@router.get("/events/stats", response_model=EventStats)
def get_event_stats(db: Session = Depends(get_db)) -> EventStats:
    breakdown = status_breakdown(db)
    return EventStats(total=sum(breakdown.values()), status_breakdown=breakdown)


@router.post("/events/scrape", response_model=RunSummaryRead)
async def trigger_scrape(scheduler: ScrapeScheduler = Depends(get_scheduler)) -> RunSummaryRead:
    summary = await scheduler.trigger_manually()
    if summary is None:
        raise HTTPException(status_code=409, detail="A scrape pass is already running")
    return RunSummaryRead.model_validate(asdict(summary))


@router.post("/events/{event_id}/import", response_model=EventRead)
def post_import_event(
    event_id: int,
    payload: ImportRequest,
    db: Session = Depends(get_db),
) -> EventRead:
    try:
        event = import_event(
            db,
            event_id,
            imported_by=payload.imported_by,
            import_notes=payload.import_notes,
        )
    except EventNotFound:
        raise HTTPException(status_code=404, detail="Event not found")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return EventRead.model_validate(event)
