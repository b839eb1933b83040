from datetime import datetime

from pydantic import BaseModel, Field

from sydney_events.models.event import EventStatus


class EventRead(BaseModel):
    id: int
    source: str
    original_event_url: str
    title: str
    start_at: datetime
    venue_name: str
    address: str | None
    city: str
    description: str | None
    category: str | None
    tags: list[str]
    image_url: str | None
    status: EventStatus
    last_seen_at: datetime
    imported_at: datetime | None
    imported_by: str | None
    import_notes: str | None

    model_config = {"from_attributes": True}


class ImportRequest(BaseModel):
    imported_by: str = Field(min_length=1, max_length=255)
    import_notes: str | None = Field(default=None, max_length=500)


class SourceResultRead(BaseModel):
    new_count: int
    updated_count: int
    inactive_count: int
    errors: list[dict]

    model_config = {"from_attributes": True}


class RunSummaryRead(BaseModel):
    started_at: datetime
    sources: dict[str, SourceResultRead]
    total: SourceResultRead

    model_config = {"from_attributes": True}


class EventStats(BaseModel):
    total: int
    status_breakdown: dict[str, int]
