from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class RawCandidate:
    original_event_url: str
    title: str
    start_at: datetime
    venue_name: str = "TBD"
    address: str | None = None
    description: str | None = None
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    image_url: str | None = None
    city: str = "Sydney"


@dataclass(slots=True)
class SourceResult:
    new_count: int = 0
    updated_count: int = 0
    inactive_count: int = 0
    errors: list[dict] = field(default_factory=list)


@dataclass(slots=True)
class RunSummary:
    started_at: datetime
    sources: dict[str, SourceResult] = field(default_factory=dict)
    total: SourceResult = field(default_factory=SourceResult)

    def compute_totals(self) -> SourceResult:
        total = SourceResult()
        for source, result in self.sources.items():
            total.new_count += result.new_count
            total.updated_count += result.updated_count
            total.inactive_count += result.inactive_count
            total.errors.extend({"source": source, **error} for error in result.errors)
        self.total = total
        return total
