from datetime import datetime

from bs4 import Tag

from sydney_events.crawlers.adapters.base import (
    DEFAULT_VENUE,
    SYDNEY,
    BaseSourceAdapter,
    first_attr,
    first_text,
)
from sydney_events.crawlers.extractors.dates import resolve_eventbrite
from sydney_events.crawlers.pipeline.types import RawCandidate

EVENTBRITE_BASE_URL = "https://www.eventbrite.com.au"
EVENTBRITE_SYDNEY_URL = "https://www.eventbrite.com.au/d/australia--sydney/events/"


class EventbriteAdapter(BaseSourceAdapter):
    source_name = "Eventbrite"
    list_url = EVENTBRITE_SYDNEY_URL
    base_url = EVENTBRITE_BASE_URL
    container_selector = ".event-card"

    def extract(self, node: Tag, now: datetime) -> RawCandidate | None:
        title = first_text(node, ".event-card__title")
        url = self.absolute_url(first_attr(node, "a", "href"))
        if not title or not url:
            return None

        return RawCandidate(
            original_event_url=url,
            title=title,
            start_at=resolve_eventbrite(first_text(node, ".event-card__date"), now),
            venue_name=first_text(node, ".event-card__venue") or DEFAULT_VENUE,
            description=first_text(node, ".event-card__description") or None,
            category=first_text(node, ".event-card__category") or "General",
            image_url=first_attr(node, ".event-card__image img", "src"),
            city=SYDNEY,
        )
