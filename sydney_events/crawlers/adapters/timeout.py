from datetime import datetime

from bs4 import Tag

from sydney_events.crawlers.adapters.base import (
    DEFAULT_VENUE,
    SYDNEY,
    BaseSourceAdapter,
    first_attr,
    first_text,
)
from sydney_events.crawlers.extractors.dates import resolve_timeout
from sydney_events.crawlers.pipeline.types import RawCandidate

TIMEOUT_BASE_URL = "https://www.timeout.com"
TIMEOUT_SYDNEY_URL = "https://www.timeout.com/sydney/things-to-do/events-in-sydney-this-week"


class TimeOutAdapter(BaseSourceAdapter):
    source_name = "TimeOut"
    list_url = TIMEOUT_SYDNEY_URL
    base_url = TIMEOUT_BASE_URL
    container_selector = ".card"

    def extract(self, node: Tag, now: datetime) -> RawCandidate | None:
        title = first_text(node, "h3, .card__title")
        url = self.absolute_url(first_attr(node, "a", "href"))
        if not title or not url:
            return None

        return RawCandidate(
            original_event_url=url,
            title=title,
            start_at=resolve_timeout(first_text(node, ".card__date, .date"), now),
            venue_name=first_text(node, ".card__venue, .venue") or DEFAULT_VENUE,
            description=first_text(node, ".card__description, p") or None,
            category=first_text(node, ".card__category, .category") or "Entertainment",
            image_url=first_attr(node, "img", "src"),
            city=SYDNEY,
        )
