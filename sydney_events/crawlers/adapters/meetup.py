from datetime import datetime

from bs4 import Tag

from sydney_events.crawlers.adapters.base import (
    DEFAULT_VENUE,
    SYDNEY,
    BaseSourceAdapter,
    first_attr,
    first_text,
)
from sydney_events.crawlers.extractors.dates import resolve_meetup
from sydney_events.crawlers.pipeline.types import RawCandidate

MEETUP_BASE_URL = "https://www.meetup.com"
MEETUP_SYDNEY_URL = "https://www.meetup.com/find/?location=Sydney&source=EVENTS"


def _tags(node: Tag) -> list[str]:
    tags: list[str] = []
    for tag in node.select(".tag, .event-card__tag"):
        text = tag.get_text(strip=True)
        if text and text not in tags:
            tags.append(text)
    return tags


class MeetupAdapter(BaseSourceAdapter):
    source_name = "Meetup"
    list_url = MEETUP_SYDNEY_URL
    base_url = MEETUP_BASE_URL
    container_selector = ".event-card"

    def extract(self, node: Tag, now: datetime) -> RawCandidate | None:
        title = first_text(node, ".event-card__title, .title")
        url = self.absolute_url(first_attr(node, "a", "href"))
        if not title or not url:
            return None

        return RawCandidate(
            original_event_url=url,
            title=title,
            start_at=resolve_meetup(first_text(node, ".event-card__date, .date"), now),
            venue_name=first_text(node, ".event-card__venue, .venue") or DEFAULT_VENUE,
            description=first_text(node, ".event-card__description, p") or None,
            category=first_text(node, ".event-card__category, .category") or "Meetup",
            tags=_tags(node),
            image_url=first_attr(node, "img", "src"),
            city=SYDNEY,
        )
