from sydney_events.crawlers.adapters.base import BaseSourceAdapter
from sydney_events.crawlers.adapters.eventbrite import EventbriteAdapter
from sydney_events.crawlers.adapters.meetup import MeetupAdapter
from sydney_events.crawlers.adapters.timeout import TimeOutAdapter
from sydney_events.crawlers.fetch import BrowserHandle

ADAPTERS: dict[str, type[BaseSourceAdapter]] = {
    "eventbrite": EventbriteAdapter,
    "timeout": TimeOutAdapter,
    "meetup": MeetupAdapter,
}


def build_adapters(names: list[str], browser: BrowserHandle) -> list[BaseSourceAdapter]:
    """Instantiate adapters in pass order, all sharing one browser handle."""
    adapters: list[BaseSourceAdapter] = []
    for name in names:
        key = name.strip().lower()
        if key not in ADAPTERS:
            raise ValueError(f"unknown source {name!r}; expected one of {sorted(ADAPTERS)}")
        adapters.append(ADAPTERS[key](browser=browser))
    return adapters
