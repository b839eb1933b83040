import logging
from abc import ABC, abstractmethod
from datetime import datetime
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from sydney_events.core.config import DEFAULT_USER_AGENT
from sydney_events.core.errors import FetchFailed, ParseFailed
from sydney_events.crawlers.fetch import BrowserHandle, fetch_plain, fetch_rendered
from sydney_events.crawlers.pipeline.types import RawCandidate

logger = logging.getLogger(__name__)

SYDNEY = "Sydney"
DEFAULT_VENUE = "TBD"


def first_text(node: Tag, selector: str) -> str:
    match = node.select_one(selector)
    return match.get_text(strip=True) if match is not None else ""


def first_attr(node: Tag, selector: str, attr: str) -> str | None:
    match = node.select_one(selector)
    if match is None:
        return None
    value = match.get(attr)
    return value.strip() if isinstance(value, str) and value.strip() else None


class BaseSourceAdapter(ABC):
    """One listing source: fetch its page, turn each card into a candidate."""

    source_name: str
    list_url: str
    base_url: str
    container_selector: str
    render: bool = True

    def __init__(
        self,
        url: str | None = None,
        *,
        browser: BrowserHandle | None = None,
        user_agent: str | None = None,
    ):
        self.url = url or self.list_url
        self.browser = browser
        self.user_agent = user_agent or (browser.user_agent if browser else None)

    async def fetch(self) -> BeautifulSoup:
        if self.render:
            if self.browser is None:
                raise FetchFailed(self.url, "no browser handle configured")
            return await fetch_rendered(self.browser, self.url, self.container_selector)
        return await fetch_plain(self.url, user_agent=self.user_agent or DEFAULT_USER_AGENT)

    def parse(self, document: BeautifulSoup, *, now: datetime | None = None) -> list[RawCandidate]:
        now = now or datetime.now()
        candidates: list[RawCandidate] = []
        for node in document.select(self.container_selector):
            try:
                candidate = self.extract_candidate(node, now)
            except ParseFailed as exc:
                logger.warning("[%s] skipping listing node: %s", self.source_name, exc)
                continue
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def extract_candidate(self, node: Tag, now: datetime) -> RawCandidate | None:
        try:
            return self.extract(node, now)
        except Exception as exc:
            raise ParseFailed(f"{type(exc).__name__}: {exc}") from exc

    async def scrape(self) -> list[RawCandidate]:
        """Fetch and parse the listing page. Never raises; failures yield []."""
        logger.info("[%s] scraping %s", self.source_name, self.url)
        try:
            document = await self.fetch()
        except FetchFailed as exc:
            logger.error("[%s] %s", self.source_name, exc)
            return []
        except Exception as exc:
            logger.exception("[%s] unexpected fetch error: %s", self.source_name, exc)
            return []

        candidates = self.parse(document)
        logger.info("[%s] found %d events", self.source_name, len(candidates))
        return candidates

    def absolute_url(self, href: str | None) -> str | None:
        if not href:
            return None
        href = href.strip()
        if href.startswith("//"):
            href = f"https:{href}"
        scheme = urlparse(href).scheme
        if not scheme:
            href = f"{self.base_url}{href if href.startswith('/') else '/' + href}"
        elif scheme not in ("http", "https"):
            return None
        return href if urlparse(href).netloc else None

    @abstractmethod
    def extract(self, node: Tag, now: datetime) -> RawCandidate | None:
        """Build a candidate from one container node, or None to skip it."""
