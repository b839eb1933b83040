"""Page fetching for source adapters.

``fetch_rendered`` drives a headless Chromium owned by a ``BrowserHandle``;
``fetch_plain`` is a direct GET for sources that render server side. Both
return a BeautifulSoup document and raise ``FetchFailed`` on any failure.

Browser lifecycle: the scheduler owns one ``BrowserHandle`` per process. The
browser is launched lazily on the first rendered fetch of a pass and closed by
the scheduler when the pass ends; adapters only open and close their own page.
"""

import asyncio
import logging

import httpx
from bs4 import BeautifulSoup
from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from sydney_events.core.config import DEFAULT_USER_AGENT
from sydney_events.core.errors import FetchFailed

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 30_000
SELECTOR_TIMEOUT_MS = 10_000
PLAIN_TIMEOUT_SECONDS = 30.0
VIEWPORT = {"width": 1366, "height": 768}
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class BrowserHandle:
    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, *, headless: bool = True):
        self.user_agent = user_agent
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    async def browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                logger.info("[browser] launching headless chromium")
                self._playwright = await async_playwright().start()
                try:
                    self._browser = await self._playwright.chromium.launch(
                        headless=self.headless, args=CHROMIUM_ARGS
                    )
                except Exception:
                    await self._playwright.stop()
                    self._playwright = None
                    raise
            return self._browser

    async def release(self) -> None:
        """Close the browser if one is open. Safe to call repeatedly."""
        async with self._lock:
            browser, playwright = self._browser, self._playwright
            self._browser = None
            self._playwright = None
            try:
                if browser is not None:
                    logger.info("[browser] closing headless chromium")
                    await browser.close()
            finally:
                if playwright is not None:
                    await playwright.stop()


async def fetch_rendered(
    handle: BrowserHandle,
    url: str,
    wait_selector: str | None = None,
) -> BeautifulSoup:
    try:
        browser = await handle.browser()
        page = await browser.new_page(user_agent=handle.user_agent, viewport=VIEWPORT)
    except PlaywrightError as exc:
        raise FetchFailed(url, f"browser unavailable: {exc}") from exc

    try:
        logger.info("[fetch] rendering url=%s wait_selector=%s", url, wait_selector)
        await page.goto(url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
        if wait_selector:
            await page.wait_for_selector(wait_selector, timeout=SELECTOR_TIMEOUT_MS)
        html = await page.content()
    except PlaywrightError as exc:
        raise FetchFailed(url, str(exc)) from exc
    finally:
        await page.close()

    logger.info("[fetch] rendered url=%s bytes=%d", url, len(html))
    return BeautifulSoup(html, "html.parser")


async def fetch_plain(url: str, *, user_agent: str = DEFAULT_USER_AGENT) -> BeautifulSoup:
    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-AU,en;q=0.9",
    }
    try:
        async with httpx.AsyncClient(
            timeout=PLAIN_TIMEOUT_SECONDS, follow_redirects=True, headers=headers
        ) as client:
            logger.info("[fetch] GET url=%s", url)
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchFailed(url, f"HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise FetchFailed(url, str(exc) or type(exc).__name__) from exc

    logger.info("[fetch] GET url=%s status=%d bytes=%d", url, response.status_code, len(response.text))
    return BeautifulSoup(response.text, "html.parser")
