"""Scheduled scrape passes with a single-flight guard.

A pass scrapes every configured source in order and reconciles each result
against the catalog. At most one pass runs at a time: a trigger that fires
while a pass is in flight is dropped, not queued.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from enum import Enum

from sydney_events.core.errors import SourceFailed
from sydney_events.crawlers.adapters.base import BaseSourceAdapter
from sydney_events.crawlers.adapters.registry import build_adapters
from sydney_events.crawlers.fetch import BrowserHandle
from sydney_events.crawlers.pipeline.changes import ChangePolicy
from sydney_events.crawlers.pipeline.runner import DEFAULT_FRESHNESS_WINDOW, reconcile, utcnow
from sydney_events.crawlers.pipeline.store import CatalogStore
from sydney_events.crawlers.pipeline.types import RunSummary, SourceResult

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 6 * 60 * 60
DEFAULT_INITIAL_DELAY_SECONDS = 5.0
DEFAULT_COOLDOWN_SECONDS = 2.0


class RunState(str, Enum):
    idle = "idle"
    running = "running"


class ScrapeScheduler:
    def __init__(
        self,
        adapters: list[BaseSourceAdapter],
        *,
        store: CatalogStore,
        browser: BrowserHandle,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        initial_delay_seconds: float = DEFAULT_INITIAL_DELAY_SECONDS,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        policy: ChangePolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.adapters = adapters
        self.store = store
        self.browser = browser
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self.cooldown_seconds = cooldown_seconds
        self.freshness_window = freshness_window
        self.policy = policy or ChangePolicy.any_content()
        self._sleep = sleep
        self._state = RunState.idle
        self._state_lock = asyncio.Lock()
        self._timers: list[asyncio.Task] = []
        self._passes: set[asyncio.Task] = set()
        self.last_summary: RunSummary | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunState.running

    def start(self) -> None:
        """Arm the recurring trigger and a one-shot pass shortly after startup."""
        if self._timers:
            logger.warning("[scheduler] already started")
            return
        logger.info(
            "[scheduler] starting interval=%ss initial_delay=%ss sources=%s",
            self.interval_seconds,
            self.initial_delay_seconds,
            [adapter.source_name for adapter in self.adapters],
        )
        self._timers.append(asyncio.create_task(self._initial_run()))
        self._timers.append(asyncio.create_task(self._recurring_runs()))

    async def stop(self) -> None:
        timers, self._timers = self._timers, []
        for task in timers + list(self._passes):
            task.cancel()
        await asyncio.gather(*timers, *self._passes, return_exceptions=True)
        await self.browser.release()

    async def _initial_run(self) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        self._spawn_pass()

    async def _recurring_runs(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._spawn_pass()

    def _spawn_pass(self) -> asyncio.Task:
        # Tracked so stop() can cancel and await passes from any trigger.
        task = asyncio.create_task(self.run_pass())
        self._passes.add(task)
        task.add_done_callback(self._pass_done)
        return task

    def _pass_done(self, task: asyncio.Task) -> None:
        self._passes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[scheduler] pass aborted: %s", exc, exc_info=exc)

    async def trigger_manually(self) -> RunSummary | None:
        logger.info("[scheduler] manual trigger")
        return await self._spawn_pass()

    async def _try_acquire(self) -> bool:
        async with self._state_lock:
            if self._state is RunState.running:
                return False
            self._state = RunState.running
            return True

    async def run_pass(self) -> RunSummary | None:
        """Run one pass over all sources. Returns None when a pass is already running."""
        if not await self._try_acquire():
            logger.info("[scheduler] pass already running, skipping")
            return None

        summary = RunSummary(started_at=utcnow())
        logger.info("[scheduler] pass started")
        try:
            for index, adapter in enumerate(self.adapters):
                if index > 0:
                    await self._sleep(self.cooldown_seconds)
                summary.sources[adapter.source_name] = await self._run_source(adapter)
            summary.compute_totals()
            logger.info(
                "[scheduler] pass completed new=%d updated=%d inactive=%d errors=%d",
                summary.total.new_count,
                summary.total.updated_count,
                summary.total.inactive_count,
                len(summary.total.errors),
            )
        finally:
            try:
                await self.browser.release()
            except Exception as exc:
                logger.error("[scheduler] browser release failed: %s", exc)
            async with self._state_lock:
                self._state = RunState.idle

        self.last_summary = summary
        return summary

    async def _run_source(self, adapter: BaseSourceAdapter) -> SourceResult:
        try:
            return await self._scrape_and_reconcile(adapter)
        except SourceFailed as exc:
            logger.error("[scheduler] source failed %s", exc, exc_info=exc.cause)
            return SourceResult(errors=[{"error": str(exc.cause)}])

    async def _scrape_and_reconcile(self, adapter: BaseSourceAdapter) -> SourceResult:
        try:
            candidates = await adapter.scrape()
            return await asyncio.to_thread(
                reconcile,
                candidates,
                adapter.source_name,
                store=self.store,
                policy=self.policy,
                freshness_window=self.freshness_window,
            )
        except Exception as exc:
            raise SourceFailed(adapter.source_name, exc) from exc


def create_scheduler(settings, session_factory) -> ScrapeScheduler:
    """Wire a scheduler from application settings."""
    browser = BrowserHandle(user_agent=settings.scrape_user_agent)
    return ScrapeScheduler(
        build_adapters(settings.scrape_sources, browser),
        store=CatalogStore(session_factory),
        browser=browser,
        interval_seconds=settings.scrape_interval_hours * 60 * 60,
        initial_delay_seconds=settings.scrape_initial_delay_seconds,
        cooldown_seconds=settings.scrape_source_cooldown_seconds,
        freshness_window=timedelta(hours=settings.scrape_freshness_hours),
        policy=ChangePolicy.from_name(settings.change_policy),
    )
