"""Tests for scheduled passes and the single-flight guard."""

import asyncio
import logging
from datetime import datetime, timedelta

import pytest

from sydney_events.crawlers.pipeline.runner import reconcile, utcnow
from sydney_events.crawlers.pipeline.types import RawCandidate
from sydney_events.crawlers.scheduler import RunState, ScrapeScheduler
from sydney_events.models.event import EventStatus


def _candidate(url: str, title: str = "Event") -> RawCandidate:
    return RawCandidate(original_event_url=url, title=title, start_at=datetime(2030, 5, 1, 19, 0))


class FakeAdapter:
    def __init__(self, source_name: str, candidates=None, *, error: Exception | None = None, gate=None):
        self.source_name = source_name
        self.candidates = candidates or []
        self.error = error
        self.gate = gate
        self.started = asyncio.Event()
        self.calls = 0

    async def scrape(self):
        self.calls += 1
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class FakeBrowser:
    def __init__(self):
        self.releases = 0

    async def release(self):
        self.releases += 1


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def sleep():
    return RecordingSleep()


def _scheduler(adapters, store, browser, sleep, **kwargs) -> ScrapeScheduler:
    return ScrapeScheduler(adapters, store=store, browser=browser, sleep=sleep, **kwargs)


class TestRunPass:
    @pytest.mark.asyncio
    async def test_sources_run_in_order_with_cooldown(self, store, browser, sleep, fetch_rows):
        adapters = [
            FakeAdapter("Eventbrite", [_candidate("https://eb/1"), _candidate("https://eb/2")]),
            FakeAdapter("TimeOut", [_candidate("https://to/1")]),
            FakeAdapter("Meetup", []),
        ]
        scheduler = _scheduler(adapters, store, browser, sleep)

        summary = await scheduler.run_pass()

        assert list(summary.sources) == ["Eventbrite", "TimeOut", "Meetup"]
        assert summary.sources["Eventbrite"].new_count == 2
        assert summary.sources["TimeOut"].new_count == 1
        assert summary.total.new_count == 3
        assert summary.total.errors == []
        assert sleep.calls == [2.0, 2.0]
        assert browser.releases == 1
        assert scheduler.state is RunState.idle
        assert scheduler.last_summary is summary
        assert len(fetch_rows()) == 3

    @pytest.mark.asyncio
    async def test_failing_source_does_not_block_others(self, store, browser, sleep, caplog):
        caplog.set_level(logging.ERROR, logger="sydney_events.crawlers.scheduler")
        adapters = [
            FakeAdapter("Eventbrite", error=RuntimeError("selector engine crashed")),
            FakeAdapter("TimeOut", [_candidate("https://to/1")]),
        ]
        scheduler = _scheduler(adapters, store, browser, sleep)

        summary = await scheduler.run_pass()

        failed = summary.sources["Eventbrite"]
        assert (failed.new_count, failed.updated_count, failed.inactive_count) == (0, 0, 0)
        assert failed.errors == [{"error": "selector engine crashed"}]
        assert summary.sources["TimeOut"].new_count == 1
        assert summary.total.errors == [{"source": "Eventbrite", "error": "selector engine crashed"}]
        (record,) = [r for r in caplog.records if "source failed" in r.getMessage()]
        assert "Eventbrite" in record.getMessage()
        assert isinstance(record.exc_info[1], RuntimeError)
        assert browser.releases == 1
        assert scheduler.state is RunState.idle

    @pytest.mark.asyncio
    async def test_browser_released_and_idle_when_pass_aborts(self, store, browser):
        async def exploding_sleep(seconds):
            raise RuntimeError("event loop shutting down")

        adapters = [FakeAdapter("Eventbrite"), FakeAdapter("TimeOut")]
        scheduler = _scheduler(adapters, store, browser, exploding_sleep)

        with pytest.raises(RuntimeError):
            await scheduler.run_pass()

        assert browser.releases == 1
        assert scheduler.state is RunState.idle

    @pytest.mark.asyncio
    async def test_empty_scrape_ages_out_previous_listings(self, store, browser, sleep, fetch_rows):
        reconcile([_candidate("https://mu/old")], "Meetup", store=store, now=utcnow() - timedelta(hours=7))
        scheduler = _scheduler([FakeAdapter("Meetup", [])], store, browser, sleep)

        summary = await scheduler.run_pass()

        assert summary.sources["Meetup"].inactive_count == 1
        assert fetch_rows("Meetup")[0].status == EventStatus.inactive

    @pytest.mark.asyncio
    async def test_rows_are_fresh_or_inactive_after_pass(self, store, browser, sleep, fetch_rows):
        stale = utcnow() - timedelta(hours=10)
        reconcile([_candidate(f"https://eb/{i}") for i in range(3)], "Eventbrite", store=store, now=stale)
        scheduler = _scheduler(
            [FakeAdapter("Eventbrite", [_candidate("https://eb/0"), _candidate("https://eb/5")])],
            store,
            browser,
            sleep,
        )

        summary = await scheduler.run_pass()

        for row in fetch_rows("Eventbrite"):
            assert row.status == EventStatus.inactive or row.last_seen_at >= summary.started_at


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_manual_trigger_during_pass_is_dropped(self, store, browser, sleep):
        gate = asyncio.Event()
        slow = FakeAdapter("Eventbrite", [_candidate("https://eb/1")], gate=gate)
        scheduler = _scheduler([slow], store, browser, sleep)

        running = asyncio.create_task(scheduler.run_pass())
        await asyncio.wait_for(slow.started.wait(), timeout=1)
        assert scheduler.state is RunState.running

        assert await scheduler.trigger_manually() is None

        gate.set()
        summary = await running
        assert slow.calls == 1
        assert summary.total.new_count == 1
        assert scheduler.state is RunState.idle

    @pytest.mark.asyncio
    async def test_concurrent_triggers_start_one_pass(self, store, browser, sleep):
        gate = asyncio.Event()
        slow = FakeAdapter("Eventbrite", gate=gate)
        scheduler = _scheduler([slow], store, browser, sleep)

        tasks = [asyncio.create_task(scheduler.run_pass()) for _ in range(3)]
        await asyncio.wait_for(slow.started.wait(), timeout=1)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert slow.calls == 1
        assert sum(result is not None for result in results) == 1

    @pytest.mark.asyncio
    async def test_next_pass_runs_after_previous_finishes(self, store, browser, sleep):
        adapter = FakeAdapter("Eventbrite", [_candidate("https://eb/1")])
        scheduler = _scheduler([adapter], store, browser, sleep)

        first = await scheduler.run_pass()
        second = await scheduler.trigger_manually()

        assert adapter.calls == 2
        assert first.total.new_count == 1
        assert second.total.new_count == 0
        assert browser.releases == 2


class TestStart:
    @pytest.mark.asyncio
    async def test_start_runs_once_shortly_after_startup(self, store, browser, sleep):
        adapter = FakeAdapter("Eventbrite")
        scheduler = _scheduler(
            [adapter], store, browser, sleep, initial_delay_seconds=0.01, interval_seconds=3600
        )

        scheduler.start()
        try:
            await asyncio.wait_for(adapter.started.wait(), timeout=1)
            for _ in range(50):
                if scheduler.last_summary is not None:
                    break
                await asyncio.sleep(0.01)
        finally:
            await scheduler.stop()

        assert adapter.calls == 1
        assert scheduler.last_summary is not None

    @pytest.mark.asyncio
    async def test_recurring_trigger_keeps_running(self, store, browser, sleep):
        adapter = FakeAdapter("Eventbrite")
        scheduler = _scheduler(
            [adapter], store, browser, sleep, initial_delay_seconds=3600, interval_seconds=0.01
        )

        scheduler.start()
        try:
            for _ in range(100):
                if adapter.calls >= 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            await scheduler.stop()

        assert adapter.calls >= 2

    @pytest.mark.asyncio
    async def test_stop_releases_browser(self, store, browser, sleep):
        scheduler = _scheduler([FakeAdapter("Eventbrite")], store, browser, sleep, initial_delay_seconds=3600)

        scheduler.start()
        await scheduler.stop()

        assert browser.releases == 1

    @pytest.mark.asyncio
    async def test_aborted_scheduled_pass_is_logged(self, store, browser, caplog):
        caplog.set_level(logging.ERROR, logger="sydney_events.crawlers.scheduler")

        async def exploding_sleep(seconds):
            raise RuntimeError("event loop shutting down")

        scheduler = _scheduler(
            [FakeAdapter("Eventbrite"), FakeAdapter("TimeOut")],
            store,
            browser,
            exploding_sleep,
            initial_delay_seconds=0.01,
            interval_seconds=3600,
        )

        scheduler.start()
        try:
            for _ in range(100):
                if any("pass aborted" in record.getMessage() for record in caplog.records):
                    break
                await asyncio.sleep(0.01)
        finally:
            await scheduler.stop()

        assert any("pass aborted" in record.getMessage() for record in caplog.records)
        assert scheduler.state is RunState.idle

    @pytest.mark.asyncio
    async def test_stop_cancels_manual_pass_in_flight(self, store, browser, sleep):
        gate = asyncio.Event()
        slow = FakeAdapter("Eventbrite", [_candidate("https://eb/1")], gate=gate)
        scheduler = _scheduler([slow], store, browser, sleep)

        manual = asyncio.create_task(scheduler.trigger_manually())
        await asyncio.wait_for(slow.started.wait(), timeout=1)
        await scheduler.stop()

        with pytest.raises(asyncio.CancelledError):
            await manual
        assert scheduler.state is RunState.idle
        assert browser.releases == 2
