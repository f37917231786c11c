"""Tests for ExternalCheckScheduler."""

import asyncio
import logging

import pytest

from linkcrawl.models import ErrorMarker, ExternalWorkItem, VerificationOutcome
from linkcrawl.scheduler import ExternalCheckScheduler

from fakes import wait_for


class GatedVerifier:
    """Verifier that blocks every check until ``gate`` is set."""

    def __init__(self, statuses=None, errors=None):
        self.statuses = statuses or {}
        self.errors = errors or {}
        self.gate = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0
        self.checked = []

    async def verify(self, url):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self.gate.wait()
        finally:
            self.in_flight -= 1
        self.checked.append(url)
        if url in self.errors:
            raise self.errors[url]
        if self.statuses.get(url) == "down":
            return VerificationOutcome.transport_error(url, "Connection error")
        return VerificationOutcome.from_status(url, self.statuses.get(url, 200))


def make_scheduler(verifier, running=None, max_concurrency=5):
    reported = []
    state = {"running": True} if running is None else running
    scheduler = ExternalCheckScheduler(
        verifier,
        on_broken=reported.append,
        is_running=lambda: state["running"],
        max_concurrency=max_concurrency,
    )
    return scheduler, reported, state


def item(n, source="https://example.com/"):
    return ExternalWorkItem(url=f"https://ext{n}.org/", source=source)


class TestExternalCheckScheduler:
    """Test cases for ExternalCheckScheduler."""

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_ceiling(self):
        verifier = GatedVerifier()
        scheduler, _, _ = make_scheduler(verifier)

        for n in range(12):
            scheduler.submit(item(n))

        assert scheduler.active == 5
        assert scheduler.pending == 7

        await wait_for(lambda: verifier.in_flight == 5)
        verifier.gate.set()
        await wait_for(lambda: scheduler.idle)

        assert len(verifier.checked) == 12
        assert verifier.max_in_flight <= 5
        assert scheduler.peak_active == 5
        assert scheduler.completed == 12

    @pytest.mark.asyncio
    async def test_reports_only_broken_links_with_source(self):
        verifier = GatedVerifier(statuses={
            "https://ext1.org/": 404,
            "https://ext2.org/": "down",
        })
        verifier.gate.set()
        scheduler, reported, _ = make_scheduler(verifier)

        for n in range(3):
            scheduler.submit(item(n, source="https://example.com/links"))
        await wait_for(lambda: scheduler.idle)

        by_url = {link.url: link for link in reported}
        assert set(by_url) == {"https://ext1.org/", "https://ext2.org/"}
        assert by_url["https://ext1.org/"].status == 404
        assert by_url["https://ext2.org/"].status is ErrorMarker.TRANSPORT
        assert all(link.source == "https://example.com/links" for link in reported)

    @pytest.mark.asyncio
    async def test_nothing_dispatched_when_not_running(self):
        verifier = GatedVerifier()
        scheduler, _, state = make_scheduler(verifier, running={"running": False})

        scheduler.submit(item(1))

        assert scheduler.active == 0
        assert scheduler.pending == 1
        assert not scheduler.idle

        state["running"] = True
        verifier.gate.set()
        scheduler.drain()
        await wait_for(lambda: scheduler.idle)
        assert verifier.checked == ["https://ext1.org/"]

    @pytest.mark.asyncio
    async def test_stop_leaves_pending_items_undispatched(self):
        verifier = GatedVerifier()
        scheduler, _, state = make_scheduler(verifier, max_concurrency=2)

        for n in range(4):
            scheduler.submit(item(n))
        state["running"] = False
        verifier.gate.set()
        await scheduler.join()

        assert len(verifier.checked) == 2
        assert scheduler.pending == 2
        assert scheduler.active == 0

    @pytest.mark.asyncio
    async def test_draining_guard_prevents_overlapping_dispatch(self):
        verifier = GatedVerifier()
        scheduler, _, _ = make_scheduler(verifier)

        scheduler._draining = True
        scheduler.submit(item(1))
        assert scheduler.active == 0

        scheduler._draining = False
        scheduler.drain()
        assert scheduler.active == 1

        verifier.gate.set()
        await scheduler.join()

    @pytest.mark.asyncio
    async def test_unexpected_verifier_failure_frees_slot(self, caplog):
        verifier = GatedVerifier(errors={"https://ext0.org/": RuntimeError("boom")})
        verifier.gate.set()
        scheduler, reported, _ = make_scheduler(verifier, max_concurrency=1)

        with caplog.at_level(logging.ERROR, logger="linkcrawl.scheduler"):
            scheduler.submit(item(0))
            scheduler.submit(item(1))
            await wait_for(lambda: scheduler.idle)

        assert verifier.checked == ["https://ext0.org/", "https://ext1.org/"]
        assert reported == []
        assert "Unexpected failure" in caplog.text

    @pytest.mark.asyncio
    async def test_idle_when_empty(self):
        scheduler, _, _ = make_scheduler(GatedVerifier())
        assert scheduler.idle
        await scheduler.join()
