"""
Unit tests for LinkChecker.

Outbound requests go through ``httpx.MockTransport``.
"""

import json

import httpx
import pytest

from siteindex.domain.cache.value_objects import TTL
from siteindex.services.link_checker import (
    LinkChecker,
    LinkCheckSummary,
    LinkStatus,
)


def make_checker(handler, store, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    checker = LinkChecker(client, store, sleep=fake_sleep, **kwargs)
    return checker, sleeps


def status_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/ok":
        return httpx.Response(200)
    if path == "/moved":
        return httpx.Response(301, headers={"Location": "https://example.edu/new"})
    if path == "/gone":
        return httpx.Response(410)
    if path == "/missing":
        return httpx.Response(404)
    if path == "/broken":
        return httpx.Response(503)
    if path == "/teapot":
        return httpx.Response(418)
    if path == "/slow":
        raise httpx.ReadTimeout("timed out", request=request)
    if path == "/refused":
        raise httpx.ConnectError("Name or service not known", request=request)
    if path == "/tls":
        raise httpx.ConnectError(
            "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed", request=request
        )
    raise httpx.RemoteProtocolError("peer closed connection", request=request)


class TestCheckLink:
    """Test single-link classification."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path,status,error",
        [
            ("/ok", LinkStatus.ACTIVE, None),
            ("/moved", LinkStatus.REDIRECT, None),
            ("/gone", LinkStatus.DEAD, None),
            ("/missing", LinkStatus.DEAD, None),
            ("/broken", LinkStatus.ERROR, "Server error: 503"),
            ("/teapot", LinkStatus.ERROR, "Unexpected status: 418"),
            ("/slow", LinkStatus.TIMEOUT, "Request timeout"),
            ("/refused", LinkStatus.DEAD, "Host not found"),
            ("/tls", LinkStatus.ERROR, "SSL/Certificate error"),
            ("/other", LinkStatus.ERROR, "peer closed connection"),
        ],
    )
    async def test_classification(self, memory_store, path, status, error):
        checker, _ = make_checker(status_handler, memory_store)

        result = await checker.check_link(1, f"https://example.edu{path}")

        assert result.status == status
        assert result.error == error
        assert result.response_time_ms is not None

    @pytest.mark.asyncio
    async def test_redirect_is_not_followed(self, memory_store):
        checker, _ = make_checker(status_handler, memory_store)

        result = await checker.check_link(1, "https://example.edu/moved")

        assert result.status_code == 301
        assert result.redirect_url == "https://example.edu/new"

    @pytest.mark.asyncio
    async def test_sends_head_with_user_agent(self, memory_store):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        checker, _ = make_checker(handler, memory_store, user_agent="Checker/1.0")
        await checker.check_link(1, "https://example.edu/")

        assert seen[0].method == "HEAD"
        assert seen[0].headers["User-Agent"] == "Checker/1.0"


class TestBatching:
    """Test batched checking."""

    @pytest.mark.asyncio
    async def test_batches_pause_between_batches(self, memory_store):
        checker, sleeps = make_checker(
            status_handler, memory_store, batch_size=2, batch_delay_seconds=2.0
        )
        links = [(i, "https://example.edu/ok") for i in range(5)]

        results = await checker.check_links(links)

        assert [r.id for r in results] == [0, 1, 2, 3, 4]
        assert sleeps == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_no_pause_for_single_batch(self, memory_store):
        checker, sleeps = make_checker(status_handler, memory_store, batch_size=10)

        await checker.check_links([(1, "https://example.edu/ok")])

        assert sleeps == []


class TestScans:
    """Test full scans, cached results and reports."""

    @pytest.mark.asyncio
    async def test_full_scan_stores_results_for_a_day(self, memory_store, fake_repository):
        fake_repository.items[1].url = "https://example.edu/missing"
        fake_repository.items[2].url = "https://example.edu/slow"
        for item_id in (3, 4, 5):
            fake_repository.items[item_id].url = "https://example.edu/ok"
        checker, _ = make_checker(status_handler, memory_store)

        results, summary = await checker.run_full_scan(fake_repository)

        assert len(results) == 5
        assert (summary.total, summary.active, summary.dead, summary.timeouts) == (5, 3, 1, 1)
        assert await memory_store.ttl("linkcheck:results") == 86400
        assert await memory_store.ttl("linkcheck:summary") == TTL.link_check().seconds
        assert json.loads(await memory_store.get("linkcheck:summary"))["dead"] == 1

    @pytest.mark.asyncio
    async def test_cached_results_round_trip(self, memory_store, fake_repository):
        checker, _ = make_checker(status_handler, memory_store)
        await checker.run_full_scan(fake_repository)

        results, summary = await checker.cached_results()

        assert len(results) == 5
        assert isinstance(summary, LinkCheckSummary)

    @pytest.mark.asyncio
    async def test_cached_results_empty(self, memory_store):
        checker, _ = make_checker(status_handler, memory_store)
        assert await checker.cached_results() == (None, None)

    @pytest.mark.asyncio
    async def test_check_by_filter(self, memory_store, fake_repository):
        checker, _ = make_checker(status_handler, memory_store)

        results = await checker.check_by_filter(fake_repository, letter="A")

        assert sorted(r.id for r in results) == [1, 2]

    @pytest.mark.asyncio
    async def test_dead_links_report_joins_records(self, memory_store, fake_repository):
        fake_repository.items[4].url = "https://example.edu/gone"
        for item_id in (1, 2, 3, 5):
            fake_repository.items[item_id].url = "https://example.edu/ok"
        checker, _ = make_checker(status_handler, memory_store)
        await checker.run_full_scan(fake_repository)

        report = await checker.dead_links_report(fake_repository)

        assert len(report) == 1
        assert report[0]["title"] == "Financial Aid"
        assert report[0]["status"] == "dead"

    @pytest.mark.asyncio
    async def test_dead_links_report_without_scan(self, memory_store, fake_repository):
        checker, _ = make_checker(status_handler, memory_store)
        assert await checker.dead_links_report(fake_repository) == []
