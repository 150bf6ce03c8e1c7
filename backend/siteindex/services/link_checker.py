"""
Link Checker Service

Checks index item URLs with HEAD requests in small concurrent batches and
keeps the latest full scan in the cache store for a day.
"""

import asyncio
import json
import time
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx
import structlog
from pydantic import BaseModel, Field

from ..constants import get_current_timestamp
from ..domain.cache.value_objects import TTL, CacheKey
from ..infrastructure.cache.exceptions import CacheStoreException
from ..infrastructure.cache.store import CacheStore
from ..repositories.index_item import IndexItemRepository

logger = structlog.get_logger()

REQUEST_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Cache-Control": "no-cache",
}

PROBLEM_STATUSES = ("dead", "error", "timeout")


class LinkStatus(str, Enum):
    ACTIVE = "active"
    DEAD = "dead"
    REDIRECT = "redirect"
    TIMEOUT = "timeout"
    ERROR = "error"


class LinkCheckResult(BaseModel):
    id: int
    url: str
    status: LinkStatus = LinkStatus.ERROR
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    redirect_url: Optional[str] = None
    error: Optional[str] = None
    last_checked: datetime = Field(default_factory=get_current_timestamp)


class LinkCheckSummary(BaseModel):
    total: int = 0
    active: int = 0
    dead: int = 0
    redirects: int = 0
    timeouts: int = 0
    errors: int = 0
    last_scan_date: Optional[datetime] = None

    @classmethod
    def from_results(cls, results: Sequence[LinkCheckResult]) -> "LinkCheckSummary":
        def count(status: LinkStatus) -> int:
            return sum(1 for result in results if result.status == status)

        return cls(
            total=len(results),
            active=count(LinkStatus.ACTIVE),
            dead=count(LinkStatus.DEAD),
            redirects=count(LinkStatus.REDIRECT),
            timeouts=count(LinkStatus.TIMEOUT),
            errors=count(LinkStatus.ERROR),
            last_scan_date=get_current_timestamp(),
        )


def classify_status(result: LinkCheckResult, response: httpx.Response) -> None:
    """Set status fields on ``result`` from an HTTP response."""
    code = response.status_code
    result.status_code = code

    if 200 <= code < 300:
        result.status = LinkStatus.ACTIVE
    elif 300 <= code < 400:
        result.status = LinkStatus.REDIRECT
        result.redirect_url = response.headers.get("location")
    elif code in (404, 410):
        result.status = LinkStatus.DEAD
    elif code >= 500:
        result.status = LinkStatus.ERROR
        result.error = f"Server error: {code}"
    else:
        result.status = LinkStatus.ERROR
        result.error = f"Unexpected status: {code}"


def classify_error(result: LinkCheckResult, error: Exception) -> None:
    """Set status fields on ``result`` from a transport failure."""
    message = str(error)

    if isinstance(error, httpx.TimeoutException):
        result.status = LinkStatus.TIMEOUT
        result.error = "Request timeout"
    elif "certificate" in message.lower() or "ssl" in message.lower():
        result.status = LinkStatus.ERROR
        result.error = "SSL/Certificate error"
    elif isinstance(error, httpx.ConnectError):
        result.status = LinkStatus.DEAD
        result.error = "Host not found"
    else:
        result.status = LinkStatus.ERROR
        result.error = message or "Network error"


class LinkChecker:
    """
    Batched HEAD-request link checker.

    Redirects are reported rather than followed. Each batch runs
    concurrently, with a pause between batches.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        store: CacheStore,
        batch_size: int = 10,
        batch_delay_seconds: float = 2.0,
        timeout_seconds: float = 10.0,
        user_agent: str = "SMCCCD Site Index Checker/1.0 (Educational Use)",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.store = store
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._sleep = sleep

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, store: CacheStore, settings) -> "LinkChecker":
        return cls(
            client,
            store,
            batch_size=settings.LINK_CHECK_BATCH_SIZE,
            batch_delay_seconds=settings.LINK_CHECK_BATCH_DELAY_SECONDS,
            timeout_seconds=settings.LINK_CHECK_TIMEOUT_SECONDS,
            user_agent=settings.LINK_CHECK_USER_AGENT,
        )

    async def check_link(self, item_id: int, url: str) -> LinkCheckResult:
        result = LinkCheckResult(id=item_id, url=url)
        start_time = time.monotonic()

        try:
            response = await self.client.head(
                url,
                headers={**REQUEST_HEADERS, "User-Agent": self.user_agent},
                follow_redirects=False,
                timeout=self.timeout_seconds,
            )
            classify_status(result, response)
        except httpx.HTTPError as e:
            classify_error(result, e)

        result.response_time_ms = int((time.monotonic() - start_time) * 1000)
        return result

    async def check_links(self, links: Sequence[Tuple[int, str]]) -> List[LinkCheckResult]:
        """Check ``(id, url)`` pairs batch by batch, preserving input order."""
        results: List[LinkCheckResult] = []

        for start in range(0, len(links), self.batch_size):
            batch = links[start:start + self.batch_size]
            logger.debug(
                "Checking link batch",
                first=start + 1,
                last=start + len(batch),
                total=len(links),
            )
            results.extend(
                await asyncio.gather(
                    *(self.check_link(item_id, url) for item_id, url in batch)
                )
            )

            if start + self.batch_size < len(links):
                await self._sleep(self.batch_delay_seconds)

        return results

    async def run_full_scan(
        self, repository: IndexItemRepository
    ) -> Tuple[List[LinkCheckResult], LinkCheckSummary]:
        """Check every index item and store the results for later reports."""
        items = await repository.list_items()
        logger.info("Link check scan started", total=len(items))

        results = await self.check_links([(item.id, item.url) for item in items])
        summary = LinkCheckSummary.from_results(results)

        payload = json.dumps([result.model_dump(mode="json") for result in results])
        ttl = TTL.link_check()
        try:
            await self.store.set(str(CacheKey.link_check_results()), payload, ttl.seconds)
            await self.store.set(
                str(CacheKey.link_check_summary()),
                summary.model_dump_json(),
                ttl.seconds,
            )
        except CacheStoreException as e:
            logger.warning("Failed to store link check results", error=str(e))

        logger.info("Link check scan completed", **summary.model_dump(exclude={"last_scan_date"}))
        return results, summary

    async def cached_results(
        self,
    ) -> Tuple[Optional[List[LinkCheckResult]], Optional[LinkCheckSummary]]:
        """Results of the last full scan, or ``(None, None)`` when unavailable."""
        try:
            raw_results = await self.store.get(str(CacheKey.link_check_results()))
            raw_summary = await self.store.get(str(CacheKey.link_check_summary()))
        except CacheStoreException as e:
            logger.error("Failed to read cached link check results", error=str(e))
            return None, None

        try:
            results = (
                [LinkCheckResult.model_validate(entry) for entry in json.loads(raw_results)]
                if raw_results
                else None
            )
            summary = (
                LinkCheckSummary.model_validate_json(raw_summary) if raw_summary else None
            )
        except ValueError as e:
            logger.warning("Discarding malformed link check cache", error=str(e))
            return None, None

        return results, summary

    async def check_by_filter(
        self,
        repository: IndexItemRepository,
        campus: Optional[str] = None,
        letter: Optional[str] = None,
    ) -> List[LinkCheckResult]:
        items = await repository.list_items(campus=campus, letter=letter)
        logger.info("Checking filtered links", campus=campus, letter=letter, total=len(items))
        return await self.check_links([(item.id, item.url) for item in items])

    async def dead_links_report(
        self, repository: IndexItemRepository
    ) -> List[Dict[str, Any]]:
        """Problem links from the last scan joined with their current records."""
        results, _ = await self.cached_results()
        if not results:
            return []

        problems = {
            result.id: result
            for result in results
            if result.status.value in PROBLEM_STATUSES
        }
        if not problems:
            return []

        report = []
        for item in await repository.get_many(list(problems)):
            result = problems[item.id]
            report.append(
                {
                    **item.to_dict(),
                    "status": result.status.value,
                    "error": result.error,
                    "last_checked": result.last_checked.isoformat(),
                }
            )
        return sorted(report, key=lambda entry: entry["id"])
