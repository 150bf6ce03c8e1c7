"""
Cache warming for common listing queries.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

import structlog

from ...constants import CAMPUSES

logger = structlog.get_logger()


@dataclass
class WarmReport:
    """Result of a warming run."""

    warmed: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


class CacheWarmer:
    """
    Pre-loads listing caches through an ``IndexItemService``.

    Targets are the all-items listing, every campus, a set of common letters
    and common search terms. Queries run one after another because they
    share the service's database session. A failed target is recorded and
    the run continues.
    """

    def __init__(
        self,
        service,
        letters: Sequence[str] = (),
        search_terms: Sequence[str] = (),
        campuses: Optional[Sequence[str]] = None,
    ):
        self.service = service
        self.letters = list(letters)
        self.search_terms = list(search_terms)
        self.campuses = list(campuses) if campuses is not None else list(CAMPUSES)

    def _targets(self) -> List[Tuple[str, Callable[[], Awaitable[Any]]]]:
        targets: List[Tuple[str, Callable[[], Awaitable[Any]]]] = [
            ("all", self.service.list_all)
        ]
        for campus in self.campuses:
            targets.append(
                (f"campus:{campus}", lambda c=campus: self.service.list_by_campus(c))
            )
        for letter in self.letters:
            targets.append(
                (f"letter:{letter}", lambda l=letter: self.service.list_by_letter(l))
            )
        for term in self.search_terms:
            targets.append((f"search:{term}", lambda t=term: self.service.search(t)))
        return targets

    async def warm(self) -> WarmReport:
        report = WarmReport()
        start_time = time.time()

        for name, load in self._targets():
            try:
                await load()
                report.warmed += 1
            except Exception as e:
                report.failed += 1
                report.failures.append(name)
                logger.warning("Cache warm target failed", target=name, error=str(e))

        report.duration_seconds = round(time.time() - start_time, 3)
        logger.info(
            "Cache warming completed",
            warmed=report.warmed,
            failed=report.failed,
            duration_seconds=report.duration_seconds,
        )
        return report
