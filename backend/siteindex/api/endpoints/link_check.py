"""
Link check endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ..deps import get_link_checker, get_repository, require_admin_session, verify_csrf
from ..schemas import LinkCheckFilter
from ...repositories.index_item import IndexItemRepository
from ...services.link_checker import LinkChecker, LinkCheckSummary

router = APIRouter(
    prefix="/admin/link-check",
    tags=["link-check"],
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)


@router.get("")
async def get_link_check_results(
    checker: LinkChecker = Depends(get_link_checker),
) -> Dict[str, Any]:
    """Results of the most recent full scan, if one is still cached."""
    results, summary = await checker.cached_results()
    return {
        "results": [r.model_dump(mode="json") for r in results] if results else [],
        "summary": summary.model_dump(mode="json") if summary else None,
        "has_results": results is not None,
    }


@router.post("")
async def run_link_check(
    link_filter: Optional[LinkCheckFilter] = Body(None),
    checker: LinkChecker = Depends(get_link_checker),
    repository: IndexItemRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Run a full scan, or check only the links matching a campus/letter filter."""
    if link_filter and (link_filter.campus or link_filter.letter):
        results = await checker.check_by_filter(
            repository, campus=link_filter.campus, letter=link_filter.letter
        )
        summary = LinkCheckSummary.from_results(results)
    else:
        results, summary = await checker.run_full_scan(repository)

    return {
        "results": [r.model_dump(mode="json") for r in results],
        "summary": summary.model_dump(mode="json"),
    }


@router.get("/dead")
async def dead_links(
    checker: LinkChecker = Depends(get_link_checker),
    repository: IndexItemRepository = Depends(get_repository),
) -> Dict[str, Any]:
    report = await checker.dead_links_report(repository)
    return {"dead_links": report, "total": len(report)}
