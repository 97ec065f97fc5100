"""
Nations API: search, one nation's reset time, scan stats.

Read-only: these routes never touch scan_history or reset_times writes.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from reset_tracker.core.constants import SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT
from reset_tracker.core.errors import error_to_http
from reset_tracker.db.session import get_db
from reset_tracker.services.nation_query_service import get_nation_reset, get_stats, search_nations

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/nations/search")
def nations_search(
    q: str = Query("", description="Nation or leader name (substring, case-insensitive)"),
    limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1, le=SEARCH_MAX_LIMIT),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Search nations by name. Each row carries status "detected" or "monitoring"."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter required")
    try:
        return search_nations(db, q, limit)
    except Exception as e:
        logger.error("Search error: %s", e, exc_info=True)
        raise error_to_http(e) from e


@router.get("/nations/{nation_id}/reset")
def nation_reset(nation_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Reset time for one nation; status "monitoring" while no reset has been detected yet."""
    try:
        row = get_nation_reset(db, nation_id)
    except Exception as e:
        logger.error("Get nation error: %s", e, exc_info=True)
        raise error_to_http(e) from e
    if row is None:
        raise HTTPException(status_code=404, detail="Nation not found")
    return row


@router.get("/stats")
def stats(request: Request, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Totals for the dashboard: nations, tracked resets, scans in the last hour, API budget left."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    remaining = orchestrator.client.rate_limiter.snapshot().remaining if orchestrator else None
    try:
        return get_stats(db, remaining)
    except Exception as e:
        logger.error("Stats error: %s", e, exc_info=True)
        raise error_to_http(e) from e
