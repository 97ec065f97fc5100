"""
Admin API: recent error_logs rows and scanner heartbeat.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from reset_tracker.core.constants import ERRORS_DEFAULT_LIMIT, ERRORS_MAX_LIMIT
from reset_tracker.core.errors import error_to_http
from reset_tracker.db.session import get_db
from reset_tracker.services.nation_query_service import get_recent_errors

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/admin/errors")
def recent_errors(
    limit: int = Query(ERRORS_DEFAULT_LIMIT, ge=1, le=ERRORS_MAX_LIMIT),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Newest scanner errors first (cycle failures, failed batches, per-nation failures, bootstrap)."""
    try:
        return get_recent_errors(db, limit)
    except Exception as e:
        logger.error("Get errors error: %s", e, exc_info=True)
        raise error_to_http(e) from e


@router.get("/scanner/status")
def scanner_status(request: Request) -> dict[str, Any]:
    """Scanner heartbeat: state, in-flight cycle, last cycle summary, next run, rate-limit budget."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        return {"state": "unavailable", "detail": "Scanner not initialized"}
    return orchestrator.status()
