"""
Read-only queries behind the HTTP surface: nation search, one nation's reset, stats, error list.

Nothing here writes scan_history or reset_times. A nation without a reset row is
reported as status "monitoring" (still being scanned), never as an error.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from reset_tracker.core.constants import RECENT_SCANS_WINDOW_SECONDS
from reset_tracker.models.error_log import ErrorLog
from reset_tracker.models.nation import Nation
from reset_tracker.models.reset_time import ResetTime
from reset_tracker.services.storage.sql_storage import SqlStorage

STATUS_DETECTED = "detected"
STATUS_MONITORING = "monitoring"


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _nation_row(nation: Nation, reset: ResetTime | None) -> dict[str, Any]:
    return {
        "id": nation.id,
        "nation_name": nation.nation_name,
        "leader_name": nation.leader_name,
        "alliance_id": nation.alliance_id,
        "last_active": _iso(nation.last_active),
        "status": STATUS_DETECTED if reset else STATUS_MONITORING,
        "reset_time": reset.reset_time.isoformat() if reset else None,
        "detected_at": _iso(reset.detected_at) if reset else None,
        "confidence_score": float(reset.confidence_score) if reset and reset.confidence_score is not None else None,
    }


def search_nations(db: Session, q: str, limit: int) -> list[dict[str, Any]]:
    """Case-insensitive substring match on nation or leader name, most recently active first."""
    pattern = f"%{q.strip()}%"
    rows = (
        db.query(Nation, ResetTime)
        .outerjoin(ResetTime, ResetTime.nation_id == Nation.id)
        .filter(or_(Nation.nation_name.ilike(pattern), Nation.leader_name.ilike(pattern)))
        .order_by(Nation.last_active.desc(), Nation.id.asc())
        .limit(limit)
        .all()
    )
    return [_nation_row(n, rt) for n, rt in rows]


def get_nation_reset(db: Session, nation_id: int) -> dict[str, Any] | None:
    row = (
        db.query(Nation, ResetTime)
        .outerjoin(ResetTime, ResetTime.nation_id == Nation.id)
        .filter(Nation.id == nation_id)
        .first()
    )
    if row is None:
        return None
    nation, reset = row
    return _nation_row(nation, reset)


def get_stats(db: Session, api_requests_remaining: int | None, now: datetime | None = None) -> dict[str, Any]:
    storage = SqlStorage(db)
    now = now or datetime.now(timezone.utc)
    return {
        "total_nations": storage.count_nations(),
        "tracked_resets": storage.count_reset_records(),
        "recent_scans": storage.count_recent_scans(timedelta(seconds=RECENT_SCANS_WINDOW_SECONDS), now),
        "api_requests_remaining": api_requests_remaining,
    }


def get_recent_errors(db: Session, limit: int) -> list[dict[str, Any]]:
    """Newest error_logs rows first."""
    rows = db.query(ErrorLog).order_by(ErrorLog.occurred_at.desc(), ErrorLog.id.desc()).limit(limit).all()
    out = []
    for r in rows:
        context = None
        if r.context_json:
            try:
                context = json.loads(r.context_json)
            except (TypeError, json.JSONDecodeError):
                context = {"_raw": r.context_json[:500]}
        out.append({
            "id": r.id,
            "error_type": r.error_type,
            "error_message": r.error_message,
            "stack_trace": r.stack_trace,
            "context": context,
            "occurred_at": _iso(r.occurred_at),
        })
    return out
