"""
SQLAlchemy implementation of the scanner's Storage.

Every write commits on its own, except record_reset: the flag-on scan row and the reset
row it proves share one commit, so a failed reset write cannot leave a "true" baseline
behind. The activity update is separate; an unprocessed nation stays a candidate.
Upserts are query-then-write, which is fine with one scanner (the orchestrator runs
cycles single-flight).
"""
import json
import logging
from contextlib import contextmanager
from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterator

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reset_tracker.core.errors import PersistenceError
from reset_tracker.models.error_log import ErrorLog
from reset_tracker.models.nation import Nation
from reset_tracker.models.reset_time import ResetTime
from reset_tracker.models.scan_history import ScanHistory
from reset_tracker.services.storage.base import Candidate, FlagObservation

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class SqlStorage:
    """Storage backed by one Session. Not thread-safe: use one instance per cycle/thread."""

    def __init__(self, db: Session) -> None:
        self._db = db

    @contextmanager
    def _persist(self, op: str) -> Iterator[None]:
        """Commit on success; on any DB error roll back and raise PersistenceError."""
        try:
            yield
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            raise PersistenceError(f"{op} failed: {e}") from e

    def rollback(self) -> None:
        """Clear a failed session so the next nation (or the error sink) can write."""
        try:
            self._db.rollback()
        except SQLAlchemyError as e:
            logger.warning("Session rollback failed: %s", e)

    def list_candidates(self, max_age_days: int, limit: int, now: datetime) -> list[Candidate]:
        cutoff = now - timedelta(days=max_age_days)
        try:
            rows = (
                self._db.query(Nation.id, Nation.nation_name)
                .outerjoin(ResetTime, ResetTime.nation_id == Nation.id)
                .filter(ResetTime.id.is_(None), Nation.last_active > cutoff)
                .order_by(Nation.last_active.desc(), Nation.id.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._db.rollback()
            raise PersistenceError(f"list_candidates failed: {e}") from e
        return [Candidate(id=r.id, nation_name=r.nation_name) for r in rows]

    def latest_flag(self, nation_id: int) -> FlagObservation | None:
        try:
            row = (
                self._db.query(ScanHistory.espionage_available, ScanHistory.scanned_at)
                .filter(ScanHistory.nation_id == nation_id)
                .order_by(ScanHistory.scanned_at.desc(), ScanHistory.id.desc())
                .first()
            )
        except SQLAlchemyError as e:
            self._db.rollback()
            raise PersistenceError(f"latest_flag({nation_id}) failed: {e}") from e
        if row is None:
            return None
        return FlagObservation(flag=bool(row.espionage_available), observed_at=_as_utc(row.scanned_at))

    def append_scan_record(self, nation_id: int, flag: bool, observed_at: datetime) -> None:
        with self._persist(f"append_scan_record({nation_id})"):
            self._db.add(ScanHistory(nation_id=nation_id, espionage_available=flag, scanned_at=observed_at))

    def upsert_reset_record(
        self, nation_id: int, time_of_day: time, detected_at: datetime, confidence: float
    ) -> None:
        with self._persist(f"upsert_reset_record({nation_id})"):
            self._put_reset_row(nation_id, time_of_day, detected_at, confidence)

    def record_reset(
        self, nation_id: int, observed_at: datetime, time_of_day: time, confidence: float
    ) -> None:
        """The flag-on scan row and the reset row in one commit: both land or neither does."""
        with self._persist(f"record_reset({nation_id})"):
            self._db.add(ScanHistory(nation_id=nation_id, espionage_available=True, scanned_at=observed_at))
            self._put_reset_row(nation_id, time_of_day, observed_at, confidence)

    def _put_reset_row(self, nation_id: int, time_of_day: time, detected_at: datetime, confidence: float) -> None:
        row = self._db.query(ResetTime).filter(ResetTime.nation_id == nation_id).first()
        if row:
            row.reset_time = time_of_day
            row.detected_at = detected_at
            row.confidence_score = confidence
        else:
            self._db.add(
                ResetTime(
                    nation_id=nation_id,
                    reset_time=time_of_day,
                    detected_at=detected_at,
                    confidence_score=confidence,
                )
            )

    def upsert_nation(
        self,
        id: int,
        nation_name: str | None,
        leader_name: str | None,
        alliance_id: int | None,
        last_active: datetime | None,
    ) -> None:
        with self._persist(f"upsert_nation({id})"):
            row = self._db.get(Nation, id)
            if row:
                row.nation_name = nation_name
                row.leader_name = leader_name
                row.alliance_id = alliance_id
                row.last_active = last_active
            else:
                self._db.add(
                    Nation(
                        id=id,
                        nation_name=nation_name,
                        leader_name=leader_name,
                        alliance_id=alliance_id,
                        last_active=last_active,
                    )
                )

    def touch_nation(self, nation_id: int, last_active: datetime | None, updated_at: datetime) -> None:
        with self._persist(f"touch_nation({nation_id})"):
            row = self._db.get(Nation, nation_id)
            if row is None:
                logger.warning("touch_nation: nation %s not in nations table; skipping", nation_id)
                return
            if last_active is not None:
                row.last_active = last_active
            row.updated_at = updated_at

    def count_nations(self) -> int:
        return self._count(self._db.query(func.count(Nation.id)), "count_nations")

    def count_reset_records(self) -> int:
        return self._count(self._db.query(func.count(ResetTime.id)), "count_reset_records")

    def count_recent_scans(self, window: timedelta, now: datetime) -> int:
        q = self._db.query(func.count(ScanHistory.id)).filter(ScanHistory.scanned_at > now - window)
        return self._count(q, "count_recent_scans")

    def _count(self, query, op: str) -> int:
        try:
            return int(query.scalar() or 0)
        except SQLAlchemyError as e:
            self._db.rollback()
            raise PersistenceError(f"{op} failed: {e}") from e

    def append_error(
        self,
        kind: str,
        message: str,
        trace: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        try:
            self._db.add(
                ErrorLog(
                    error_type=kind,
                    error_message=message,
                    stack_trace=trace,
                    context_json=json.dumps(context or {}, default=str),
                    occurred_at=datetime.now(timezone.utc),
                )
            )
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error("Failed to log error to database (%s: %s): %s", kind, message, e)
