"""Tests for reset detection (false -> true transitions) over SqlStorage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from reset_tracker.core.errors import PersistenceError
from reset_tracker.models.nation import Nation
from reset_tracker.models.reset_time import ResetTime
from reset_tracker.models.scan_history import ScanHistory
from reset_tracker.services.pnw.types import NationStatus
from reset_tracker.services.scanner.detector import is_reset_transition, process_nation, reset_time_of_day
from reset_tracker.services.storage.sql_storage import SqlStorage

from conftest import T0


def observe(storage: SqlStorage, nation_id: int, flag: bool, at: datetime) -> bool:
    status = NationStatus(id=nation_id, espionage_available=flag, last_active=at - timedelta(minutes=5))
    return process_nation(storage, status, at)


def naive(dt: datetime) -> datetime:
    """SQLite returns naive UTC; compare everything that way."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def resets_for(db, nation_id: int) -> list[ResetTime]:
    return db.query(ResetTime).filter(ResetTime.nation_id == nation_id).all()


def has_false_then_true(flags: list[bool]) -> bool:
    return any(a is False and b is True for a, b in zip(flags, flags[1:]))


class TestIsResetTransition:
    @pytest.mark.parametrize(
        "prior, current, expected",
        [
            (False, True, True),
            (True, True, False),
            (True, False, False),
            (False, False, False),
            (None, True, False),
            (None, False, False),
        ],
    )
    def test_truth_table(self, prior, current, expected):
        assert is_reset_transition(prior, current) is expected


class TestProcessNation:
    """Per-nation update: append, detect, upsert, touch."""

    def test_first_observation_true_is_not_a_reset(self, db, add_nation):
        add_nation(1)
        storage = SqlStorage(db)

        assert observe(storage, 1, True, T0) is False
        assert resets_for(db, 1) == []
        assert db.query(ScanHistory).filter(ScanHistory.nation_id == 1).count() == 1

    def test_false_then_true_records_reset_at_check_time(self, db, add_nation):
        add_nation(555)
        storage = SqlStorage(db)
        t0, t1 = T0, T0 + timedelta(hours=1, minutes=3, seconds=7, microseconds=250)

        observe(storage, 555, False, t0)
        assert observe(storage, 555, True, t1) is True

        history = (
            db.query(ScanHistory)
            .filter(ScanHistory.nation_id == 555)
            .order_by(ScanHistory.scanned_at)
            .all()
        )
        assert [(h.espionage_available, naive(h.scanned_at)) for h in history] == [
            (False, naive(t0)),
            (True, naive(t1)),
        ]
        [reset] = resets_for(db, 555)
        assert naive(reset.detected_at) == naive(t1)
        assert reset.reset_time == t1.time().replace(microsecond=0)
        assert float(reset.confidence_score) == pytest.approx(1.0)

    def test_reset_time_uses_check_clock_not_last_active(self):
        now = datetime(2026, 3, 1, 23, 59, 58, 999_999, tzinfo=timezone.utc)
        assert reset_time_of_day(now).isoformat() == "23:59:58"

    def test_touch_updates_last_active_and_modified(self, db, add_nation):
        add_nation(2, last_active=T0 - timedelta(days=2))
        storage = SqlStorage(db)

        observe(storage, 2, False, T0)

        nation = db.get(Nation, 2)
        db.refresh(nation)
        assert naive(nation.last_active) == naive(T0 - timedelta(minutes=5))
        assert naive(nation.updated_at) == naive(T0)

    def test_history_is_append_only(self, db, add_nation):
        add_nation(3)
        storage = SqlStorage(db)
        flags = [True, False, False, True, True, False]
        for i, flag in enumerate(flags):
            observe(storage, 3, flag, T0 + timedelta(hours=i))

        rows = db.query(ScanHistory).filter(ScanHistory.nation_id == 3).order_by(ScanHistory.id).all()
        assert [r.espionage_available for r in rows] == flags
        stamps = [r.scanned_at for r in rows]
        assert stamps == sorted(stamps)

    @pytest.mark.parametrize(
        "flags",
        [
            [True],
            [False],
            [True, True, True],
            [False, False],
            [True, False],
            [False, True],
            [True, False, True],
            [False, False, False, True],
            [True, True, False],
        ],
    )
    def test_reset_exists_iff_false_then_true(self, db, add_nation, flags):
        add_nation(10)
        storage = SqlStorage(db)
        for i, flag in enumerate(flags):
            observe(storage, 10, flag, T0 + timedelta(hours=i))

        assert (len(resets_for(db, 10)) == 1) is has_false_then_true(flags)


class TestResetUpsert:
    """At most one reset row per nation."""

    def test_repeating_same_detection_is_idempotent(self, db, add_nation):
        add_nation(4)
        storage = SqlStorage(db)
        t1 = T0 + timedelta(hours=1)
        observe(storage, 4, False, T0)
        observe(storage, 4, True, t1)
        [before] = resets_for(db, 4)
        before_values = (before.reset_time, before.detected_at, before.confidence_score)

        storage.upsert_reset_record(4, reset_time_of_day(t1), t1, 1.00)

        db.expire_all()
        [after] = resets_for(db, 4)
        assert (after.reset_time, after.detected_at, after.confidence_score) == before_values

    def test_second_detection_overwrites(self, db, add_nation):
        add_nation(5)
        storage = SqlStorage(db)
        observe(storage, 5, False, T0)
        observe(storage, 5, True, T0 + timedelta(hours=1))
        observe(storage, 5, False, T0 + timedelta(hours=20))
        t_second = T0 + timedelta(hours=21, minutes=30)
        assert observe(storage, 5, True, t_second) is True

        db.expire_all()
        rows = resets_for(db, 5)
        assert len(rows) == 1
        assert naive(rows[0].detected_at) == naive(t_second)
        assert rows[0].reset_time == t_second.time()

    def test_failed_reset_write_keeps_false_baseline(self, db, add_nation):
        add_nation(6)
        storage = SqlStorage(db)
        observe(storage, 6, False, T0)
        db.execute(text("DROP TABLE reset_times"))
        db.commit()

        with pytest.raises(PersistenceError):
            observe(storage, 6, True, T0 + timedelta(hours=1))

        # The "true" row went down with the reset row, so the edge is still detectable.
        assert storage.latest_flag(6).flag is False
        assert db.query(ScanHistory).filter(ScanHistory.nation_id == 6).count() == 1
