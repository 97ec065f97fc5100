"""Pytest fixtures for reset-tracker tests."""

from __future__ import annotations

import os

# Settings are read at import time; point them at SQLite before reset_tracker is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PNW_API_KEY"] = "test-key"

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import reset_tracker.models  # noqa: F401  (registers tables on Base.metadata)
from reset_tracker.core.errors import TransportError
from reset_tracker.db.base import Base
from reset_tracker.models.nation import Nation
from reset_tracker.services.pnw.rate_limiter import RateLimiter
from reset_tracker.services.pnw.types import BatchFailure, BatchFetchResult, NationStatus

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Datetime clock for the orchestrator. Each call advances by `step`."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakePnwClient:
    """Stands in for PnwClient in orchestrator tests: canned flags, recorded calls."""

    def __init__(self, flags: dict[int, bool] | None = None):
        self.flags = dict(flags or {})
        self.failed: set[int] = set()
        self.raise_on_fetch: Exception | None = None
        self.fetch_calls: list[list[int]] = []
        self.pages: dict[str | None, object] = {}
        self.page_calls: list[str | None] = []
        self.rate_limiter = RateLimiter(sleep=lambda s: None)

    def fetch_by_ids(self, ids: list[int]) -> BatchFetchResult:
        self.fetch_calls.append(list(ids))
        if self.raise_on_fetch is not None:
            raise self.raise_on_fetch
        nations = [
            NationStatus(id=i, nation_name=f"Nation {i}", espionage_available=self.flags[i], last_active=T0)
            for i in ids
            if i in self.flags and i not in self.failed
        ]
        failed = [i for i in ids if i in self.failed]
        failures = [BatchFailure(ids=failed, error=TransportError("boom"))] if failed else []
        return BatchFetchResult(nations=nations, failures=failures)

    def fetch_page(self, resume_token, page_size=500):
        self.page_calls.append(resume_token)
        page = self.pages[resume_token]
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (scheduler, TestClient)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_client() -> FakePnwClient:
    return FakePnwClient()


@pytest.fixture
def add_nation(db):
    """Insert a nation row; last_active defaults to one hour before T0."""

    def _add(nation_id: int, *, last_active: datetime | None = None, name: str | None = None, leader: str | None = None):
        db.add(
            Nation(
                id=nation_id,
                nation_name=name or f"Nation {nation_id}",
                leader_name=leader or f"Leader {nation_id}",
                alliance_id=None,
                last_active=last_active or (T0 - timedelta(hours=1)),
            )
        )
        db.commit()

    return _add
