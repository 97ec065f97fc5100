"""Protocol for the scanner's storage collaborator. The scanner only talks to this interface."""
from datetime import datetime, time, timedelta
from typing import Any, Protocol


class Candidate:
    """A nation eligible for the next scan cycle."""

    __slots__ = ("id", "nation_name")

    def __init__(self, *, id: int, nation_name: str | None):
        self.id = id
        self.nation_name = nation_name


class FlagObservation:
    """Most recent ScanRecord for a nation."""

    __slots__ = ("flag", "observed_at")

    def __init__(self, *, flag: bool, observed_at: datetime):
        self.flag = flag
        self.observed_at = observed_at


class Storage(Protocol):
    """Durable nations, append-only scan history, one reset row per nation, error sink."""

    def list_candidates(self, max_age_days: int, limit: int, now: datetime) -> list[Candidate]:
        """Nations with no reset row and last_active within max_age_days, most recent first, capped at limit."""
        ...

    def latest_flag(self, nation_id: int) -> FlagObservation | None:
        ...

    def append_scan_record(self, nation_id: int, flag: bool, observed_at: datetime) -> None:
        ...

    def upsert_reset_record(
        self, nation_id: int, time_of_day: time, detected_at: datetime, confidence: float
    ) -> None:
        """Insert or overwrite the single reset row for nation_id."""
        ...

    def record_reset(
        self, nation_id: int, observed_at: datetime, time_of_day: time, confidence: float
    ) -> None:
        """Append the flag-on scan record and upsert the reset row atomically."""
        ...

    def upsert_nation(
        self,
        id: int,
        nation_name: str | None,
        leader_name: str | None,
        alliance_id: int | None,
        last_active: datetime | None,
    ) -> None:
        ...

    def touch_nation(self, nation_id: int, last_active: datetime | None, updated_at: datetime) -> None:
        """Record last_active from the provider and the modification time."""
        ...

    def count_nations(self) -> int:
        ...

    def count_reset_records(self) -> int:
        ...

    def count_recent_scans(self, window: timedelta, now: datetime) -> int:
        ...

    def append_error(
        self,
        kind: str,
        message: str,
        trace: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Write to the error sink. Must not raise."""
        ...
