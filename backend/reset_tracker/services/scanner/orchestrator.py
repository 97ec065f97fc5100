"""
Nation scanner: run/stop lifecycle, hourly cadence, one scan cycle, full-catalog bootstrap.

State is IDLE or RUNNING and only changes under _state_lock (compare-and-set), so start()
and stop() can be called from the app lifespan, scripts and request threads alike.
Cycles are single-flight: a tick that fires while a cycle is still running is skipped,
and stop() waits (bounded) for the in-flight cycle instead of interrupting it. The
bootstrap import holds the same lock. close() is the process-shutdown variant of stop():
it also ends a running bootstrap early and refuses any later start().
"""
import enum
import logging
import threading
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from sqlalchemy.orm import Session

from reset_tracker.core.constants import (
    BOOTSTRAP_PAGE_SIZE,
    CANDIDATE_LIMIT,
    CANDIDATE_MAX_AGE_DAYS,
    ERROR_BOOTSTRAP,
    ERROR_NATION_PROCESS,
    ERROR_SCAN_BATCH,
    ERROR_SCAN_CYCLE,
    SCAN_INTERVAL_SECONDS,
    SCAN_JOB_ID,
    STOP_WAIT_SECONDS,
)
from reset_tracker.core.errors import CycleError
from reset_tracker.services.pnw.client import PnwClient
from reset_tracker.services.scanner.detector import process_nation
from reset_tracker.services.storage.sql_storage import SqlStorage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class ScanCycleResult:
    """What one perform_scan() did. Kept as the orchestrator's last result for the status endpoint."""

    __slots__ = (
        "started_at",
        "finished_at",
        "duration_seconds",
        "candidates",
        "fetched",
        "processed",
        "resets_detected",
        "nation_errors",
        "failed_ids",
        "skipped",
        "error",
    )

    def __init__(self, *, started_at: datetime, skipped: bool = False):
        self.started_at = started_at
        self.finished_at: datetime | None = None
        self.duration_seconds: float | None = None
        self.candidates = 0
        self.fetched = 0
        self.processed = 0
        self.resets_detected = 0
        self.nation_errors = 0
        self.failed_ids: list[int] = []
        self.skipped = skipped
        self.error: str | None = None

    @property
    def degraded(self) -> bool:
        """Cycle finished but some sub-batches or nations were not processed."""
        return bool(self.failed_ids) or self.nation_errors > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "candidates": self.candidates,
            "fetched": self.fetched,
            "processed": self.processed,
            "resets_detected": self.resets_detected,
            "nation_errors": self.nation_errors,
            "failed_id_count": len(self.failed_ids),
            "degraded": self.degraded,
            "skipped": self.skipped,
            "error": self.error,
        }


class ScanOrchestrator:
    """Owns the scan job. One instance per process."""

    def __init__(
        self,
        client: PnwClient,
        session_factory: Callable[[], Session],
        *,
        scheduler: BaseScheduler | None = None,
        interval_seconds: int = SCAN_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self._session_factory = session_factory
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._state = ScanState.IDLE
        self._closed = False
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._cycle_idle = threading.Event()
        self._cycle_idle.set()

        self._last_result: ScanCycleResult | None = None
        self._last_error: CycleError | None = None

    @property
    def state(self) -> ScanState:
        with self._state_lock:
            return self._state

    @property
    def is_cycle_running(self) -> bool:
        return not self._cycle_idle.is_set()

    @property
    def last_result(self) -> ScanCycleResult | None:
        return self._last_result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        IDLE -> RUNNING: run one cycle now, then every interval_seconds.
        Returns False (and does nothing) when already running.
        """
        with self._state_lock:
            if self._closed:
                logger.warning("Scanner closed; not starting")
                return False
            if self._state is not ScanState.IDLE:
                logger.warning("Scanner already running")
                return False
            self._state = ScanState.RUNNING

        logger.info("Starting nation scanner (interval %ss)", self.interval_seconds)
        self.perform_scan()

        with self._state_lock:
            if self._state is not ScanState.RUNNING:
                logger.info("Scanner stopped during initial scan; recurring job not scheduled")
                return False
            if self._owns_scheduler:
                if not self._scheduler.running:
                    # A shut-down BackgroundScheduler cannot be restarted: its executor is gone.
                    self._scheduler = BackgroundScheduler(timezone=timezone.utc)
                    self._scheduler.start()
            elif not self._scheduler.running:
                logger.warning("Scheduler not running; scan job will fire once its owner starts it")
            self._scheduler.add_job(
                self.perform_scan,
                "interval",
                seconds=self.interval_seconds,
                id=SCAN_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        return True

    def stop(self, timeout: float = STOP_WAIT_SECONDS) -> bool:
        """
        Cancel the recurring job and return to IDLE. An in-flight cycle is not interrupted;
        we wait up to timeout seconds for it. Returns True when no cycle is left running.
        """
        with self._state_lock:
            was_running = self._state is ScanState.RUNNING
            self._state = ScanState.IDLE
            try:
                self._scheduler.remove_job(SCAN_JOB_ID)
            except JobLookupError:
                pass
        drained = self._cycle_idle.wait(timeout)
        if not drained:
            logger.warning("Scan cycle still running after %ss; stopping without it", timeout)
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        if was_running:
            logger.info("Scanner stopped")
        return drained

    def close(self, timeout: float = STOP_WAIT_SECONDS) -> bool:
        """
        Final stop for process shutdown. A bootstrap in progress ends after its current page,
        and later start() calls are refused. Returns what stop() returns.
        """
        with self._state_lock:
            self._closed = True
        return self.stop(timeout)

    # ------------------------------------------------------------------
    # Scan cycle
    # ------------------------------------------------------------------

    def perform_scan(self) -> ScanCycleResult:
        """
        One cycle: candidates -> fetch_by_ids -> per-nation detect/append/upsert.
        Never raises; failures go to the log and the error sink and the schedule carries on.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous scan cycle still running; skipping this tick")
            return ScanCycleResult(started_at=self._clock(), skipped=True)

        self._cycle_idle.clear()
        result = ScanCycleResult(started_at=self._clock())
        t0 = time.monotonic()
        logger.info("Starting scan cycle")
        try:
            db = self._session_factory()
            storage = SqlStorage(db)
            try:
                self._run_cycle(storage, result)
            except Exception as e:
                error = CycleError(f"Scan cycle failed: {e}", cause=e)
                logger.exception("Scan cycle failed: %s", e)
                result.error = str(error)
                self._last_error = error
                storage.rollback()
                storage.append_error(
                    ERROR_SCAN_CYCLE,
                    str(e),
                    traceback.format_exc(),
                    {"candidates": result.candidates, "processed": result.processed},
                )
            finally:
                db.close()
        except Exception as e:
            # Session could not be opened/closed; nothing to write to.
            error = CycleError(f"Scan cycle failed: {e}", cause=e)
            logger.exception("Scan cycle failed before storage was available: %s", e)
            result.error = str(error)
            self._last_error = error
        finally:
            result.finished_at = self._clock()
            result.duration_seconds = round(time.monotonic() - t0, 3)
            self._last_result = result
            self._cycle_lock.release()
            self._cycle_idle.set()

        if result.error is None and result.candidates:
            logger.info(
                "Scan completed in %.1fs: candidates=%s fetched=%s processed=%s resets=%s failed_ids=%s nation_errors=%s",
                result.duration_seconds,
                result.candidates,
                result.fetched,
                result.processed,
                result.resets_detected,
                len(result.failed_ids),
                result.nation_errors,
            )
        return result

    def _run_cycle(self, storage: SqlStorage, result: ScanCycleResult) -> None:
        candidates = storage.list_candidates(CANDIDATE_MAX_AGE_DAYS, CANDIDATE_LIMIT, self._clock())
        result.candidates = len(candidates)
        if not candidates:
            logger.info("No nations to scan")
            return

        logger.info("Scanning %s nations", len(candidates))
        wanted = {c.id for c in candidates}
        fetch = self.client.fetch_by_ids([c.id for c in candidates])
        result.failed_ids = fetch.failed_ids
        for failure in fetch.failures:
            storage.append_error(ERROR_SCAN_BATCH, str(failure.error), None, failure.to_context())
        if fetch.degraded:
            logger.warning(
                "Degraded scan cycle: %s of %s nations not fetched (%s failed batches); they stay candidates",
                len(fetch.failed_ids),
                len(candidates),
                len(fetch.failures),
            )

        for nation in fetch.nations:
            if nation.id not in wanted:
                logger.debug("Ignoring nation %s not requested this cycle", nation.id)
                continue
            result.fetched += 1
            try:
                if process_nation(storage, nation, self._clock()):
                    result.resets_detected += 1
                result.processed += 1
            except Exception as e:
                logger.exception("Failed to process nation %s: %s", nation.id, e)
                result.nation_errors += 1
                storage.rollback()
                storage.append_error(
                    ERROR_NATION_PROCESS, str(e), traceback.format_exc(), {"nation_id": nation.id}
                )

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def initialize_nations(self, page_size: int = BOOTSTRAP_PAGE_SIZE) -> int:
        """
        Import the full nation catalog page by page, replaying the provider's resume token.
        Stops at the first failed page and keeps what was imported. Returns nations upserted.
        Runs under the cycle lock, so stop()/close() wait for the page in flight.
        """
        if self._closed:
            logger.info("Scanner closed; skipping nation import")
            return 0
        logger.info("Initializing nations database")
        with self._cycle_lock:
            self._cycle_idle.clear()
            try:
                total = self._import_pages(page_size)
            finally:
                self._cycle_idle.set()
        logger.info("Nation initialization complete. Total: %s", total)
        return total

    def _import_pages(self, page_size: int) -> int:
        total = 0
        token: str | None = None
        db = self._session_factory()
        storage = SqlStorage(db)
        try:
            while True:
                if self._closed:
                    logger.info("Scanner closed; stopping nation import after %s nations", total)
                    break
                try:
                    page = self.client.fetch_page(token, page_size)
                    for nation in page.nations:
                        storage.upsert_nation(
                            nation.id,
                            nation.nation_name,
                            nation.leader_name,
                            nation.alliance_id,
                            nation.last_active,
                        )
                        total += 1
                except Exception as e:
                    logger.exception("Failed to initialize nations after %s imported: %s", total, e)
                    storage.rollback()
                    storage.append_error(
                        ERROR_BOOTSTRAP,
                        str(e),
                        traceback.format_exc(),
                        {"imported": total, "resume_token": token},
                    )
                    break
                logger.info("Initialized %s nations%s", total, f" of {page.total}" if page.total else "")
                if not page.has_more:
                    break
                if not page.next_token:
                    logger.warning("Provider reported more pages but no resume token; stopping import")
                    break
                token = page.next_token
        finally:
            db.close()
        return total

    def initialize_if_empty(self) -> int:
        """Run the bootstrap only when the nations table is empty. Returns nations imported (0 if skipped)."""
        db = self._session_factory()
        try:
            existing = SqlStorage(db).count_nations()
        finally:
            db.close()
        if existing:
            logger.info("Nations table has %s rows; skipping bootstrap", existing)
            return 0
        logger.info("No nations found, initializing database")
        return self.initialize_nations()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def next_run_at(self) -> datetime | None:
        job = self._scheduler.get_job(SCAN_JOB_ID)
        at = getattr(job, "next_run_time", None) if job else None
        if at is not None and at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        return at

    def status(self) -> dict[str, Any]:
        """Heartbeat for GET /api/scanner/status. In-memory only."""
        next_run = self.next_run_at()
        last_error = self._last_error
        return {
            "state": self.state.value,
            "is_cycle_running": self.is_cycle_running,
            "interval_seconds": self.interval_seconds,
            "next_run_at": next_run.isoformat() if next_run else None,
            "last_cycle": self._last_result.to_dict() if self._last_result else None,
            "last_error": (
                {"message": str(last_error), "cause": type(last_error.cause).__name__ if last_error.cause else None}
                if last_error
                else None
            ),
            "rate_limit": self.client.rate_limiter.snapshot().to_dict(),
        }
