"""
Request budget for the Politics & War API.

State comes from the X-RateLimit-* headers of the latest response (last writer wins).
Protection is reactive only: we pause when the remaining budget is at or below the
buffer and the reset time is known; with an unknown reset time we never wait.
"""
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

from reset_tracker.core.constants import RATE_LIMIT_BUFFER, RATE_LIMIT_DEFAULT_LIMIT

logger = logging.getLogger(__name__)


class RateLimitSnapshot:
    """Point-in-time copy of the limiter state (for stats and logging)."""

    __slots__ = ("remaining", "reset_at", "limit")

    def __init__(self, *, remaining: int, reset_at: float | None, limit: int):
        self.remaining = remaining
        self.reset_at = reset_at
        self.limit = limit

    def to_dict(self) -> dict[str, Any]:
        reset_iso = (
            datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()
            if self.reset_at is not None
            else None
        )
        return {"remaining": self.remaining, "reset_at": reset_iso, "limit": self.limit}


class RateLimiter:
    """Shared by every PnwClient call in the process. Clock and sleep are injectable for tests."""

    def __init__(
        self,
        *,
        buffer: int = RATE_LIMIT_BUFFER,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.buffer = buffer
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._remaining = RATE_LIMIT_DEFAULT_LIMIT
        self._reset_at: float | None = None  # epoch seconds
        self._limit = RATE_LIMIT_DEFAULT_LIMIT

    def update(self, remaining: int, reset_at: float | None, limit: int) -> None:
        """Overwrite state from the latest response metadata. No accumulation across calls."""
        with self._lock:
            self._remaining = remaining
            self._reset_at = reset_at
            self._limit = limit
        logger.debug("Rate limit updated: remaining=%s reset_at=%s limit=%s", remaining, reset_at, limit)

    def wait_if_needed(self) -> float:
        """Block until it is safe to send the next request. Returns seconds slept (0 when no wait)."""
        with self._lock:
            remaining, reset_at = self._remaining, self._reset_at
        if remaining > self.buffer or reset_at is None:
            return 0.0
        wait = max(0.0, reset_at - self._clock())
        if wait > 0:
            logger.info("Rate limit buffer reached (remaining=%s). Waiting %.0fs", remaining, wait)
            self._sleep(wait)
        return wait

    def can_make_request(self) -> bool:
        with self._lock:
            return self._remaining > self.buffer

    def snapshot(self) -> RateLimitSnapshot:
        with self._lock:
            return RateLimitSnapshot(remaining=self._remaining, reset_at=self._reset_at, limit=self._limit)
