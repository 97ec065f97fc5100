"""
Reset detection: a nation's reset is the moment espionage_available flips false -> true.

We compare each freshly fetched flag against the nation's latest stored observation.
No prior observation is not a "false": a nation first seen with the flag on has no
baseline, so it must be seen off and then on in later cycles before a reset is recorded.
"""
import logging
from datetime import datetime, time

from reset_tracker.core.constants import RESET_CONFIDENCE
from reset_tracker.services.pnw.types import NationStatus
from reset_tracker.services.storage.base import Storage

logger = logging.getLogger(__name__)


def is_reset_transition(prior_flag: bool | None, current_flag: bool) -> bool:
    return prior_flag is False and current_flag is True


def reset_time_of_day(now: datetime) -> time:
    """Time-of-day stored for a detection: the check's own wall clock (UTC), to the second."""
    return now.time().replace(microsecond=0)


def process_nation(storage: Storage, nation: NationStatus, now: datetime) -> bool:
    """
    Per-nation update for one scan cycle:
      1. read the latest prior observation,
      2. append this observation (always, detection or not),
      3. on false -> true, upsert the reset row (time-of-day and detected_at from now, not last_active);
         steps 2 and 3 then share one commit, so a failed reset write does not leave the
         "true" row behind as the next cycle's baseline,
      4. record last_active and the modification time.
    Returns True when a reset was recorded. Storage errors propagate to the caller.
    """
    prior = storage.latest_flag(nation.id)
    detected = is_reset_transition(prior.flag if prior else None, nation.espionage_available)
    if detected:
        time_of_day = reset_time_of_day(now)
        storage.record_reset(nation.id, now, time_of_day, RESET_CONFIDENCE)
        logger.info("Reset time detected for nation %s: %s UTC", nation.id, time_of_day.isoformat())
    else:
        storage.append_scan_record(nation.id, nation.espionage_available, now)

    storage.touch_nation(nation.id, nation.last_active, now)
    return detected
