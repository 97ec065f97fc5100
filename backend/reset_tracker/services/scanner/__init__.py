"""
Nation scanner: polls espionage_available for recently active nations and records the
time-of-day of each false -> true flip as that nation's reset time.
"""
from reset_tracker.services.scanner.detector import is_reset_transition, process_nation
from reset_tracker.services.scanner.orchestrator import ScanCycleResult, ScanOrchestrator, ScanState

__all__ = [
    "ScanCycleResult",
    "ScanOrchestrator",
    "ScanState",
    "is_reset_transition",
    "process_nation",
]
