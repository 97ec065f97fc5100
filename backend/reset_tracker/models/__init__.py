from reset_tracker.models.error_log import ErrorLog
from reset_tracker.models.nation import Nation
from reset_tracker.models.reset_time import ResetTime
from reset_tracker.models.scan_history import ScanHistory

__all__ = [
    "ErrorLog",
    "Nation",
    "ResetTime",
    "ScanHistory",
]
