"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "nations",
    "scan_history",
    "reset_times",
    "error_logs",
)

# Tables cleared when resetting detection state (TRUNCATE). Nations are kept so no re-import is needed.
DETECTION_TABLE_NAMES = (
    "reset_times",
    "scan_history",
)
