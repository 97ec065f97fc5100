"""
Centralized constants for the scanner, provider client and query surface.

Change intervals, caps and job IDs here instead of scattering literals across
main, the orchestrator and routes. Deployment-specific values (API key, DB URL,
scan interval) come from reset_tracker.config.settings.
"""

# Scheduler job ID (must match the id used by ScanOrchestrator when adding the job)
SCAN_JOB_ID = "nation_scan"
SCAN_INTERVAL_SECONDS = 60 * 60

# Candidate selection: recently active nations with no reset time yet.
# CANDIDATE_LIMIT is the only cap on provider load per cycle.
CANDIDATE_MAX_AGE_DAYS = 7
CANDIDATE_LIMIT = 5000

# Provider batching
FETCH_BATCH_SIZE = 100        # max ids per "nations by id" call
BOOTSTRAP_PAGE_SIZE = 500     # page size for the full-catalog import
HTTP_TIMEOUT_SECONDS = 30.0

# Rate limiting: pause when remaining requests drop to this buffer
RATE_LIMIT_BUFFER = 10
RATE_LIMIT_DEFAULT_LIMIT = 1000
DEFAULT_RETRY_AFTER_SECONDS = 60

# Reset detection
RESET_CONFIDENCE = 1.00

# Shutdown: max seconds stop() waits for an in-flight cycle
STOP_WAIT_SECONDS = 300

# Stats: "recent scans" window
RECENT_SCANS_WINDOW_SECONDS = 60 * 60

# Query surface caps
SEARCH_DEFAULT_LIMIT = 10
SEARCH_MAX_LIMIT = 100
ERRORS_DEFAULT_LIMIT = 50
ERRORS_MAX_LIMIT = 500

# Error sink kinds (error_logs.error_type)
ERROR_SCAN_CYCLE = "SCAN_CYCLE_ERROR"
ERROR_SCAN_BATCH = "SCAN_BATCH_FAILED"
ERROR_NATION_PROCESS = "NATION_PROCESS_ERROR"
ERROR_BOOTSTRAP = "BOOTSTRAP_ERROR"
