"""Politics & War API: rate-limited GraphQL client and its response types."""
from reset_tracker.services.pnw.client import PnwClient
from reset_tracker.services.pnw.config import PnwConfig
from reset_tracker.services.pnw.rate_limiter import RateLimiter, RateLimitSnapshot
from reset_tracker.services.pnw.types import (
    BatchFailure,
    BatchFetchResult,
    NationData,
    NationsPage,
    NationStatus,
)

__all__ = [
    "BatchFailure",
    "BatchFetchResult",
    "NationData",
    "NationsPage",
    "NationStatus",
    "PnwClient",
    "PnwConfig",
    "RateLimiter",
    "RateLimitSnapshot",
]
