"""
Error taxonomy for the scan pipeline plus HTTP mapping for the query surface.

Provider failures:
  ThrottledError  - 429 still returned after the single retry.
  TransportError  - network/timeout/5xx; one sub-batch is dropped for this cycle.
  ProtocolError   - malformed or schema-mismatched response; never retried.
Storage failures:
  PersistenceError - a write or read failed for one nation; caught per nation.
Cycle failures:
  CycleError       - anything else that escapes a scan cycle; written to the error sink.
"""
from __future__ import annotations

from typing import Callable

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError


class ResetTrackerError(Exception):
    """Base for all errors raised by reset_tracker."""


class ProviderError(ResetTrackerError):
    """Upstream (Politics & War API) call failed."""


class ThrottledError(ProviderError):
    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class TransportError(ProviderError):
    pass


class ProtocolError(ProviderError):
    pass


class PersistenceError(ResetTrackerError):
    pass


class CycleError(ResetTrackerError):
    """Wraps the exception that aborted a scan cycle."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


# ---------------------------------------------------------------------------
# HTTP mapping: (exception type, status_code, detail). First match wins.
# ---------------------------------------------------------------------------

STATUS_SERVICE_UNAVAILABLE = 503  # provider throttled or unreachable, DB down
STATUS_BAD_GATEWAY = 502          # provider answered with garbage
STATUS_INTERNAL_ERROR = 500

MSG_STORAGE_UNAVAILABLE = "Storage unavailable. Try again shortly."
MSG_PROVIDER_UNAVAILABLE = "Politics & War API unavailable or rate limited."
MSG_PROVIDER_BAD_RESPONSE = "Politics & War API returned an unexpected response."
MSG_INTERNAL_ERROR = "Internal server error"

ERROR_RULES: list[tuple[Callable[[Exception], bool], int, str]] = [
    (lambda e: isinstance(e, (PersistenceError, SQLAlchemyError)), STATUS_SERVICE_UNAVAILABLE, MSG_STORAGE_UNAVAILABLE),
    (lambda e: isinstance(e, (ThrottledError, TransportError)), STATUS_SERVICE_UNAVAILABLE, MSG_PROVIDER_UNAVAILABLE),
    (lambda e: isinstance(e, ProtocolError), STATUS_BAD_GATEWAY, MSG_PROVIDER_BAD_RESPONSE),
]


def error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception raised while serving a request into an HTTPException.
    Unknown errors become a generic 500 so internals are not leaked to clients.
    """
    for predicate, status_code, detail in ERROR_RULES:
        if predicate(exc):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=MSG_INTERNAL_ERROR)
