"""
Politics & War GraphQL client: full-catalog pages and by-id batches.

Every network call waits on the shared RateLimiter first. A 429 is retried exactly
once after the provider's retry-after delay; anything else that goes wrong is raised
as TransportError (network, 5xx) or ProtocolError (bad status, bad body, bad schema).
"""
import logging
import time
from typing import Any, Callable, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from reset_tracker.core.constants import (
    BOOTSTRAP_PAGE_SIZE,
    DEFAULT_RETRY_AFTER_SECONDS,
    FETCH_BATCH_SIZE,
)
from reset_tracker.core.errors import ProtocolError, ProviderError, ThrottledError, TransportError
from reset_tracker.services.pnw.config import PnwConfig
from reset_tracker.services.pnw.rate_limiter import RateLimiter
from reset_tracker.services.pnw.types import (
    BatchFailure,
    BatchFetchResult,
    NationData,
    NationsPage,
    NationStatus,
    PnwNationsConnection,
)

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)

NATIONS_PAGE_QUERY = """
query FetchNations($first: Int!, $after: String) {
  nations(first: $first, after: $after) {
    data {
      id
      nation_name
      leader_name
      alliance_id
      espionage_available
      last_active
    }
    paginatorInfo {
      hasNextPage
      endCursor
      total
    }
  }
}
"""

NATIONS_BY_ID_QUERY = """
query FetchSpecificNations($ids: [Int!], $first: Int!) {
  nations(id: $ids, first: $first) {
    data {
      id
      nation_name
      espionage_available
      last_active
    }
  }
}
"""

HEADER_REMAINING = "x-ratelimit-remaining"
HEADER_RESET = "x-ratelimit-reset"
HEADER_LIMIT = "x-ratelimit-limit"
RETRY_AFTER_HEADERS = ("x-ratelimit-resetafter", "retry-after")


def _int_header(headers: httpx.Headers, name: str) -> int | None:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def _retry_after_seconds(response: httpx.Response) -> float:
    """Provider retry-after (seconds); DEFAULT_RETRY_AFTER_SECONDS when absent or unparsable."""
    for name in RETRY_AFTER_HEADERS:
        raw = response.headers.get(name)
        if raw is None:
            continue
        try:
            return max(0.0, float(raw))
        except (TypeError, ValueError):
            continue
    return float(DEFAULT_RETRY_AFTER_SECONDS)


def _chunks(ids: list[int], size: int) -> list[list[int]]:
    return [ids[i : i + size] for i in range(0, len(ids), size)]


class PnwClient:
    """Politics & War API client. One instance per process so the rate limiter is shared."""

    def __init__(
        self,
        config: PnwConfig | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        batch_size: int = FETCH_BATCH_SIZE,
    ) -> None:
        self._config = config or PnwConfig()
        self.rate_limiter = rate_limiter or RateLimiter()
        self._transport = transport
        self._sleep = sleep
        self.batch_size = batch_size

    def _record_rate_limit(self, response: httpx.Response) -> None:
        remaining = _int_header(response.headers, HEADER_REMAINING)
        if remaining is None:
            return
        reset = _int_header(response.headers, HEADER_RESET)
        limit = _int_header(response.headers, HEADER_LIMIT)
        if limit is None:
            limit = self.rate_limiter.snapshot().limit
        self.rate_limiter.update(remaining, float(reset) if reset is not None else None, limit)

    def _send(self, payload: dict[str, Any]) -> httpx.Response:
        """One HTTP round trip. Rate-limit headers are recorded on every response, 429s included."""
        try:
            with httpx.Client(timeout=self._config.timeout, transport=self._transport) as c:
                r = c.post(
                    self._config.base_url,
                    params=self._config.params(),
                    json=payload,
                    headers=self._config.headers(),
                )
        except httpx.TransportError as e:
            raise TransportError(f"Politics & War API request failed: {e}") from e
        self._record_rate_limit(r)
        return r

    def _post(self, query: str, variables: dict[str, Any]) -> PnwNationsConnection:
        if not self._config.is_configured():
            raise ProviderError("Politics & War API key not configured. Add PNW_API_KEY to .env.")
        payload = {"query": query, "variables": variables}
        self.rate_limiter.wait_if_needed()
        r = self._send(payload)
        if r.status_code == 429:
            delay = _retry_after_seconds(r)
            logger.warning("Rate limited by Politics & War API. Waiting %.0fs before one retry", delay)
            self._sleep(delay)
            self.rate_limiter.wait_if_needed()
            r = self._send(payload)
            if r.status_code == 429:
                raise ThrottledError(
                    "Politics & War API still rate limited after retry",
                    retry_after=_retry_after_seconds(r),
                )
        return self._nations_connection(r)

    def _nations_connection(self, r: httpx.Response) -> PnwNationsConnection:
        if r.status_code >= 500:
            raise TransportError(f"Politics & War API error: {r.status_code}")
        if not r.is_success:
            detail = r.text[:500] if r.text else ""
            raise ProtocolError(f"Politics & War API error: {r.status_code} {detail}".strip())
        try:
            body = r.json()
        except ValueError as e:
            raise ProtocolError(f"Politics & War API returned non-JSON body: {r.text[:200]!r}") from e
        if not isinstance(body, dict):
            raise ProtocolError("Politics & War API returned a non-object body")
        if body.get("errors"):
            messages = [
                (err.get("message") if isinstance(err, dict) else str(err)) for err in body["errors"]
            ]
            logger.error("GraphQL errors: %s", messages)
            raise ProtocolError(f"GraphQL query failed: {'; '.join(m or '' for m in messages)}")
        nations = (body.get("data") or {}).get("nations")
        if not isinstance(nations, dict):
            raise ProtocolError("GraphQL response missing data.nations")
        return nations

    @staticmethod
    def _rows(connection: PnwNationsConnection, model: type[RowT]) -> list[RowT]:
        rows = connection.get("data")
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise ProtocolError("data.nations.data is not a list")
        try:
            return [model.model_validate(row) for row in rows]
        except ValidationError as e:
            raise ProtocolError(f"Unexpected nation shape: {e.error_count()} validation error(s)") from e

    def fetch_page(self, resume_token: str | None = None, page_size: int = BOOTSTRAP_PAGE_SIZE) -> NationsPage:
        """
        One page of the full nation catalog. Pass the previous page's next_token as resume_token
        (None for the first page). The token is the provider's endCursor, replayed as-is.
        """
        connection = self._post(NATIONS_PAGE_QUERY, {"first": page_size, "after": resume_token})
        nations = self._rows(connection, NationData)
        info = connection.get("paginatorInfo")
        if not isinstance(info, dict):
            raise ProtocolError("GraphQL response missing nations.paginatorInfo")
        return NationsPage(
            nations=nations,
            has_more=bool(info.get("hasNextPage")),
            next_token=info.get("endCursor"),
            total=info.get("total"),
        )

    def fetch_by_ids(self, ids: list[int]) -> BatchFetchResult:
        """
        Current status for the given nation ids, best effort. Sub-batches of batch_size run
        one after another; a sub-batch that fails on transport or throttling is logged, recorded
        in the result's failures and skipped. A ProtocolError aborts the whole fetch.
        """
        nations: list[NationStatus] = []
        failures: list[BatchFailure] = []
        batches = _chunks(list(ids), self.batch_size)
        for index, batch in enumerate(batches, start=1):
            try:
                connection = self._post(NATIONS_BY_ID_QUERY, {"ids": batch, "first": len(batch)})
            except (TransportError, ThrottledError) as e:
                logger.error(
                    "Failed to fetch nations batch %s/%s (%s ids, first ids %s): %s",
                    index,
                    len(batches),
                    len(batch),
                    batch[:5],
                    e,
                )
                failures.append(BatchFailure(ids=batch, error=e))
                continue
            nations.extend(self._rows(connection, NationStatus))
        return BatchFetchResult(nations=nations, failures=failures)
