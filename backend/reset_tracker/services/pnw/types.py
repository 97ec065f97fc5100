"""
Typed definitions for Politics & War GraphQL responses and the normalized
results PnwClient returns.

Raw shapes are TypedDicts (what the API sends). Nation rows are validated with
pydantic on the way in, so a schema change upstream surfaces as ProtocolError
instead of a KeyError deep inside the scanner.
"""
from datetime import datetime
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict


class PnwPaginatorInfo(TypedDict, total=False):
    """nations.paginatorInfo. endCursor is opaque: store and replay it, never decode it."""
    hasNextPage: bool
    endCursor: str | None
    total: int | None


class PnwNationsConnection(TypedDict, total=False):
    """data.nations: one page of nation rows."""
    data: list[dict[str, Any]]
    paginatorInfo: PnwPaginatorInfo


class NationData(BaseModel):
    """One nation from the full-catalog import. Ids arrive as strings ("123") and are coerced."""

    model_config = ConfigDict(extra="ignore")

    id: int
    nation_name: str | None = None
    leader_name: str | None = None
    alliance_id: int | None = None
    espionage_available: bool | None = None
    last_active: datetime | None = None


class NationStatus(BaseModel):
    """One nation from a by-id fetch; espionage_available is the polled flag and must be present."""

    model_config = ConfigDict(extra="ignore")

    id: int
    nation_name: str | None = None
    espionage_available: bool
    last_active: datetime | None = None


class NationsPage:
    """One page of the full-catalog import. next_token is passed back verbatim on the next call."""

    __slots__ = ("nations", "has_more", "next_token", "total")

    def __init__(
        self,
        *,
        nations: list[NationData],
        has_more: bool,
        next_token: str | None,
        total: int | None = None,
    ):
        self.nations = nations
        self.has_more = has_more
        self.next_token = next_token
        self.total = total


class BatchFailure:
    """One sub-batch that could not be fetched this cycle."""

    __slots__ = ("ids", "error")

    def __init__(self, *, ids: list[int], error: Exception):
        self.ids = ids
        self.error = error

    def to_context(self) -> dict[str, Any]:
        """Context for the error sink: enough to identify the affected ids."""
        return {
            "batch_size": len(self.ids),
            "first_ids": self.ids[:5],
            "error_kind": type(self.error).__name__,
        }


class BatchFetchResult:
    """Outcome of fetch_by_ids: the nations that came back plus every sub-batch that failed."""

    __slots__ = ("nations", "failures")

    def __init__(self, *, nations: list[NationStatus], failures: list[BatchFailure] | None = None):
        self.nations = nations
        self.failures = failures or []

    @property
    def failed_ids(self) -> list[int]:
        return [i for f in self.failures for i in f.ids]

    @property
    def degraded(self) -> bool:
        return bool(self.failures)
