"""Bounded retry for pages that come back empty after de-duplication.

A page can be empty because the server has nothing further (its edge cursor
is null) or because the requested slice was deleted, or only repeated items
already in the window, between two calls (edge cursor still set). Only the
second case is worth another fetch, and only a few times.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class FetchVerdict(enum.Enum):
    OK = "ok"
    EMPTY_RETRY = "empty_retry"
    END = "end"


class LoadStatus(str, enum.Enum):
    """Outcome of one window load call."""

    LOADED = "loaded"
    END = "end"
    # Every attempt came back empty but the server still had a cursor; the
    # window keeps the advanced cursor so a later call resumes from there.
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"
    STALE = "stale"
    RESEED = "reseed"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def classify(self, kept: int, edge_cursor: str | None) -> FetchVerdict:
        """Judge one fetch by the items it kept and the cursor past it."""
        if kept > 0:
            return FetchVerdict.OK
        if edge_cursor is None:
            return FetchVerdict.END
        return FetchVerdict.EMPTY_RETRY

    def exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts


@dataclass(frozen=True)
class LoadResult:
    status: LoadStatus
    page: Any = None
    attempts: int = 0

    @property
    def loaded(self) -> bool:
        return self.status is LoadStatus.LOADED
