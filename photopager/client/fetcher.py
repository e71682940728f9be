"""The "fetch one page" boundary the window manager sequences.

:class:`PageFetcher` is any async callable taking :class:`FetchParams` and
returning a :class:`FetchedPage`; :class:`HttpPageFetcher` is the REST-backed
implementation. Tests and in-process callers can supply their own.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

from photopager.client.transport import ApiTransport
from photopager.filters import PhotoFilters, SortSpec, ViewScope

MIN_LIMIT = 1
MAX_LIMIT = 300
DEFAULT_LIMIT = 100


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(MIN_LIMIT, min(int(limit), MAX_LIMIT))


@dataclass(frozen=True)
class FetchParams:
    """One page request. At most one of ``cursor`` / ``before_cursor`` is set."""

    limit: int = DEFAULT_LIMIT
    cursor: str | None = None
    before_cursor: str | None = None
    filters: PhotoFilters = field(default_factory=PhotoFilters)

    def __post_init__(self) -> None:
        if self.cursor and self.before_cursor:
            raise ValueError("at most one of cursor / before_cursor may be set")
        object.__setattr__(self, "limit", clamp_limit(self.limit))
        if self.filters is None:
            object.__setattr__(self, "filters", PhotoFilters())

    def query_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": self.limit, **self.filters.to_query_params()}
        if self.cursor:
            params["cursor"] = self.cursor
        elif self.before_cursor:
            params["before_cursor"] = self.before_cursor
        return params


def _pick(payload: Mapping[str, Any], snake: str, camel: str) -> Any:
    if snake in payload:
        return payload[snake]
    return payload.get(camel)


@dataclass
class FetchedPage:
    items: list[Any]
    next_cursor: str | None = None
    prev_cursor: str | None = None
    total: int | None = None
    unfiltered_total: int | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> FetchedPage:
        """Build from an API body; snake_case and camelCase keys are both accepted."""
        items = payload.get("items")
        return cls(
            items=list(items) if isinstance(items, list) else [],
            next_cursor=_pick(payload, "next_cursor", "nextCursor") or None,
            prev_cursor=_pick(payload, "prev_cursor", "prevCursor") or None,
            total=payload.get("total"),
            unfiltered_total=_pick(payload, "unfiltered_total", "unfilteredTotal"),
        )


class PageFetcher(Protocol):
    async def __call__(self, params: FetchParams) -> FetchedPage: ...


def photos_path(scope: ViewScope) -> str:
    if scope.mode == "project":
        return f"/api/v1/projects/{quote(scope.scope_id or '', safe='')}/photos"
    return "/api/v1/photos"


class HttpPageFetcher:
    """Fetch pages of one scope and sort order from the REST API."""

    def __init__(
        self,
        transport: ApiTransport,
        scope: ViewScope | None = None,
        sort: SortSpec | None = None,
    ) -> None:
        self._transport = transport
        self.scope = scope or ViewScope()
        self.sort = sort or SortSpec()

    async def __call__(self, params: FetchParams) -> FetchedPage:
        query = params.query_params()
        query["sort"] = self.sort.field
        query["dir"] = self.sort.direction
        payload = await self._transport.get_json(photos_path(self.scope), query)
        return FetchedPage.from_payload(payload)
