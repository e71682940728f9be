"""Jump straight to one photo's page instead of paging until it shows up."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from photopager.client.fetcher import DEFAULT_LIMIT, FetchedPage, clamp_limit
from photopager.client.retry import LoadResult
from photopager.client.transport import ApiTransport
from photopager.client.window import FiltersArg, PagedWindowManager, coerce_filters
from photopager.filters import SortSpec, ViewScope

log = structlog.get_logger("photopager.client.deeplink")


@dataclass(frozen=True)
class NotFound:
    """The target is unknown or excluded by the active filters."""

    reason: str
    code: str


@dataclass(frozen=True)
class LocatedPage:
    page: FetchedPage
    idx_in_items: int
    position: int
    page_index: int
    target: dict[str, Any]

    @property
    def item(self) -> Any:
        return self.page.items[self.idx_in_items]


class DeepLinkResolver:
    """Issue one locate request for a scope and sort order.

    A miss is reported as :class:`NotFound`; it is never turned into an
    empty page or a sequential scan.
    """

    def __init__(
        self,
        transport: ApiTransport,
        scope: ViewScope | None = None,
        sort: SortSpec | None = None,
    ) -> None:
        self._transport = transport
        self.scope = scope or ViewScope()
        self.sort = sort or SortSpec()

    def _path(self) -> str:
        if self.scope.mode == "project":
            folder = quote(self.scope.scope_id or "", safe="")
            return f"/api/v1/projects/{folder}/photos/locate-page"
        return "/api/v1/photos/locate-page"

    async def locate(
        self,
        filters: FiltersArg = None,
        *,
        project_folder: str | None = None,
        filename: str | None = None,
        name: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> LocatedPage | NotFound:
        if not filename and not name:
            raise ValueError("filename or name is required")
        if self.scope.mode == "all" and not project_folder:
            raise ValueError("project_folder is required in the all-projects view")

        params: dict[str, Any] = {
            "limit": clamp_limit(limit),
            "sort": self.sort.field,
            "dir": self.sort.direction,
            "filename": filename,
            "name": None if filename else name,
            **coerce_filters(filters).to_query_params(),
        }
        if self.scope.mode == "all":
            params["project_folder"] = project_folder

        try:
            payload = await self._transport.get_json(self._path(), params)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code != 404:
                raise
            body = _body(exc.response)
            miss = NotFound(
                reason=str(body.get("detail") or "not found"),
                code=str(body.get("code") or "not_found"),
            )
            log.info("deeplink.not_found", code=miss.code, filename=filename, name=name)
            return miss

        return LocatedPage(
            page=FetchedPage.from_payload(payload),
            idx_in_items=int(payload["idx_in_items"]),
            position=int(payload.get("position", 0)),
            page_index=int(payload.get("page_index", 0)),
            target=dict(payload.get("target") or {}),
        )

    async def open_in(
        self,
        manager: PagedWindowManager,
        filters: FiltersArg = None,
        **target: Any,
    ) -> tuple[LoadResult, LocatedPage] | NotFound:
        """Locate a photo and seed *manager* with its page; a miss leaves it untouched."""
        located = await self.locate(filters, **target)
        if isinstance(located, NotFound):
            return located
        return manager.seed(located.page, filters), located


def _body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
