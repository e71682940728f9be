"""Bounded, bidirectional window over a keyset-paginated photo listing.

The manager keeps a contiguous run of pages, the cursor before its first page
(``head_prev_cursor``) and the cursor after its last page
(``tail_next_cursor``). Appending evicts from the head and prepending evicts
from the tail once more than ``max_pages`` are held; an evicted page stays
reachable because the outward cursor is re-read from the new edge page.

Items are de-duplicated by ``key_of`` across the whole window. A key enters
the seen-set only when its page is committed and leaves it only when that
page is evicted.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, Literal

import structlog

from photopager.client import CursorRejectedError, ScopeMismatchError
from photopager.client.delta import ChangeEvent, apply_delta
from photopager.client.fetcher import (
    DEFAULT_LIMIT,
    FetchedPage,
    FetchParams,
    PageFetcher,
    clamp_limit,
)
from photopager.client.retry import FetchVerdict, LoadResult, LoadStatus, RetryPolicy
from photopager.client.state import WindowPage, WindowState, photo_key
from photopager.filters import PhotoFilters, SortSpec, ViewScope, fingerprint

log = structlog.get_logger("photopager.client.window")

DEFAULT_MAX_PAGES = 5
# Eviction is held back below these floors so a deep-link jump or a quick
# reversal still has content to land on.
MIN_PAGES_TO_EVICT = 3
MIN_BUFFERED_ITEMS = 50
MIN_TAIL_PAGE_ITEMS = 20

FiltersArg = PhotoFilters | Mapping[str, Any] | None
Side = Literal["head", "tail"]


def coerce_filters(filters: FiltersArg) -> PhotoFilters:
    if filters is None:
        return PhotoFilters()
    if isinstance(filters, PhotoFilters):
        return filters
    return PhotoFilters.model_validate(dict(filters))


class PagedWindowManager:
    """One window per scope/filter/sort combination.

    ``fetch_page`` is the :class:`~photopager.client.fetcher.PageFetcher`
    boundary; fetch errors propagate unchanged and leave the window as it
    was. ``scope`` and ``sort`` only feed the fingerprint used to detect a
    caller mixing filters into a live window.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        *,
        limit: int = DEFAULT_LIMIT,
        max_pages: int = DEFAULT_MAX_PAGES,
        key_of: Callable[[Any], str] | None = None,
        retry: RetryPolicy | None = None,
        scope: ViewScope | None = None,
        sort: SortSpec | None = None,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self._fetch_page = fetch_page
        self.limit = clamp_limit(limit)
        self.max_pages = max_pages
        self._key_of = key_of or photo_key
        self._retry = retry or RetryPolicy()
        self.scope = scope or ViewScope()
        self.sort = sort or SortSpec()

        self._pages: list[WindowPage] = []
        self._seen: set[str] = set()
        self._head_prev_cursor: str | None = None
        self._tail_next_cursor: str | None = None
        self._total_items = 0
        self._filters: PhotoFilters | None = None
        self._fingerprint: str | None = None

        # A latch holds the generation that set it; reset() bumps the
        # generation, which releases any latch from before the reset.
        self._generation = 0
        self._next_latch: int | None = None
        self._prev_latch: int | None = None

    # ── state ──────────────────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading_next(self) -> bool:
        return self._next_latch == self._generation

    @property
    def loading_prev(self) -> bool:
        return self._prev_latch == self._generation

    @property
    def has_next(self) -> bool:
        return self._tail_next_cursor is not None

    @property
    def has_prev(self) -> bool:
        return self._head_prev_cursor is not None

    @property
    def head_prev_cursor(self) -> str | None:
        return self._head_prev_cursor

    @property
    def tail_next_cursor(self) -> str | None:
        return self._tail_next_cursor

    @property
    def fingerprint(self) -> str | None:
        return self._fingerprint

    @property
    def seen_keys(self) -> frozenset[str]:
        return frozenset(self._seen)

    def items(self) -> list[Any]:
        return [item for page in self._pages for item in page.items]

    def snapshot(self) -> WindowState:
        return WindowState(
            pages=tuple(self._pages),
            head_prev_cursor=self._head_prev_cursor,
            tail_next_cursor=self._tail_next_cursor,
            total_items=self._total_items,
            generation=self._generation,
        )

    def reset(self) -> None:
        """Drop every page and cursor; loads still in flight become stale."""
        self._generation += 1
        self._pages = []
        self._seen = set()
        self._head_prev_cursor = None
        self._tail_next_cursor = None
        self._total_items = 0
        self._filters = None
        self._fingerprint = None

    # ── loading ────────────────────────────────────────────────────────────

    async def load_initial(self, filters: FiltersArg = None) -> LoadResult:
        """Reset, then fetch the first page under *filters*."""
        self.reset()
        generation = self._generation
        bound = coerce_filters(filters)
        self._bind_filters(bound)
        try:
            fetched = await self._fetch_page(FetchParams(limit=self.limit, filters=bound))
        except CursorRejectedError:
            if generation != self._generation:
                return LoadResult(LoadStatus.STALE, attempts=1)
            log.warning("window.cursor_rejected", direction="initial")
            return LoadResult(LoadStatus.RESEED, attempts=1)
        if generation != self._generation:
            log.debug("window.stale_result", direction="initial", generation=generation)
            return LoadResult(LoadStatus.STALE, attempts=1)

        page = self._install(fetched)
        return LoadResult(LoadStatus.LOADED, page=page, attempts=1)

    def seed(self, fetched: FetchedPage, filters: FiltersArg = None) -> LoadResult:
        """Reset and install one already-fetched page, e.g. a located deep-link page."""
        self.reset()
        self._bind_filters(coerce_filters(filters))
        page = self._install(fetched)
        return LoadResult(LoadStatus.LOADED, page=page, attempts=0)

    async def load_next(self, filters: FiltersArg = None) -> LoadResult:
        """Append the page after the tail; see :meth:`_advance`."""
        self._check_scope(filters)
        if self.loading_next or self._tail_next_cursor is None:
            return LoadResult(LoadStatus.SKIPPED)
        generation = self._generation
        self._next_latch = generation
        try:
            return await self._advance(generation, forward=True)
        finally:
            if self._next_latch == generation:
                self._next_latch = None

    async def load_prev(self, filters: FiltersArg = None) -> LoadResult:
        """Prepend the page before the head; see :meth:`_advance`."""
        self._check_scope(filters)
        if self.loading_prev or self._head_prev_cursor is None:
            return LoadResult(LoadStatus.SKIPPED)
        generation = self._generation
        self._prev_latch = generation
        try:
            return await self._advance(generation, forward=False)
        finally:
            if self._prev_latch == generation:
                self._prev_latch = None

    def apply(
        self,
        event: ChangeEvent,
        *,
        sort_key: Callable[[Any], Any] | None = None,
    ) -> WindowState:
        """Patch an out-of-band change into the cached pages.

        Cursors are untouched; callers should :meth:`reset` instead when a
        structural change makes them suspect.
        """
        state = apply_delta(
            self.snapshot(),
            event,
            key_of=self._key_of,
            sort_key=sort_key,
            descending=self.sort.descending,
        )
        self._pages = list(state.pages)
        self._total_items = state.total_items
        self._seen = set(state.keys(self._key_of))
        return state

    # ── internal ───────────────────────────────────────────────────────────

    def _bind_filters(self, filters: PhotoFilters) -> None:
        self._filters = filters
        self._fingerprint = fingerprint(self.scope, filters, self.sort)

    def _check_scope(self, filters: FiltersArg) -> None:
        if filters is None or self._fingerprint is None:
            return
        candidate = fingerprint(self.scope, coerce_filters(filters), self.sort)
        if candidate != self._fingerprint:
            log.warning(
                "window.scope_mismatch",
                expected=self._fingerprint[:12],
                got=candidate[:12],
                scope=self.scope.key,
            )
            raise ScopeMismatchError("filters differ from the ones this window was loaded with")

    def _install(self, fetched: FetchedPage) -> WindowPage:
        kept, keys = self._dedupe(fetched.items)
        page = self._make_page(fetched, kept)
        self._pages = [page]
        self._seen = set(keys)
        self._head_prev_cursor = page.prev_cursor
        self._tail_next_cursor = page.next_cursor
        self._update_total(fetched.total)
        log.debug(
            "window.seeded",
            items=len(page),
            has_prev=self.has_prev,
            has_next=self.has_next,
        )
        return page

    async def _advance(self, generation: int, *, forward: bool) -> LoadResult:
        """Fetch outward from the window edge until a page adds something.

        A page that is empty after de-duplication moves the edge cursor past
        it and, while the server still reports a cursor, tries again up to
        the retry policy's bound. Skipped cursors and totals are only written
        back once the call returns, so an exception leaves the window as it was.
        """
        direction = "next" if forward else "prev"
        cursor = self._tail_next_cursor if forward else self._head_prev_cursor
        attempts = 0
        while True:
            attempts += 1
            if forward:
                params = FetchParams(limit=self.limit, cursor=cursor, filters=self._filters)
            else:
                params = FetchParams(limit=self.limit, before_cursor=cursor, filters=self._filters)
            try:
                fetched = await self._fetch_page(params)
            except CursorRejectedError:
                if generation != self._generation:
                    return LoadResult(LoadStatus.STALE, attempts=attempts)
                log.warning("window.cursor_rejected", direction=direction)
                return LoadResult(LoadStatus.RESEED, attempts=attempts)
            if generation != self._generation:
                log.debug("window.stale_result", direction=direction, generation=generation)
                return LoadResult(LoadStatus.STALE, attempts=attempts)

            kept, keys = self._dedupe(fetched.items)
            edge = fetched.next_cursor if forward else fetched.prev_cursor
            verdict = self._retry.classify(len(kept), edge)
            if verdict is FetchVerdict.OK:
                if attempts > 1:
                    self._skip_to(cursor, forward=forward)
                page = self._make_page(fetched, kept)
                self._commit(page, keys, forward=forward)
                self._update_total(fetched.total)
                return LoadResult(LoadStatus.LOADED, page=page, attempts=attempts)

            if verdict is FetchVerdict.END or self._retry.exhausted(attempts):
                self._skip_to(edge, forward=forward)
                self._update_total(fetched.total)
                if verdict is FetchVerdict.END:
                    return LoadResult(LoadStatus.END, attempts=attempts)
                log.info("window.retry_exhausted", direction=direction, attempts=attempts)
                return LoadResult(LoadStatus.EXHAUSTED, attempts=attempts)
            log.debug("window.empty_page", direction=direction, attempt=attempts)
            cursor = edge

    def _dedupe(self, items: list[Any]) -> tuple[list[Any], list[str]]:
        # Pure: the seen-set only changes when a page is committed.
        kept: list[Any] = []
        keys: list[str] = []
        batch: set[str] = set()
        for item in items:
            key = self._key_of(item)
            if key in self._seen or key in batch:
                continue
            batch.add(key)
            kept.append(item)
            keys.append(key)
        return kept, keys

    @staticmethod
    def _make_page(fetched: FetchedPage, kept: list[Any]) -> WindowPage:
        return WindowPage(
            items=tuple(kept),
            next_cursor=fetched.next_cursor,
            prev_cursor=fetched.prev_cursor,
            total=fetched.total,
            unfiltered_total=fetched.unfiltered_total,
        )

    def _commit(self, page: WindowPage, keys: list[str], *, forward: bool) -> None:
        self._seen.update(keys)
        if forward:
            self._pages.append(page)
            self._tail_next_cursor = page.next_cursor
            self._evict("head")
        else:
            self._pages.insert(0, page)
            self._head_prev_cursor = page.prev_cursor
            self._evict("tail")
            # The last page may have changed or been dropped.
            self._tail_next_cursor = self._pages[-1].next_cursor

    def _skip_to(self, edge: str | None, *, forward: bool) -> None:
        # The skipped slice held nothing new, so the edge page now borders
        # whatever lies past it.
        if forward:
            self._tail_next_cursor = edge
            if self._pages:
                self._pages[-1] = replace(self._pages[-1], next_cursor=edge)
        else:
            self._head_prev_cursor = edge
            if self._pages:
                self._pages[0] = replace(self._pages[0], prev_cursor=edge)

    def _evict(self, side: Side) -> None:
        while len(self._pages) > self.max_pages:
            if self._hold_eviction(side):
                log.debug("window.eviction_held", side=side, pages=len(self._pages))
                break
            if side == "head":
                removed = self._pages.pop(0)
                self._head_prev_cursor = self._pages[0].prev_cursor
            else:
                removed = self._pages.pop()
                self._tail_next_cursor = self._pages[-1].next_cursor
            for item in removed.items:
                self._seen.discard(self._key_of(item))
            log.debug("window.evicted", side=side, items=len(removed), pages=len(self._pages))

    def _hold_eviction(self, side: Side) -> bool:
        if len(self._pages) < MIN_PAGES_TO_EVICT:
            return True
        if sum(len(page) for page in self._pages) < MIN_BUFFERED_ITEMS:
            return True
        return side == "head" and len(self._pages[-1]) < MIN_TAIL_PAGE_ITEMS

    def _update_total(self, total: int | None) -> None:
        if total is not None:
            self._total_items = total
        else:
            self._total_items = sum(len(page) for page in self._pages)
