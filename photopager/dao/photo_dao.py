"""PhotoDAO — photo listing, totals, and deep-link location."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from photopager.dao.base import BaseDAO, Page, clamp_page_size, encode_cursor
from photopager.dao.predicates import PredicateBuilder
from photopager.models.photo import JPG_EXTENSIONS, RAW_EXTENSIONS, Photo

log = structlog.get_logger("photopager.dao.photos")


class LocateMiss(str, enum.Enum):
    """Why a locate request produced no page."""

    PROJECT_NOT_FOUND = "project_not_found"
    TARGET_NOT_FOUND = "target_not_found"
    TARGET_FILTERED_OUT = "target_filtered_out"


@dataclass
class LocateResult:
    page: Page[Photo]
    target: Photo
    position: int
    page_index: int
    limit: int
    idx_in_items: int


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _extension(photo: Photo) -> str:
    if photo.ext:
        return photo.ext.lower().lstrip(".")
    _, dot, ext = photo.filename.rpartition(".")
    return ext.lower() if dot else ""


class PhotoDAO(BaseDAO[Photo]):
    model = Photo

    async def list_page(
        self,
        session: AsyncSession,
        keyset: PredicateBuilder,
        cursor: str | None = None,
        before_cursor: str | None = None,
        page_size: int | None = None,
    ) -> Page[Photo]:
        """One keyset page plus the filtered and unfiltered totals."""
        page = await self.paginate(
            session,
            keyset,
            cursor,
            before_cursor,
            clamp_page_size(page_size),
            options=[contains_eager(Photo.project)],
        )
        page.total = await self.count(session, keyset.base_query())
        page.unfiltered_total = await self.count(session, keyset.scope_query())
        return page

    async def find_candidates(
        self,
        session: AsyncSession,
        project_id: int,
        *,
        filename: str | None = None,
        name: str | None = None,
    ) -> list[Photo]:
        """Photos in one project matching an exact filename or a loose name.

        ``name`` matches case-insensitively against the basename, the full
        filename, or any ``name.<ext>`` filename.
        """
        stmt = (
            select(Photo)
            .join(Photo.project)
            .options(contains_eager(Photo.project))
            .where(Photo.project_id == project_id)
        )
        if filename:
            stmt = stmt.where(Photo.filename == filename)
        elif name:
            lowered = name.strip().lower()
            stmt = stmt.where(
                or_(
                    func.lower(Photo.basename) == lowered,
                    func.lower(Photo.filename) == lowered,
                    func.lower(Photo.filename).like(f"{_escape_like(lowered)}.%", escape="\\"),
                )
            )
        else:
            raise ValueError("filename or name is required")
        result = await session.execute(stmt.order_by(Photo.id))
        return list(result.scalars().all())

    async def included_ids(
        self, session: AsyncSession, keyset: PredicateBuilder, ids: list[int]
    ) -> set[int]:
        """The subset of *ids* that the keyset's scope and filters admit."""
        if not ids:
            return set()
        stmt = keyset.base_query().with_only_columns(Photo.id).where(Photo.id.in_(ids))
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    def pick_target(candidates: list[Photo], included: set[int]) -> Photo:
        """Resolve an ambiguous name: filtered-in, then JPEG, then RAW, then newest id."""

        def preference(photo: Photo) -> tuple[bool, bool, bool, int]:
            ext = _extension(photo)
            return (photo.id in included, ext in JPG_EXTENSIONS, ext in RAW_EXTENSIONS, photo.id)

        target = max(candidates, key=preference)
        if len(candidates) > 1:
            log.info(
                "photos.locate_ambiguous",
                candidates=[p.filename for p in candidates],
                chosen=target.filename,
            )
        return target

    async def locate(
        self,
        session: AsyncSession,
        keyset: PredicateBuilder,
        project_id: int,
        *,
        filename: str | None = None,
        name: str | None = None,
        page_size: int | None = None,
    ) -> LocateResult | LocateMiss:
        """Find the page holding one photo with a single rank query.

        The page is aligned to a multiple of the page size, so locating any
        photo on the same page yields the same page. Returns a
        :class:`LocateMiss` when the photo is unknown or filtered out.
        """
        limit = clamp_page_size(page_size)
        candidates = await self.find_candidates(session, project_id, filename=filename, name=name)
        if not candidates:
            return LocateMiss.TARGET_NOT_FOUND

        included = await self.included_ids(session, keyset, [p.id for p in candidates])
        target = self.pick_target(candidates, included)
        if target.id not in included:
            return LocateMiss.TARGET_FILTERED_OUT

        universe = keyset.base_query()
        position = await self.count(session, universe.where(keyset.rank_predicate(target)))
        page_index = position // limit
        page_start = page_index * limit

        stmt = (
            universe.options(contains_eager(Photo.project))
            .order_by(*keyset.order_by())
            .offset(page_start)
            .limit(limit)
        )
        result = await session.execute(stmt)
        rows = list(result.scalars().all())
        idx = next(i for i, row in enumerate(rows) if row.id == target.id)

        first = keyset.position_of(rows[0])
        last = keyset.position_of(rows[-1])
        has_next = await self.any_rows(session, universe.where(keyset.boundary(rows[-1], "after")))
        page = Page(
            data=rows,
            next_cursor=encode_cursor(last.sort_value, last.id) if has_next else None,
            prev_cursor=encode_cursor(first.sort_value, first.id) if page_start > 0 else None,
            total=await self.count(session, universe),
            unfiltered_total=await self.count(session, keyset.scope_query()),
        )
        return LocateResult(
            page=page,
            target=target,
            position=position,
            page_index=page_index,
            limit=limit,
            idx_in_items=idx,
        )
