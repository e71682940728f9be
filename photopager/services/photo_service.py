"""PhotoService — keyset-paged photo listings and deep-link location."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from photopager.dao.base import clamp_page_size
from photopager.dao.photo_dao import LocateMiss, PhotoDAO
from photopager.dao.predicates import PredicateBuilder
from photopager.dao.tag_dao import TagDAO
from photopager.filters import PhotoFilters, SortSpec
from photopager.models.photo import Photo
from photopager.services import NotFoundError, ValidationError
from photopager.services.project_service import ProjectService

log = structlog.get_logger("photopager.services.photos")

_MISS_MESSAGES = {
    LocateMiss.PROJECT_NOT_FOUND: "project not found",
    LocateMiss.TARGET_NOT_FOUND: "photo not found",
    LocateMiss.TARGET_FILTERED_OUT: "photo is excluded by the active filters",
}


class PhotoService:
    """Stateless service over :class:`PhotoDAO`.

    ``union=True`` is the all-projects view (archived projects hidden,
    ``folder`` an optional narrowing); ``union=False`` is one project's own
    view and requires ``folder``.
    """

    def __init__(
        self,
        photo_dao: PhotoDAO,
        tag_dao: TagDAO,
        project_service: ProjectService,
    ) -> None:
        self._photo_dao = photo_dao
        self._tag_dao = tag_dao
        self._project_service = project_service

    async def _builder(
        self,
        session: AsyncSession,
        folder: str | None,
        union: bool,
        filters: PhotoFilters | None,
        sort: SortSpec | None,
    ) -> PredicateBuilder:
        project_id = None
        if folder:
            project = await self._project_service.get_by_folder(
                session, folder, include_archived=not union
            )
            project_id = project.id
        elif not union:
            raise ValidationError("project scope requires a project folder")
        return PredicateBuilder(filters, sort, project_id=project_id, union=union)

    async def _with_tags(self, session: AsyncSession, photos: list[Photo]) -> list[dict]:
        tags = await self._tag_dao.names_for_photos(session, [p.id for p in photos])
        return [{"photo": p, "tags": tags.get(p.id, [])} for p in photos]

    async def list(
        self,
        session: AsyncSession,
        *,
        folder: str | None = None,
        union: bool = True,
        filters: PhotoFilters | None = None,
        sort: SortSpec | None = None,
        cursor: str | None = None,
        before_cursor: str | None = None,
        limit: int | None = None,
    ) -> dict:
        """Return one page of photos with cursors and totals.

        Raises :class:`ValidationError` if both cursors are given and
        ``InvalidCursorError`` if either is malformed.
        """
        if cursor and before_cursor:
            raise ValidationError(
                "at most one of cursor / before_cursor may be set", code="conflicting_cursors"
            )
        limit = clamp_page_size(limit)
        builder = await self._builder(session, folder, union, filters, sort)
        page = await self._photo_dao.list_page(session, builder, cursor, before_cursor, limit)
        return {
            "items": await self._with_tags(session, page.data),
            "next_cursor": page.next_cursor,
            "prev_cursor": page.prev_cursor,
            "total": page.total,
            "unfiltered_total": page.unfiltered_total,
            "limit": limit,
        }

    async def locate(
        self,
        session: AsyncSession,
        *,
        folder: str | None,
        union: bool = True,
        filename: str | None = None,
        name: str | None = None,
        filters: PhotoFilters | None = None,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> dict:
        """Return the page that contains one photo, and its index in that page.

        Raises :class:`NotFoundError` with code ``project_not_found``,
        ``target_not_found`` or ``target_filtered_out``; never an empty page.
        """
        if not folder:
            raise ValidationError("project_folder is required", code="missing_project")
        if not filename and not name:
            raise ValidationError("filename or name is required", code="missing_target")

        limit = clamp_page_size(limit)
        project = await self._project_service.get_by_folder(
            session, folder, include_archived=not union
        )
        # The folder picks the target; the union view still ranks across projects.
        builder = PredicateBuilder(
            filters, sort, project_id=None if union else project.id, union=union
        )
        result = await self._photo_dao.locate(
            session,
            builder,
            project.id,
            filename=filename,
            name=name,
            page_size=limit,
        )
        if isinstance(result, LocateMiss):
            log.info(
                "photos.locate_miss",
                folder=folder,
                filename=filename,
                name=name,
                reason=result.value,
            )
            raise NotFoundError(_MISS_MESSAGES[result], code=result.value)

        page = result.page
        return {
            "items": await self._with_tags(session, page.data),
            "next_cursor": page.next_cursor,
            "prev_cursor": page.prev_cursor,
            "total": page.total,
            "unfiltered_total": page.unfiltered_total,
            "limit": result.limit,
            "position": result.position,
            "page_index": result.page_index,
            "idx_in_items": result.idx_in_items,
            "target": result.target,
        }
