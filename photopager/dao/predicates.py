"""Query predicates for photo listings — filters, scope, and keyset boundaries.

Ordering is always ``(sort_expr DIR, photos.id DIR)``. The id tie-break is
what makes keyset comparison total: many photos share a capture timestamp,
and without it a page boundary falling inside a run of equal timestamps
would skip or repeat rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy import ColumnElement, Select, and_, or_, select, tuple_

from photopager.dao.base import Cursor, InvalidCursorError
from photopager.filters import PhotoFilters, SortSpec
from photopager.models.photo import Photo
from photopager.models.project import ARCHIVED_STATUS, Project
from photopager.models.tag import PhotoTag, Tag

_SORT_COLUMNS = {
    "taken_at": Photo.taken_at,
    "created_at": Photo.created_at,
    "updated_at": Photo.updated_at,
    "filename": Photo.filename,
}

_ROTATED = (5, 6, 7, 8)


@dataclass(frozen=True)
class KeysetClause:
    """Everything a single page query needs beyond the base filters."""

    where: list[ColumnElement[bool]]
    order_by: list[Any]
    # True when rows are fetched in inverted order and must be re-reversed.
    reverse: bool


class PredicateBuilder:
    """Builds scope/filter WHERE clauses and keyset boundaries for photos.

    ``project_id`` scopes to one project. ``union=True`` is the all-projects
    view: archived projects are excluded and ``project_id``, when given,
    narrows the union to that project.
    """

    def __init__(
        self,
        filters: PhotoFilters | None = None,
        sort: SortSpec | None = None,
        *,
        project_id: int | None = None,
        union: bool = False,
    ) -> None:
        if not union and project_id is None:
            raise ValueError("project scope requires project_id")
        self.filters = filters or PhotoFilters()
        self.sort = sort or SortSpec()
        self.project_id = project_id
        self.union = union
        self._sort_expr = _SORT_COLUMNS[self.sort.field]

    # ── base query ───────────────────────────────────────────────────────

    def statement(self) -> Select:
        """``SELECT photos JOIN projects`` with no predicates yet."""
        return select(Photo).join(Photo.project)

    def base_query(self) -> Select:
        """Scope + filters applied, no cursor: the filtered universe."""
        return self.statement().where(*self.scope_clauses(), *self.filter_clauses())

    def scope_query(self) -> Select:
        """Scope only, no filters: the universe behind ``unfiltered_total``."""
        return self.statement().where(*self.scope_clauses())

    def scope_clauses(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if self.union:
            clauses.append(or_(Project.status.is_(None), Project.status != ARCHIVED_STATUS))
        if self.project_id is not None:
            clauses.append(Photo.project_id == self.project_id)
        return clauses

    def filter_clauses(self) -> list[ColumnElement[bool]]:
        """Conjunctive filter predicates; unset filters add nothing."""
        f = self.filters
        clauses: list[ColumnElement[bool]] = []

        if f.date_from:
            clauses.append(Photo.taken_at >= f.date_from)
        if f.date_to:
            upper = f.date_to_exclusive
            if upper is not None:
                clauses.append(Photo.taken_at < upper)
            else:
                clauses.append(Photo.taken_at <= f.date_to)

        if f.file_type == "jpg_only":
            clauses.append(and_(Photo.jpg_available.is_(True), Photo.raw_available.is_(False)))
        elif f.file_type == "raw_only":
            clauses.append(and_(Photo.raw_available.is_(True), Photo.jpg_available.is_(False)))
        elif f.file_type == "both":
            clauses.append(and_(Photo.jpg_available.is_(True), Photo.raw_available.is_(True)))

        if f.keep_type == "any_kept":
            clauses.append(or_(Photo.keep_jpg.is_(True), Photo.keep_raw.is_(True)))
        elif f.keep_type == "jpg_only":
            clauses.append(and_(Photo.keep_jpg.is_(True), Photo.keep_raw.is_(False)))
        elif f.keep_type == "raw_jpg":
            clauses.append(and_(Photo.keep_jpg.is_(True), Photo.keep_raw.is_(True)))
        elif f.keep_type == "none":
            clauses.append(and_(Photo.keep_jpg.is_(False), Photo.keep_raw.is_(False)))

        if f.orientation != "any":
            clauses.append(self._orientation_clause(f.orientation == "vertical"))

        for name in f.include_tags:
            has_tag = (
                select(PhotoTag.photo_id)
                .join(Tag, Tag.id == PhotoTag.tag_id)
                .where(PhotoTag.photo_id == Photo.id, Tag.name == name)
                .exists()
            )
            clauses.append(has_tag)
        if f.exclude_tags:
            has_excluded = (
                select(PhotoTag.photo_id)
                .join(Tag, Tag.id == PhotoTag.tag_id)
                .where(PhotoTag.photo_id == Photo.id, Tag.name.in_(f.exclude_tags))
                .exists()
            )
            clauses.append(~has_excluded)

        if f.visibility != "any":
            clauses.append(Photo.visibility == f.visibility)

        return clauses

    @staticmethod
    def _orientation_clause(vertical: bool) -> ColumnElement[bool]:
        rotated = Photo.orientation.in_(_ROTATED)
        upright = or_(Photo.orientation.is_(None), Photo.orientation.not_in(_ROTATED))
        if vertical:
            shape = or_(
                and_(upright, Photo.height > Photo.width),
                and_(rotated, Photo.width > Photo.height),
            )
        else:
            shape = or_(
                and_(upright, Photo.width > Photo.height),
                and_(rotated, Photo.height > Photo.width),
            )
        return and_(Photo.width.is_not(None), Photo.height.is_not(None), shape)

    # ── keyset ───────────────────────────────────────────────────────────

    def order_by(self, *, inverted: bool = False) -> list[Any]:
        descending = self.sort.descending != inverted
        if descending:
            return [self._sort_expr.desc(), Photo.id.desc()]
        return [self._sort_expr.asc(), Photo.id.asc()]

    def after(self, cur: Cursor) -> ColumnElement[bool]:
        """Rows strictly after *cur* in canonical order."""
        key = tuple_(self._sort_expr, Photo.id)
        bound = self._bound(cur)
        return key < bound if self.sort.descending else key > bound

    def before(self, cur: Cursor) -> ColumnElement[bool]:
        """Rows strictly before *cur* in canonical order."""
        key = tuple_(self._sort_expr, Photo.id)
        bound = self._bound(cur)
        return key > bound if self.sort.descending else key < bound

    def build(
        self,
        cursor: Cursor | None = None,
        before_cursor: Cursor | None = None,
    ) -> KeysetClause:
        """Full WHERE list + ORDER BY for one page request."""
        if cursor is not None and before_cursor is not None:
            raise ValueError("at most one of cursor / before_cursor may be set")
        where = [*self.scope_clauses(), *self.filter_clauses()]
        if cursor is not None:
            where.append(self.after(cursor))
        elif before_cursor is not None:
            where.append(self.before(before_cursor))
        backward = before_cursor is not None
        return KeysetClause(
            where=where, order_by=self.order_by(inverted=backward), reverse=backward
        )

    def position_of(self, row: Photo) -> Cursor:
        return Cursor(sort_value=getattr(row, self.sort.field), id=row.id)

    def boundary(self, row: Photo, side: Literal["before", "after"]) -> ColumnElement[bool]:
        """Rows strictly on *side* of *row*; used for the neighbour checks."""
        pos = self.position_of(row)
        return self.before(pos) if side == "before" else self.after(pos)

    def rank_predicate(self, target: Photo) -> ColumnElement[bool]:
        """Every row that sorts strictly before *target*; COUNT of it is the rank."""
        return self.boundary(target, "before")

    @staticmethod
    def _bound(cur: Cursor) -> Any:
        # Sort expressions are non-null, so a null sort value cannot come
        # from a page this builder produced.
        if cur.sort_value is None:
            raise InvalidCursorError("cursor has no sort value for this ordering")
        return tuple_(cur.sort_value, cur.id)
