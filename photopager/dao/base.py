"""Generic base DAO — keyset cursor codec + bidirectional cursor pagination."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from collections.abc import Sequence
from typing import Any, Generic, Protocol, TypeVar

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photopager.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)

PAGE_SIZE_MIN = 1
PAGE_SIZE_MAX = 300
PAGE_SIZE_DEFAULT = 100

MAX_CURSOR_LENGTH = 4096


class InvalidCursorError(ValueError):
    """Raised when a cursor string cannot be decoded."""


@dataclass(frozen=True)
class Cursor:
    """Decoded keyset position: (sort value, tie-break id)."""

    sort_value: str | None
    id: int


@dataclass
class Page(Generic[ModelT]):
    """One page of rows in canonical order plus the cursors around it.

    ``total`` is advisory; only ``None`` cursors mean "nothing further".
    """

    data: list[ModelT]
    next_cursor: str | None
    prev_cursor: str | None
    total: int | None = None
    unfiltered_total: int | None = None


def encode_cursor(sort_value: str | None, row_id: int) -> str:
    """Encode (sort value, id) as unpadded URL-safe base64 of a JSON object."""
    payload = json.dumps({"sortValue": sort_value, "id": row_id}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> Cursor:
    """Decode a cursor produced by :func:`encode_cursor`.

    Accepts the standard or URL-safe alphabet, with or without padding.
    Raises ``InvalidCursorError`` for anything else.
    """
    if not isinstance(cursor, str):
        raise InvalidCursorError("cursor must be a string")
    token = cursor.strip()
    if not token or len(token) > MAX_CURSOR_LENGTH:
        raise InvalidCursorError(f"invalid cursor length: {len(token)}")
    token = token.replace("-", "+").replace("_", "/")
    token += "=" * (-len(token) % 4)
    try:
        raw = base64.b64decode(token, validate=True).decode()
        data = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
        raise InvalidCursorError(f"invalid cursor: {cursor[:32]!r}") from exc

    if not isinstance(data, dict) or "id" not in data or "sortValue" not in data:
        raise InvalidCursorError(f"invalid cursor: {cursor[:32]!r}")
    row_id = data["id"]
    sort_value = data["sortValue"]
    if isinstance(row_id, bool) or not isinstance(row_id, int):
        raise InvalidCursorError("cursor id must be an integer")
    if sort_value is not None and not isinstance(sort_value, str):
        raise InvalidCursorError("cursor sortValue must be a string or null")
    return Cursor(sort_value=sort_value, id=row_id)


def clamp_page_size(page_size: int | None) -> int:
    if page_size is None:
        return PAGE_SIZE_DEFAULT
    return max(PAGE_SIZE_MIN, min(int(page_size), PAGE_SIZE_MAX))


class KeysetPlan(Protocol):
    where: list[ColumnElement[bool]]
    order_by: list[Any]
    reverse: bool


class Keyset(Protocol):
    """Ordering + boundary predicates for one scope/filter/sort configuration."""

    def statement(self) -> Select: ...

    def build(
        self, cursor: Cursor | None = None, before_cursor: Cursor | None = None
    ) -> KeysetPlan: ...

    def after(self, cur: Cursor) -> ColumnElement[bool]: ...

    def before(self, cur: Cursor) -> ColumnElement[bool]: ...

    def position_of(self, row: Any) -> Cursor: ...


class BaseDAO(Generic[ModelT]):
    """Base data-access object. Subclasses set ``model`` class attribute."""

    model: type[ModelT]

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        obj = self.model(**values)
        session.add(obj)
        await session.flush()
        await session.refresh(obj)
        return obj

    # ── Core methods ─────────────────────────────────────────────────────

    async def paginate(
        self,
        session: AsyncSession,
        keyset: Keyset,
        cursor: str | None = None,
        before_cursor: str | None = None,
        page_size: int = PAGE_SIZE_DEFAULT,
        options: Sequence[Any] = (),
    ) -> Page[ModelT]:
        """Fetch one page of *keyset* rows with bidirectional keyset pagination.

        *keyset* supplies the statement, the scope/filter/cursor predicates
        and the ordering; LIMIT is appended here, and loader *options* go
        on the row fetch only. ``cursor`` selects rows strictly after it, ``before_cursor``
        rows strictly before it. Either way rows come back in canonical
        order.

        Raises ``InvalidCursorError`` if a cursor is malformed and
        ``ValueError`` if both cursors are given.
        """
        if cursor and before_cursor:
            raise ValueError("at most one of cursor / before_cursor may be set")
        page_size = clamp_page_size(page_size)

        plan = keyset.build(
            decode_cursor(cursor) if cursor else None,
            decode_cursor(before_cursor) if before_cursor else None,
        )
        stmt = (
            keyset.statement()
            .where(*plan.where)
            .options(*options)
            .order_by(*plan.order_by)
            .limit(page_size + 1)
        )

        result = await session.execute(stmt)
        rows = list(result.scalars().all())
        overflow = len(rows) > page_size
        data = rows[:page_size]
        if plan.reverse:
            # Fetched in inverted order; restore canonical order for callers.
            data.reverse()

        if not data:
            return Page(data=[], next_cursor=None, prev_cursor=None)

        universe = keyset.statement().where(*keyset.build().where)
        first = keyset.position_of(data[0])
        last = keyset.position_of(data[-1])
        if plan.reverse:
            has_prev = overflow
            has_next = await self.any_rows(session, universe.where(keyset.after(last)))
        else:
            has_next = overflow
            has_prev = await self.any_rows(session, universe.where(keyset.before(first)))

        return Page(
            data=data,
            next_cursor=encode_cursor(last.sort_value, last.id) if has_next else None,
            prev_cursor=encode_cursor(first.sort_value, first.id) if has_prev else None,
        )

    async def any_rows(self, session: AsyncSession, query: Select) -> bool:
        """True if *query* matches at least one row."""
        stmt = select(func.count()).select_from(query.limit(1).subquery())
        result = await session.execute(stmt)
        return result.scalar_one() > 0

    async def count(self, session: AsyncSession, query: Select | None = None) -> int:
        """Return the row count for *query*, or total rows if query is None."""
        if query is None:
            query = select(func.count()).select_from(self.model.__table__)
        else:
            query = select(func.count()).select_from(query.subquery())

        result = await session.execute(query)
        return result.scalar_one()
