"""Shared response schemas."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class CursorPage(BaseModel, Generic[T]):
    """One keyset page; only ``None`` cursors mean there is nothing further."""

    items: list[T]
    next_cursor: str | None
    prev_cursor: str | None
    total: int | None = None
    unfiltered_total: int | None = None
    limit: int


class ErrorResponse(BaseModel):
    detail: str
    code: str
