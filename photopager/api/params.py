"""Query-string dependencies shared by the photo routes."""

from __future__ import annotations

import pydantic
from fastapi import Query

from photopager.filters import (
    FileType,
    KeepType,
    Orientation,
    PhotoFilters,
    SortDirection,
    SortField,
    SortSpec,
    Visibility,
)
from photopager.services import ValidationError


def photo_filters(
    date_from: str | None = Query(None, description="Inclusive lower bound, ISO-8601"),
    date_to: str | None = Query(None, description="Inclusive upper bound, ISO-8601"),
    file_type: FileType = Query("any"),
    keep_type: KeepType = Query("any"),
    orientation: Orientation = Query("any"),
    tags: str | None = Query(None, description="Comma-separated; prefix '-' to exclude"),
    visibility: Visibility = Query("any"),
) -> PhotoFilters:
    try:
        return PhotoFilters(
            date_from=date_from,
            date_to=date_to,
            file_type=file_type,
            keep_type=keep_type,
            orientation=orientation,
            tags=tags,
            visibility=visibility,
        )
    except pydantic.ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise ValidationError(messages, code="invalid_filter") from exc


def sort_spec(
    sort: SortField = Query("taken_at"),
    direction: SortDirection = Query("desc", alias="dir"),
) -> SortSpec:
    return SortSpec(field=sort, direction=direction)
