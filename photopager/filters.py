"""View descriptors: filters, sort order, scope, and their fingerprint.

A window of pages is only meaningful under the exact descriptor that produced
its cursors. Every descriptor here is a frozen, closed pydantic model so two
descriptors compare equal iff they would build the same query, and
:func:`fingerprint` gives that equality a stable, loggable form.
"""

from __future__ import annotations

import hashlib
import json
import re
from datetime import date, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

FILTER_SCHEMA_VERSION = 1

FileType = Literal["any", "jpg_only", "raw_only", "both"]
KeepType = Literal["any", "any_kept", "jpg_only", "raw_jpg", "none"]
Orientation = Literal["any", "vertical", "horizontal"]
Visibility = Literal["any", "public", "private"]
SortField = Literal["taken_at", "created_at", "updated_at", "filename"]
SortDirection = Literal["desc", "asc"]
ScopeMode = Literal["all", "project"]

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class PhotoFilters(BaseModel):
    """Recognized photo filters. ``any`` / ``None`` / empty mean "not applied"."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    date_from: str | None = None
    date_to: str | None = None
    file_type: FileType = "any"
    keep_type: KeepType = "any"
    orientation: Orientation = "any"
    tags: tuple[str, ...] = ()
    visibility: Visibility = "any"

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _check_date(cls, value: object) -> object:
        if value is None or value == "":
            return None
        if not isinstance(value, str) or not _ISO_PREFIX.match(value):
            raise ValueError("expected an ISO-8601 date (YYYY-MM-DD...)")
        if _DATE_ONLY.match(value):
            date.fromisoformat(value)
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        seen: dict[str, None] = {}
        for raw in value:  # type: ignore[union-attr]
            name = str(raw).strip()
            if name and name != "-":
                seen.setdefault(name, None)
        return tuple(seen)

    @property
    def include_tags(self) -> tuple[str, ...]:
        return tuple(t for t in self.tags if not t.startswith("-"))

    @property
    def exclude_tags(self) -> tuple[str, ...]:
        return tuple(t[1:].strip() for t in self.tags if t.startswith("-"))

    @property
    def date_to_exclusive(self) -> str | None:
        """Upper bound for ``taken_at < bound`` when ``date_to`` is a bare date.

        A bare date means "through the end of that day"; comparing ISO
        timestamps against it with ``<=`` would drop every photo taken on it.
        """
        if self.date_to is None or not _DATE_ONLY.match(self.date_to):
            return None
        return (date.fromisoformat(self.date_to) + timedelta(days=1)).isoformat()

    def is_empty(self) -> bool:
        return self == PhotoFilters()

    def to_query_params(self) -> dict[str, str]:
        """Only the applied filters, in the REST API's query-string shape."""
        params: dict[str, str] = {}
        if self.date_from:
            params["date_from"] = self.date_from
        if self.date_to:
            params["date_to"] = self.date_to
        for name in ("file_type", "keep_type", "orientation", "visibility"):
            value = getattr(self, name)
            if value != "any":
                params[name] = value
        if self.tags:
            params["tags"] = ",".join(self.tags)
        return params


class SortSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    field: SortField = "taken_at"
    direction: SortDirection = "desc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


class ViewScope(BaseModel):
    """Which collection a window browses: one project, or the all-projects union."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: ScopeMode = "all"
    scope_id: str | None = None

    @model_validator(mode="after")
    def _project_needs_id(self) -> ViewScope:
        if self.mode == "project" and not self.scope_id:
            raise ValueError("project scope requires scope_id (the project folder)")
        return self

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.mode, self.scope_id)


def fingerprint(
    scope: ViewScope,
    filters: PhotoFilters | None = None,
    sort: SortSpec | None = None,
) -> str:
    """SHA-256 over the canonical JSON of scope, filters and sort."""
    payload = {
        "v": FILTER_SCHEMA_VERSION,
        "scope": scope.model_dump(mode="json"),
        "filters": (filters or PhotoFilters()).model_dump(mode="json"),
        "sort": (sort or SortSpec()).model_dump(mode="json"),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()
