"""Immutable snapshots of a window: its pages and outward cursors."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any


def photo_key(item: Any) -> str:
    """Default identity key: ``"<project_folder>::<filename>"``.

    Works for API dicts (which may already carry ``key``) and for objects
    exposing the same attributes.
    """
    if isinstance(item, dict):
        if item.get("key"):
            return str(item["key"])
        return f"{item['project_folder']}::{item['filename']}"
    return f"{item.project_folder}::{item.filename}"


@dataclass(frozen=True)
class WindowPage:
    """One cached page; ``items`` are already de-duplicated against the window."""

    items: tuple[Any, ...]
    next_cursor: str | None
    prev_cursor: str | None
    total: int | None = None
    unfiltered_total: int | None = None

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class WindowState:
    pages: tuple[WindowPage, ...] = ()
    head_prev_cursor: str | None = None
    tail_next_cursor: str | None = None
    total_items: int = 0
    generation: int = 0

    def items(self) -> list[Any]:
        return [item for page in self.pages for item in page.items]

    def keys(self, key_of: Callable[[Any], str] = photo_key) -> Iterator[str]:
        for page in self.pages:
            for item in page.items:
                yield key_of(item)

    @property
    def buffered(self) -> int:
        return sum(len(page) for page in self.pages)
