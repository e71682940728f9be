"""Out-of-band change events applied to a window snapshot.

:func:`apply_delta` is pure: it returns a new :class:`WindowState` and never
touches cursors, which only the server can mint. A change that would need a
new cursor (an insert outside the loaded range) is ignored; the caller
resets the window if such changes matter.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from photopager.client.state import WindowPage, WindowState


class ChangeKind(str, enum.Enum):
    INSERT = "insert"
    REMOVE = "remove"
    UPDATE = "update"


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    key: str | None = None
    item: Any = None
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def insert(cls, item: Any, *, key: str | None = None) -> ChangeEvent:
        return cls(ChangeKind.INSERT, key=key, item=item)

    @classmethod
    def remove(cls, key: str) -> ChangeEvent:
        return cls(ChangeKind.REMOVE, key=key)

    @classmethod
    def update(cls, key: str, **fields: Any) -> ChangeEvent:
        return cls(ChangeKind.UPDATE, key=key, fields=fields)


def merge_fields(item: Any, fields: Mapping[str, Any]) -> Any:
    """Copy of *item* with *fields* overwritten (dicts, dataclasses, pydantic models)."""
    if isinstance(item, dict):
        return {**item, **fields}
    if isinstance(item, BaseModel):
        return item.model_copy(update=dict(fields))
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.replace(item, **fields)
    raise TypeError(f"cannot merge fields into {type(item).__name__}")


def _locate(state: WindowState, key: str, key_of: Callable[[Any], str]) -> tuple[int, int] | None:
    for p, page in enumerate(state.pages):
        for i, item in enumerate(page.items):
            if key_of(item) == key:
                return p, i
    return None


def _with_page(state: WindowState, index: int, page: WindowPage, total_delta: int) -> WindowState:
    pages = state.pages[:index] + (page,) + state.pages[index + 1 :]
    return dataclasses.replace(
        state, pages=pages, total_items=max(0, state.total_items + total_delta)
    )


def apply_delta(
    state: WindowState,
    event: ChangeEvent,
    *,
    key_of: Callable[[Any], str],
    sort_key: Callable[[Any], Any] | None = None,
    descending: bool = True,
) -> WindowState:
    """Return *state* with *event* applied.

    * ``remove`` drops the item; a page left empty stays, so cursors and
      page count are unchanged.
    * ``update`` merges ``event.fields`` into the item in place.
    * ``insert`` of a key already present replaces that item. Otherwise the
      item is placed by ``sort_key`` before the first item it precedes. An
      insert that sorts before the first item (or after the last) is only
      kept when the window already reaches that end of the collection, and
      without ``sort_key`` inserts are ignored.

    Events for keys not in the window leave it unchanged.
    """
    if event.kind is ChangeKind.INSERT:
        return _insert(state, event, key_of, sort_key, descending)

    if event.key is None:
        raise ValueError(f"{event.kind.value} event needs a key")
    found = _locate(state, event.key, key_of)
    if found is None:
        return state
    p, i = found
    page = state.pages[p]

    if event.kind is ChangeKind.REMOVE:
        items = page.items[:i] + page.items[i + 1 :]
        return _with_page(state, p, dataclasses.replace(page, items=items), -1)

    merged = merge_fields(page.items[i], event.fields)
    items = page.items[:i] + (merged,) + page.items[i + 1 :]
    return _with_page(state, p, dataclasses.replace(page, items=items), 0)


def _insert(
    state: WindowState,
    event: ChangeEvent,
    key_of: Callable[[Any], str],
    sort_key: Callable[[Any], Any] | None,
    descending: bool,
) -> WindowState:
    item = event.item
    if item is None:
        raise ValueError("insert event needs an item")
    key = event.key or key_of(item)

    found = _locate(state, key, key_of)
    if found is not None:
        p, i = found
        page = state.pages[p]
        items = page.items[:i] + (item,) + page.items[i + 1 :]
        return _with_page(state, p, dataclasses.replace(page, items=items), 0)

    if sort_key is None or not state.pages:
        return state

    new_key = sort_key(item)

    def precedes(existing: Any) -> bool:
        other = sort_key(existing)
        return new_key > other if descending else new_key < other

    leading = True
    for p, page in enumerate(state.pages):
        for i, existing in enumerate(page.items):
            if not precedes(existing):
                leading = False
                continue
            if leading and state.head_prev_cursor is not None:
                # Belongs somewhere before the loaded range.
                return state
            items = page.items[:i] + (item,) + page.items[i:]
            return _with_page(state, p, dataclasses.replace(page, items=items), 1)

    if state.tail_next_cursor is not None:
        return state
    last = len(state.pages) - 1
    page = state.pages[last]
    return _with_page(state, last, dataclasses.replace(page, items=page.items + (item,)), 1)
