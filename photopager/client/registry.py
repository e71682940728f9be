"""Explicit per-scope registry of window managers.

Cursors are only valid inside the scope that produced them, so each
``(mode, scope_id)`` gets its own :class:`PagedWindowManager`. The owning
application holds the registry; nothing is dropped implicitly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import structlog

from photopager.client.window import PagedWindowManager
from photopager.filters import ViewScope

log = structlog.get_logger("photopager.client.registry")


class WindowRegistry:
    def __init__(self, factory: Callable[[ViewScope], PagedWindowManager]) -> None:
        self._factory = factory
        self._managers: dict[tuple[str, str | None], PagedWindowManager] = {}

    def get(self, scope: ViewScope) -> PagedWindowManager:
        """Return the manager for *scope*, creating it on first use."""
        manager = self._managers.get(scope.key)
        if manager is None:
            manager = self._factory(scope)
            self._managers[scope.key] = manager
            log.debug("window.created", mode=scope.mode, scope_id=scope.scope_id)
        return manager

    def reset(self, scope: ViewScope) -> bool:
        """Reset the manager for *scope* in place; False if there is none."""
        manager = self._managers.get(scope.key)
        if manager is None:
            return False
        manager.reset()
        log.debug("window.reset", mode=scope.mode, scope_id=scope.scope_id)
        return True

    def drop(self, scope: ViewScope) -> PagedWindowManager | None:
        """Forget the manager for *scope* and return it."""
        manager = self._managers.pop(scope.key, None)
        if manager is not None:
            log.debug("window.dropped", mode=scope.mode, scope_id=scope.scope_id)
        return manager

    def scopes(self) -> Iterator[ViewScope]:
        for mode, scope_id in self._managers:
            yield ViewScope(mode=mode, scope_id=scope_id)

    def __contains__(self, scope: object) -> bool:
        return isinstance(scope, ViewScope) and scope.key in self._managers

    def __len__(self) -> int:
        return len(self._managers)
