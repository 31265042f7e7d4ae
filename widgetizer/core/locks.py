"""Per-resource write locks for theme and project directories."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ResourceLocks:
    """Hands out one re-entrant lock per ``(kind, key)`` pair.

    Writers to a theme tree take ``("theme", theme_id)``; writers to a project
    take ``("project", project_id)``. A caller needing both must take the
    project lock first.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.RLock] = {}

    def lock_for(self, kind: str, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get((kind, key))
            if lock is None:
                lock = threading.RLock()
                self._locks[(kind, key)] = lock
            return lock

    @contextmanager
    def theme(self, theme_id: str) -> Iterator[None]:
        with self.lock_for("theme", theme_id):
            yield

    @contextmanager
    def project(self, project_id: str) -> Iterator[None]:
        with self.lock_for("project", project_id):
            yield


_default_locks = ResourceLocks()


def default_locks() -> ResourceLocks:
    """Process-wide registry shared by components that are not given one."""
    return _default_locks
