"""File tree copy and removal helpers used by snapshot builds and project updates."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from threading import Event
from typing import Callable, Iterable

from widgetizer.errors import ErrorCode, OperationCancelledError

ProgressCallback = Callable[[int, int, str], None]


def iter_files(root: Path) -> Iterable[Path]:
    """Yield every file under *root* in a stable order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for fname in sorted(filenames):
            yield Path(dirpath) / fname


def count_files(path: Path) -> int:
    if path.is_file():
        return 1
    if not path.is_dir():
        return 0
    return sum(1 for _ in iter_files(path))


def check_cancelled(cancel_event: Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(ErrorCode.OPERATION_CANCELLED)


class TreeCopier:
    """Copies files and directories with overwrite semantics.

    Progress is reported per file through ``progress_cb(current, total, name)``
    and ``cancel_event`` is checked before every file.
    """

    def __init__(
        self,
        *,
        total: int = 0,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> None:
        self._total = total
        self._done = 0
        self._progress_cb = progress_cb
        self._cancel_event = cancel_event

    @property
    def copied(self) -> int:
        return self._done

    def copy_entry(self, source: Path, target: Path) -> None:
        """Copy a file or directory onto *target*, keeping files already there that *source* lacks."""
        if source.is_dir():
            if target.exists() and not target.is_dir():
                target.unlink()
            target.mkdir(parents=True, exist_ok=True)
            for child in sorted(source.iterdir()):
                self.copy_entry(child, target / child.name)
            return
        if target.is_dir():
            shutil.rmtree(target)
        self.copy_file(source, target)

    def copy_file(self, source: Path, target: Path) -> None:
        check_cancelled(self._cancel_event)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(source), str(target))
        self._done += 1
        if self._progress_cb:
            self._progress_cb(self._done, max(self._total, self._done), source.name)


def remove_path(path: Path) -> bool:
    """Remove a file or directory tree; returns False when nothing was there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False
