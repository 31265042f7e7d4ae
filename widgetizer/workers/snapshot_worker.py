"""Workers for theme snapshot builds and archive installs."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from widgetizer.workers.base_worker import BaseWorker

if TYPE_CHECKING:
    from widgetizer.themes.models import InstallResult, SnapshotResult
    from widgetizer.themes.service import ThemeService


class SnapshotBuildWorker(BaseWorker):
    """Builds latest/ in a background thread.

    With ``only_if_pending`` the build goes through ``ThemeService.update_theme``
    and fails when the snapshot is already current.
    """

    def __init__(self, service: ThemeService, theme_id: str, *, only_if_pending: bool = False) -> None:
        super().__init__()
        self._service = service
        self._theme_id = theme_id
        self._only_if_pending = only_if_pending

    def _work(self) -> SnapshotResult:
        build = self._service.update_theme if self._only_if_pending else self._service.build_snapshot
        return build(
            self._theme_id,
            progress_cb=self._emit_progress,
            cancel_event=self._cancel_event,
        )


class ArchiveInstallWorker(BaseWorker):
    """Installs an uploaded theme archive in a background thread."""

    def __init__(self, service: ThemeService, archive_path: str) -> None:
        super().__init__()
        self._service = service
        self._archive_path = archive_path

    def _work(self) -> InstallResult:
        return self._service.install_archive(
            Path(self._archive_path),
            progress_cb=self._emit_progress,
            cancel_event=self._cancel_event,
        )
