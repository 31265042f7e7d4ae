"""Theme catalog and version operations for the application shell."""

from __future__ import annotations

from pathlib import Path
from threading import Event

from PySide6.QtCore import QObject, Signal

from widgetizer.core.locks import ResourceLocks, default_locks
from widgetizer.core.project_store import ProjectStore
from widgetizer.core.theme_updater import (
    ThemeUpdateService,
    ToggleResult,
    UpdateCheck,
    UpdateResult,
)
from widgetizer.core.tree_copy import ProgressCallback
from widgetizer.errors import ErrorCode, ThemeValidationError
from widgetizer.themes.ingest import ThemeInstaller
from widgetizer.themes.models import InstallResult, SnapshotResult, ThemeSummary
from widgetizer.themes.snapshot import SnapshotBuilder
from widgetizer.themes.store import ThemeStore


class ThemeService(QObject):
    """Wire the store, builder, installer and updater together and announce changes."""

    snapshot_built = Signal(str, str)
    theme_installed = Signal(str)
    project_updated = Signal(str, str)

    def __init__(
        self,
        store: ThemeStore,
        projects: ProjectStore,
        locks: ResourceLocks | None = None,
    ) -> None:
        super().__init__()
        self._store = store
        self._projects = projects
        self._locks = locks or default_locks()
        self._builder = SnapshotBuilder(store, self._locks)
        self._installer = ThemeInstaller(store, self._builder, self._locks)
        self._updater = ThemeUpdateService(store, projects, self._locks)

    @property
    def store(self) -> ThemeStore:
        return self._store

    @property
    def builder(self) -> SnapshotBuilder:
        return self._builder

    @property
    def updater(self) -> ThemeUpdateService:
        return self._updater

    @property
    def themes_dir(self) -> Path:
        return self._store.themes_root

    def available_themes(self) -> list[ThemeSummary]:
        return self._store.list_themes()

    def theme_versions(self, theme_id: str) -> list[str]:
        self._store.require_theme(theme_id)
        return self._store.list_versions(theme_id)

    def pending_update_count(self) -> int:
        return self._store.pending_update_count()

    def build_snapshot(
        self,
        theme_id: str,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> SnapshotResult:
        result = self._builder.build(theme_id, progress_cb=progress_cb, cancel_event=cancel_event)
        if result.built:
            self.snapshot_built.emit(theme_id, result.version or "")
        return result

    def update_theme(
        self,
        theme_id: str,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> SnapshotResult:
        """Rebuild latest/ so projects are offered the newest declared version."""
        self._store.require_theme(theme_id)
        if not self._store.has_pending_updates(theme_id):
            raise ThemeValidationError(
                ErrorCode.THEME_NO_PENDING_UPDATES,
                message=f"Theme '{theme_id}' has no pending updates",
                details={"theme": theme_id},
            )
        return self.build_snapshot(theme_id, progress_cb=progress_cb, cancel_event=cancel_event)

    def install_archive(
        self,
        archive: Path,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> InstallResult:
        result = self._installer.install_archive(
            archive, progress_cb=progress_cb, cancel_event=cancel_event
        )
        self.theme_installed.emit(result.theme_id)
        if result.version and self._store.has_updates(result.theme_id):
            self.snapshot_built.emit(result.theme_id, result.version)
        return result

    def check_for_updates(self, project_id: str) -> UpdateCheck:
        return self._updater.check_for_updates(project_id)

    def apply_theme_update(
        self,
        project_id: str,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> UpdateResult:
        result = self._updater.apply_theme_update(
            project_id, progress_cb=progress_cb, cancel_event=cancel_event
        )
        if result.success:
            self.project_updated.emit(project_id, result.new_version or "")
        return result

    def toggle_theme_updates(self, project_id: str, enabled: bool) -> ToggleResult:
        return self._updater.toggle_theme_updates(project_id, enabled)
