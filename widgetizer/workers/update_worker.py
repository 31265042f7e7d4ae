"""Workers for checking and applying theme updates to projects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from widgetizer.workers.base_worker import BaseWorker

if TYPE_CHECKING:
    from widgetizer.core.theme_updater import UpdateCheck, UpdateResult
    from widgetizer.themes.service import ThemeService


class UpdateCheckWorker(BaseWorker):
    """Checks a batch of projects for available theme updates."""

    def __init__(self, service: ThemeService, project_ids: list[str]) -> None:
        super().__init__()
        self._service = service
        self._project_ids = list(project_ids)

    def _work(self) -> dict[str, UpdateCheck]:
        results: dict[str, UpdateCheck] = {}
        total = len(self._project_ids)
        for i, project_id in enumerate(self._project_ids):
            if self._is_cancelled:
                break
            results[project_id] = self._service.check_for_updates(project_id)
            self._emit_progress(i + 1, total, project_id)
        return results


class ThemeUpdateWorker(BaseWorker):
    """Applies the theme's current snapshot to one project."""

    def __init__(self, service: ThemeService, project_id: str) -> None:
        super().__init__()
        self._service = service
        self._project_id = project_id

    def _work(self) -> UpdateResult:
        return self._service.apply_theme_update(
            self._project_id,
            progress_cb=self._emit_progress,
            cancel_event=self._cancel_event,
        )
