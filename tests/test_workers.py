"""Tests for widgetizer.workers base, snapshot and update workers."""

from pathlib import Path

import pytest

from conftest import add_update, make_project, make_theme
from widgetizer.core.project_store import ProjectStore
from widgetizer.themes.service import ThemeService
from widgetizer.workers.base_worker import BaseWorker
from widgetizer.workers.snapshot_worker import ArchiveInstallWorker, SnapshotBuildWorker
from widgetizer.workers.update_worker import ThemeUpdateWorker, UpdateCheckWorker


def _record(worker):
    """Collect every terminal signal a worker emits."""
    events = {"finished": [], "error": [], "cancelled": [], "progress": []}
    worker.finished.connect(lambda result: events["finished"].append(result))
    worker.error.connect(lambda message: events["error"].append(message))
    worker.cancelled.connect(lambda: events["cancelled"].append(True))
    worker.progress.connect(lambda cur, tot, msg: events["progress"].append((cur, tot, msg)))
    return events


@pytest.fixture
def service(store, project_store: ProjectStore, locks) -> ThemeService:
    return ThemeService(store, project_store, locks)


class TestBaseWorker:
    """Tests for the BaseWorker class."""

    def test_base_worker_creation(self):
        worker = BaseWorker()
        assert worker is not None
        assert worker._cancel_event.is_set() is False

    def test_base_worker_cancel(self):
        worker = BaseWorker()
        worker.cancel()
        assert worker._is_cancelled is True

    def test_base_worker_signals_exist(self):
        worker = BaseWorker()
        assert hasattr(worker, 'started')
        assert hasattr(worker, 'progress')
        assert hasattr(worker, 'finished')
        assert hasattr(worker, 'error')
        assert hasattr(worker, 'cancelled')

    def test_base_worker_work_not_implemented(self):
        worker = BaseWorker()
        with pytest.raises(NotImplementedError):
            worker._work()

    def test_base_worker_run_reports_error(self, qapp):
        worker = BaseWorker()
        events = _record(worker)
        worker.run()
        assert len(events["error"]) == 1
        assert "NotImplementedError" in events["error"][0]
        assert events["finished"] == []


class TestSnapshotBuildWorker:
    def test_build_emits_progress_and_result(self, qapp, service, themes_root):
        add_update(make_theme(themes_root), "1.1.0", files={"assets/base.css": "v2"})
        worker = SnapshotBuildWorker(service, "arch")
        events = _record(worker)
        worker.run()

        assert events["error"] == []
        assert len(events["finished"]) == 1
        assert events["finished"][0].version == "1.1.0"
        assert events["progress"]

    def test_cancel_before_run(self, qapp, service, themes_root):
        add_update(make_theme(themes_root), "1.1.0")
        worker = SnapshotBuildWorker(service, "arch")
        events = _record(worker)
        worker.cancel()
        worker.run()
        assert events["cancelled"] == [True]
        assert events["finished"] == []
        assert not (themes_root / "arch" / "latest").exists()

    def test_only_if_pending_reports_error(self, qapp, service, themes_root):
        make_theme(themes_root)
        worker = SnapshotBuildWorker(service, "arch", only_if_pending=True)
        events = _record(worker)
        worker.run()
        assert len(events["error"]) == 1
        assert "no pending updates" in events["error"][0]


class TestArchiveInstallWorker:
    def test_missing_archive_reports_error(self, qapp, service, tmp_path):
        worker = ArchiveInstallWorker(service, str(tmp_path / "missing.zip"))
        events = _record(worker)
        worker.run()
        assert len(events["error"]) == 1
        assert worker._archive_path.endswith("missing.zip")


class TestUpdateWorkers:
    def test_update_worker_applies_update(self, qapp, service, themes_root, projects_root):
        theme_dir = make_theme(themes_root)
        add_update(theme_dir, "1.1.0", files={"assets/base.css": "v2"})
        service.build_snapshot("arch")
        project_dir = make_project(projects_root, theme_dir)

        worker = ThemeUpdateWorker(service, "p1")
        events = _record(worker)
        worker.run()

        assert events["error"] == []
        assert events["finished"][0].success is True
        assert (project_dir / "assets" / "base.css").read_text(encoding="utf-8") == "v2"

    def test_check_worker_collects_results(self, qapp, service, themes_root, projects_root):
        make_project(projects_root, make_theme(themes_root))
        worker = UpdateCheckWorker(service, ["p1"])
        events = _record(worker)
        worker.run()

        results = events["finished"][0]
        assert results["p1"].has_update is False
        assert events["progress"] == [(1, 1, "p1")]

    def test_check_worker_unknown_project(self, qapp, service):
        worker = UpdateCheckWorker(service, ["ghost"])
        events = _record(worker)
        worker.run()
        assert events["error"] == ["Project not found: ghost\n\nThe project was not found."]
