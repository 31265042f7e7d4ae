"""Tests for projects.json record handling."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from conftest import read_json, write_json
from widgetizer.core.locks import ResourceLocks
from widgetizer.core.project_store import ProjectRecord, ProjectStore, utc_timestamp
from widgetizer.errors import ErrorCode, NotFoundError, WidgetizerError


def test_utc_timestamp_format() -> None:
    moment = datetime(2024, 3, 9, 8, 7, 6, 543210, tzinfo=timezone.utc)
    assert utc_timestamp(moment) == "2024-03-09T08:07:06.543Z"
    offset = datetime(2024, 3, 9, 10, 7, 6, tzinfo=timezone(timedelta(hours=2)))
    assert utc_timestamp(offset) == "2024-03-09T08:07:06.000Z"


def test_record_round_trip_preserves_unknown_keys() -> None:
    data = {
        "id": "p1",
        "name": "Site",
        "folderName": "site",
        "theme": "arch",
        "themeVersion": "1.0.0",
        "siteUrl": "https://example.com",
    }
    record = ProjectRecord.from_dict(data)
    assert record.receive_theme_updates is True
    assert record.extra == {"name": "Site", "siteUrl": "https://example.com"}
    out = record.to_dict()
    assert out["siteUrl"] == "https://example.com"
    assert out["themeVersion"] == "1.0.0"
    assert "lastThemeUpdateAt" not in out


def test_missing_file_reads_as_empty(project_store: ProjectStore) -> None:
    assert project_store.list_projects() == []
    assert project_store.get_project("p1") is None
    with pytest.raises(NotFoundError) as excinfo:
        project_store.require_project("p1")
    assert excinfo.value.code is ErrorCode.PROJECT_NOT_FOUND


def test_save_replaces_and_keeps_other_entries(project_store: ProjectStore, projects_root: Path) -> None:
    write_json(
        projects_root / "projects.json",
        {
            "projects": [{"id": "p1", "theme": "arch"}, {"id": "p2", "theme": "basic"}],
            "activeProjectId": "p2",
        },
    )
    record = project_store.require_project("p1")
    record.theme_version = "1.1.0"
    project_store.save_project(record)

    data = read_json(projects_root / "projects.json")
    assert data["activeProjectId"] == "p2"
    assert [p["id"] for p in data["projects"]] == ["p1", "p2"]
    assert data["projects"][0]["themeVersion"] == "1.1.0"
    assert "updated" in data["projects"][0]
    assert data["projects"][1] == {"id": "p2", "theme": "basic"}
    assert not (projects_root / "projects.json.tmp").exists()


def test_save_appends_new_record(project_store: ProjectStore) -> None:
    project_store.save_project(ProjectRecord(id="p9", theme="arch"), touch=False)
    assert [p.id for p in project_store.list_projects()] == ["p9"]


def test_project_dir_prefers_folder_name(project_store: ProjectStore, projects_root: Path) -> None:
    assert project_store.project_dir(ProjectRecord(id="p1", folder_name="site")) == projects_root / "site"
    assert project_store.project_dir(ProjectRecord(id="p1")) == projects_root / "p1"


@pytest.mark.parametrize("content", ["{broken", "[]", '{"projects": {}}'])
def test_malformed_file_raises(project_store: ProjectStore, projects_root: Path, content: str) -> None:
    (projects_root / "projects.json").write_text(content, encoding="utf-8")
    with pytest.raises(WidgetizerError) as excinfo:
        project_store.list_projects()
    assert excinfo.value.code is ErrorCode.PROJECT_RECORDS_INVALID


class TestResourceLocks:
    def test_same_key_same_lock(self) -> None:
        locks = ResourceLocks()
        assert locks.lock_for("theme", "arch") is locks.lock_for("theme", "arch")
        assert locks.lock_for("theme", "arch") is not locks.lock_for("project", "arch")

    def test_reentrant(self) -> None:
        locks = ResourceLocks()
        with locks.theme("arch"):
            with locks.theme("arch"):
                pass

    def test_blocks_other_threads(self) -> None:
        locks = ResourceLocks()
        acquired: list[bool] = []
        with locks.project("p1"):
            worker = threading.Thread(
                target=lambda: acquired.append(locks.lock_for("project", "p1").acquire(timeout=0.05))
            )
            worker.start()
            worker.join()
        assert acquired == [False]
