"""Shared theme and project builders for the test suite."""

from __future__ import annotations

import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

import pytest

from widgetizer.core.locks import ResourceLocks
from widgetizer.core.project_store import ProjectStore
from widgetizer.themes.store import ThemeStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
FIXED_STAMP = "2024-05-01T12:00:00.000Z"


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_file(path: Path, content: str | bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")


def base_settings() -> dict[str, Any]:
    return {
        "global": {
            "colors": [
                {"id": "primary", "type": "color", "label": "Primary", "default": "#000000", "value": "#000000"},
                {"id": "legacy", "type": "color", "label": "Legacy", "default": "#cccccc", "value": "#cccccc"},
            ],
            "typography": [
                {"id": "font", "type": "font", "label": "Font", "default": "Inter", "value": "Inter"},
            ],
        }
    }


def theme_json(version: str, settings: Mapping[str, Any] | None = None, **extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": "Arch",
        "version": version,
        "author": "Widgetizer",
        "description": "Test theme",
        "settings": dict(settings) if settings is not None else base_settings(),
    }
    data.update(extra)
    return data


def make_theme(themes_root: Path, theme_id: str = "arch", version: str = "1.0.0") -> Path:
    """Write a complete base-layer theme and return its directory."""
    root = themes_root / theme_id
    write_json(root / "theme.json", theme_json(version))
    write_file(root / "layout.liquid", "<html>{{ content }}</html>")
    write_file(root / "screenshot.png", b"\x89PNG base")
    write_file(root / "assets" / "base.css", "body { color: black; }")
    write_file(root / "assets" / "deprecated.css", ".old {}")
    write_json(root / "templates" / "index.json", {"name": "Home", "slug": "index", "widgets": {}})
    write_json(root / "widgets" / "hero" / "schema.json", {"type": "hero"})
    write_json(root / "widgets" / "deprecated-widget" / "schema.json", {"type": "deprecated"})
    write_file(root / "widgets" / "global" / "header.liquid", "<header></header>")
    write_json(root / "menus" / "main-menu.json", {"name": "Main Menu", "items": []})
    write_file(root / "snippets" / "icon.liquid", "<svg></svg>")
    return root


def add_update(
    theme_dir: Path,
    version: str,
    files: Mapping[str, str | bytes | dict] | None = None,
    deleted: Iterable[str] = (),
    manifest: Mapping[str, Any] | None = None,
) -> Path:
    """Add ``updates/<version>/``. Deletion markers ending in ``/`` become empty directories."""
    update_dir = theme_dir / "updates" / version
    update_dir.mkdir(parents=True, exist_ok=True)
    write_json(update_dir / "theme.json", dict(manifest) if manifest is not None else theme_json(version))
    for rel, content in (files or {}).items():
        if isinstance(content, dict):
            write_json(update_dir / rel, content)
        else:
            write_file(update_dir / rel, content)
    for marker in deleted:
        target = update_dir / "deleted" / marker.rstrip("/")
        if marker.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
        else:
            write_file(target, "")
    return update_dir


def snapshot_tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def make_project(
    projects_root: Path,
    theme_dir: Path,
    project_id: str = "p1",
    *,
    folder_name: str = "my-site",
    theme_version: str | None = "1.0.0",
    user_settings: Mapping[str, Any] | None = None,
    extra_projects: Iterable[Mapping[str, Any]] = (),
) -> Path:
    """Create a project directory seeded from *theme_dir* and register it in projects.json."""
    project_dir = projects_root / folder_name
    for name in ("layout.liquid", "screenshot.png"):
        write_file(project_dir / name, (theme_dir / name).read_bytes())
    for name in ("assets", "widgets", "snippets", "menus"):
        shutil.copytree(theme_dir / name, project_dir / name)
    write_json(project_dir / "pages" / "index.json", {"name": "My Home", "slug": "index", "id": "index"})
    write_file(project_dir / "assets" / "custom.css", "/* user */")

    settings = base_settings()
    settings["global"]["colors"][0]["value"] = "#123456"
    write_json(
        project_dir / "theme.json",
        theme_json(theme_version or "1.0.0", user_settings if user_settings is not None else settings),
    )

    record = {
        "id": project_id,
        "name": "My Site",
        "folderName": folder_name,
        "theme": theme_dir.name,
        "themeVersion": theme_version,
        "receiveThemeUpdates": True,
        "created": "2024-01-01T00:00:00.000Z",
    }
    write_json(
        projects_root / "projects.json",
        {"projects": [record, *extra_projects], "activeProjectId": project_id},
    )
    return project_dir


@pytest.fixture
def themes_root(tmp_path: Path) -> Path:
    root = tmp_path / "themes"
    root.mkdir()
    return root


@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def store(themes_root: Path) -> ThemeStore:
    return ThemeStore(themes_root)


@pytest.fixture
def project_store(projects_root: Path) -> ProjectStore:
    return ProjectStore(projects_root / "projects.json", projects_root)


@pytest.fixture
def locks() -> ResourceLocks:
    return ResourceLocks()


@pytest.fixture
def qapp():
    from PySide6.QtCore import QCoreApplication

    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture(autouse=True)
def _reset_widgetizer_logger():
    yield
    logger = logging.getLogger("widgetizer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
