"""Tests for AppSettings and the data directory layout."""

from __future__ import annotations

from pathlib import Path

import pytest
from PySide6.QtCore import QSettings

from widgetizer.config.settings import AppSettings, DataPaths


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat))


def test_data_paths_created_on_access(tmp_path: Path) -> None:
    paths = DataPaths(tmp_path / "data")
    assert paths.themes_dir == tmp_path / "data" / "themes"
    assert paths.themes_dir.is_dir()
    assert paths.projects_file == tmp_path / "data" / "projects" / "projects.json"
    assert paths.log_dir.is_dir()


def test_default_data_root_from_environment(settings: AppSettings, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("WIDGETIZER_DATA", str(tmp_path / "env-root"))
    assert settings.data_root == tmp_path / "env-root"
    assert settings.themes_dir == tmp_path / "env-root" / "themes"


def test_data_root_setting_overrides_environment(settings: AppSettings, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("WIDGETIZER_DATA", str(tmp_path / "env-root"))
    settings.data_root = tmp_path / "chosen"
    assert settings.data_root == tmp_path / "chosen"
    assert settings.projects_dir.is_dir()


def test_log_level_is_validated(settings: AppSettings) -> None:
    assert settings.log_level == "INFO"
    settings.log_level = "debug"
    assert settings.log_level == "DEBUG"
    settings.log_level = "chatty"
    assert settings.log_level == "INFO"
