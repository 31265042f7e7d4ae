"""Application settings via QSettings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from PySide6.QtCore import QSettings

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True, slots=True)
class DataPaths:
    """Directory layout below one data root. Directories are created on access."""

    root: Path

    @property
    def themes_dir(self) -> Path:
        return self._subdir("themes")

    @property
    def projects_dir(self) -> Path:
        return self._subdir("projects")

    @property
    def projects_file(self) -> Path:
        return self.projects_dir / "projects.json"

    @property
    def log_dir(self) -> Path:
        return self._subdir("logs")

    def _subdir(self, name: str) -> Path:
        path = self.root / name
        path.mkdir(parents=True, exist_ok=True)
        return path


class AppSettings:
    """Wraps QSettings for persistent app configuration."""

    def __init__(self, qsettings: QSettings | None = None) -> None:
        self._qs = qsettings if qsettings is not None else QSettings("Widgetizer", "Widgetizer")

    # -- data root --

    @property
    def data_root(self) -> Path:
        raw = self._qs.value("dirs/data_root", "", type=str)
        value = (raw or "").strip()
        path = Path(value).expanduser() if value else self._default_data_root()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @data_root.setter
    def data_root(self, value: str | Path) -> None:
        self._qs.setValue("dirs/data_root", str(value).strip())

    # -- logging --

    @property
    def log_level(self) -> str:
        raw = self._qs.value("logging/level", "INFO", type=str)
        level = (raw or "").strip().upper()
        return level if level in _LOG_LEVELS else "INFO"

    @log_level.setter
    def log_level(self, value: str) -> None:
        level = (value or "").strip().upper()
        if level not in _LOG_LEVELS:
            level = "INFO"
        self._qs.setValue("logging/level", level)

    # -- helpers --

    @property
    def paths(self) -> DataPaths:
        return DataPaths(self.data_root)

    @property
    def themes_dir(self) -> Path:
        return self.paths.themes_dir

    @property
    def projects_dir(self) -> Path:
        return self.paths.projects_dir

    @property
    def projects_file(self) -> Path:
        return self.paths.projects_file

    @property
    def log_dir(self) -> Path:
        return self.paths.log_dir

    def sync(self) -> None:
        self._qs.sync()

    @staticmethod
    def _default_data_root() -> Path:
        override = os.environ.get("WIDGETIZER_DATA")
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / "widgetizer"
