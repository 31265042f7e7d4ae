"""projects.json record access for theme update bookkeeping."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from widgetizer.errors import ErrorCode, NotFoundError, WidgetizerError

# Record keys owned by theme updates; everything else on a record is passed through.
_THEME_STATE_KEYS = {
    "theme": "theme",
    "theme_version": "themeVersion",
    "receive_theme_updates": "receiveThemeUpdates",
    "last_theme_update_at": "lastThemeUpdateAt",
    "last_theme_update_version": "lastThemeUpdateVersion",
}


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ProjectRecord:
    """One entry of projects.json, with the theme update fields broken out."""

    id: str
    folder_name: str = ""
    theme: str = ""
    theme_version: str | None = None
    receive_theme_updates: bool = True
    last_theme_update_at: str | None = None
    last_theme_update_version: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectRecord":
        extra = {
            key: value for key, value in data.items()
            if key not in ("id", "folderName") and key not in _THEME_STATE_KEYS.values()
        }
        return cls(
            id=str(data["id"]),
            folder_name=str(data.get("folderName") or ""),
            theme=str(data.get("theme") or ""),
            theme_version=data.get("themeVersion"),
            receive_theme_updates=bool(data.get("receiveThemeUpdates", True)),
            last_theme_update_at=data.get("lastThemeUpdateAt"),
            last_theme_update_version=data.get("lastThemeUpdateVersion"),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.folder_name:
            data["folderName"] = self.folder_name
        data.update(self.extra)
        data["theme"] = self.theme
        data["themeVersion"] = self.theme_version
        data["receiveThemeUpdates"] = self.receive_theme_updates
        if self.last_theme_update_at is not None:
            data["lastThemeUpdateAt"] = self.last_theme_update_at
        if self.last_theme_update_version is not None:
            data["lastThemeUpdateVersion"] = self.last_theme_update_version
        return data


class ProjectStore:
    """Reads and rewrites projects.json and resolves project directories."""

    def __init__(self, projects_file: Path, projects_root: Path) -> None:
        self._projects_file = Path(projects_file)
        self._projects_root = Path(projects_root)
        self._lock = threading.Lock()

    @property
    def projects_file(self) -> Path:
        return self._projects_file

    @property
    def projects_root(self) -> Path:
        return self._projects_root

    def get_project(self, project_id: str) -> ProjectRecord | None:
        with self._lock:
            data = self._read()
        for entry in data["projects"]:
            if isinstance(entry, Mapping) and entry.get("id") == project_id:
                return ProjectRecord.from_dict(entry)
        return None

    def require_project(self, project_id: str) -> ProjectRecord:
        project = self.get_project(project_id)
        if project is None:
            raise NotFoundError(
                ErrorCode.PROJECT_NOT_FOUND,
                message=f"Project not found: {project_id}",
                details={"project": project_id},
            )
        return project

    def list_projects(self) -> list[ProjectRecord]:
        with self._lock:
            data = self._read()
        return [
            ProjectRecord.from_dict(entry) for entry in data["projects"]
            if isinstance(entry, Mapping) and "id" in entry
        ]

    def save_project(self, record: ProjectRecord, *, touch: bool = True) -> ProjectRecord:
        """Replace the stored record with the same id, or append a new one."""
        if touch:
            record.extra["updated"] = utc_timestamp()
        with self._lock:
            data = self._read()
            projects = data["projects"]
            for index, entry in enumerate(projects):
                if isinstance(entry, Mapping) and entry.get("id") == record.id:
                    projects[index] = record.to_dict()
                    break
            else:
                projects.append(record.to_dict())
            self._write(data)
        return record

    def project_dir(self, record: ProjectRecord) -> Path:
        return self._projects_root / (record.folder_name or record.id)

    def _read(self) -> dict[str, Any]:
        if not self._projects_file.exists():
            return {"projects": [], "activeProjectId": None}
        try:
            data = json.loads(self._projects_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise WidgetizerError(
                ErrorCode.PROJECT_RECORDS_INVALID,
                path=self._projects_file,
                details={"original": str(exc)},
            ) from exc
        if not isinstance(data, dict) or not isinstance(data.get("projects"), list):
            raise WidgetizerError(ErrorCode.PROJECT_RECORDS_INVALID, path=self._projects_file)
        return data

    def _write(self, data: Mapping[str, Any]) -> None:
        self._projects_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._projects_file.with_name(self._projects_file.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._projects_file)
