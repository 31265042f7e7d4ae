"""Read-side queries over installed, versioned theme trees."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from widgetizer.core import semver
from widgetizer.errors import ErrorCode, NotFoundError, ThemeValidationError
from widgetizer.themes.constants import GLOBAL_WIDGETS_DIR, THEME_JSON, WIDGETS_DIR
from widgetizer.themes.loader import load_theme_json, read_version
from widgetizer.themes.models import ThemeLayout, ThemeSummary

logger = logging.getLogger(__name__)

_MAX_THEME_DIR_CANDIDATES = 512


class ThemeStore:
    """Answers version questions about themes installed under one root directory."""

    def __init__(self, themes_root: Path) -> None:
        self._themes_root = Path(themes_root)

    @property
    def themes_root(self) -> Path:
        return self._themes_root

    def layout(self, theme_id: str) -> ThemeLayout:
        return ThemeLayout(self._themes_root / theme_id)

    def theme_exists(self, theme_id: str) -> bool:
        if not theme_id or theme_id in (".", "..") or "/" in theme_id or "\\" in theme_id:
            return False
        return self.layout(theme_id).root.is_dir()

    def require_theme(self, theme_id: str) -> ThemeLayout:
        if not self.theme_exists(theme_id):
            raise NotFoundError(
                ErrorCode.THEME_NOT_FOUND,
                message=f"Theme '{theme_id}' not found",
                details={"theme": theme_id},
            )
        return self.layout(theme_id)

    def base_version(self, theme_id: str) -> str | None:
        return read_version(self.layout(theme_id).theme_json)

    def list_versions(self, theme_id: str) -> list[str]:
        """Base version plus every valid version folder under updates/, ascending."""
        layout = self.layout(theme_id)
        versions: list[str] = []

        try:
            base = load_theme_json(layout.theme_json)
        except ThemeValidationError as exc:
            logger.warning("could not read base theme.json for %s: %s", theme_id, exc.message)
        else:
            version = base.get("version")
            if semver.is_valid(version):
                versions.append(version)

        if layout.updates_dir.is_dir():
            try:
                entries = sorted(layout.updates_dir.iterdir())
            except OSError as exc:
                logger.warning("could not read updates directory for %s: %s", theme_id, exc)
                entries = []
            for entry in entries:
                if entry.is_dir() and semver.is_valid(entry.name) and entry.name not in versions:
                    versions.append(entry.name)

        return semver.sort_ascending(versions)

    def has_updates(self, theme_id: str) -> bool:
        return len(self.list_versions(theme_id)) > 1

    def source_directory(self, theme_id: str) -> Path:
        """latest/ when it holds a theme.json, otherwise the base directory."""
        layout = self.layout(theme_id)
        if (layout.latest_dir / THEME_JSON).is_file():
            return layout.latest_dir
        return layout.root

    def source_version(self, theme_id: str) -> str | None:
        return read_version(self.source_directory(theme_id) / THEME_JSON)

    def latest_version(self, theme_id: str) -> str | None:
        return semver.latest(self.list_versions(theme_id))

    def has_pending_updates(self, theme_id: str) -> bool:
        """True when a declared update is newer than what latest/ (or the base) provides."""
        versions = self.list_versions(theme_id)
        if len(versions) <= 1:
            return False
        current = self.source_version(theme_id)
        if current is None:
            return False
        return semver.is_newer(current, semver.latest(versions))

    def read_theme_json(self, theme_id: str, version: str | None = None) -> dict[str, Any]:
        """theme.json of the source directory, or of a specific version."""
        layout = self.require_theme(theme_id)
        if version is None:
            return load_theme_json(self.source_directory(theme_id) / THEME_JSON)
        if version == self.base_version(theme_id):
            return load_theme_json(layout.theme_json)
        version_dir = layout.version_dir(version)
        if not semver.is_valid(version) or not version_dir.is_dir():
            raise NotFoundError(
                ErrorCode.THEME_NOT_FOUND,
                message=f"Theme '{theme_id}' has no version {version}",
                details={"theme": theme_id, "version": version},
            )
        return load_theme_json(version_dir / THEME_JSON)

    def list_theme_ids(self) -> list[str]:
        if not self._themes_root.is_dir():
            return []
        try:
            ids = sorted(
                path.name for path in self._themes_root.iterdir()
                if path.is_dir() and not path.name.startswith((".", "_"))
            )
        except OSError as exc:
            logger.warning("failed to list themes in %s: %s", self._themes_root, exc)
            return []
        if len(ids) > _MAX_THEME_DIR_CANDIDATES:
            logger.warning(
                "theme directory limit exceeded in %s; only first %d folders were scanned",
                self._themes_root,
                _MAX_THEME_DIR_CANDIDATES,
            )
            ids = ids[:_MAX_THEME_DIR_CANDIDATES]
        return ids

    def list_themes(self) -> list[ThemeSummary]:
        rows: list[ThemeSummary] = []
        for theme_id in self.list_theme_ids():
            summary = self.summarize(theme_id)
            if summary is not None:
                rows.append(summary)
        return sorted(rows, key=lambda row: row.name.lower())

    def summarize(self, theme_id: str) -> ThemeSummary | None:
        source_dir = self.source_directory(theme_id)
        try:
            data = load_theme_json(source_dir / THEME_JSON)
        except ThemeValidationError as exc:
            logger.warning("skipping theme %s: %s", theme_id, exc.message)
            return None
        versions = self.list_versions(theme_id)
        latest = semver.latest(versions)
        version = str(data.get("version", ""))
        return ThemeSummary(
            theme_id=theme_id,
            name=str(data.get("name", theme_id)),
            description=str(data.get("description", "")),
            author=str(data.get("author", "")),
            version=version,
            versions=tuple(versions),
            latest_version=latest,
            has_pending_update=bool(latest) and semver.is_newer(version, latest),
            widget_count=_count_widgets(source_dir / WIDGETS_DIR),
            source_dir=source_dir,
        )

    def pending_update_count(self) -> int:
        return sum(1 for theme_id in self.list_theme_ids() if self.has_pending_updates(theme_id))


def _count_widgets(widgets_dir: Path) -> int:
    try:
        return sum(
            1 for entry in widgets_dir.iterdir()
            if entry.is_dir() and entry.name != GLOBAL_WIDGETS_DIR
        )
    except OSError:
        return 0
