"""Theme versioning models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath

from widgetizer.themes.constants import (
    BUILD_DIR_PREFIX,
    LATEST_DIR,
    RETIRED_DIR_PREFIX,
    THEME_JSON,
    UPDATES_DIR,
)


@dataclass(frozen=True, slots=True)
class ThemeLayout:
    """Paths inside one installed theme directory."""

    root: Path

    @property
    def theme_id(self) -> str:
        return self.root.name

    @property
    def theme_json(self) -> Path:
        return self.root / THEME_JSON

    @property
    def updates_dir(self) -> Path:
        return self.root / UPDATES_DIR

    @property
    def latest_dir(self) -> Path:
        return self.root / LATEST_DIR

    def version_dir(self, version: str) -> Path:
        return self.updates_dir / version

    def is_versioning_entry(self, name: str) -> bool:
        """True for root entries that are not part of the base layer."""
        return (
            name in (UPDATES_DIR, LATEST_DIR)
            or name.startswith(BUILD_DIR_PREFIX)
            or name.startswith(RETIRED_DIR_PREFIX)
        )


class DeletionKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True, slots=True)
class Deletion:
    """One removal declared by an update's deleted/ marker tree."""

    kind: DeletionKind
    path: PurePosixPath


@dataclass(frozen=True, slots=True)
class ThemeSummary:
    """Display-ready theme metadata including version state."""

    theme_id: str
    name: str
    description: str
    author: str
    version: str
    versions: tuple[str, ...]
    latest_version: str | None
    has_pending_update: bool
    widget_count: int
    source_dir: Path


@dataclass(frozen=True, slots=True)
class SnapshotResult:
    """Outcome of a latest/ build."""

    theme_id: str
    built: bool
    versions: tuple[str, ...] = ()
    version: str | None = None
    files_copied: int = 0
    deletions_applied: int = 0


@dataclass(frozen=True, slots=True)
class ArchiveInspection:
    """What a validated theme archive contains."""

    root_folder: str
    theme_json: dict
    version: str
    update_versions: tuple[str, ...] = ()
    members: tuple[str, ...] = field(default=(), repr=False)


@dataclass(frozen=True, slots=True)
class InstallResult:
    theme_id: str
    is_update: bool
    installed_versions: tuple[str, ...]
    version: str | None
    versions: tuple[str, ...]
    message: str
