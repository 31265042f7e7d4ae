"""Versioned theme framework exports."""

from widgetizer.errors import ThemeValidationError
from widgetizer.themes.ingest import ThemeInstaller, inspect_archive, install_archive
from widgetizer.themes.models import (
    ArchiveInspection,
    Deletion,
    DeletionKind,
    InstallResult,
    SnapshotResult,
    ThemeLayout,
    ThemeSummary,
)
from widgetizer.themes.snapshot import SnapshotBuilder, apply_deletions, resolve_deletions
from widgetizer.themes.store import ThemeStore

__all__ = [
    "ArchiveInspection",
    "Deletion",
    "DeletionKind",
    "InstallResult",
    "SnapshotBuilder",
    "SnapshotResult",
    "ThemeInstaller",
    "ThemeLayout",
    "ThemeStore",
    "ThemeSummary",
    "ThemeValidationError",
    "apply_deletions",
    "inspect_archive",
    "install_archive",
    "resolve_deletions",
]
