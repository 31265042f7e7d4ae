"""Build a theme's latest/ snapshot from its base layer and ordered updates.

The snapshot is assembled in a temporary sibling of latest/ and only renamed
into place once every layer has been applied, so readers see either the old
snapshot or the new one. Update folders are validated as a whole before
anything is written.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path, PurePosixPath
from threading import Event

from widgetizer.core.locks import ResourceLocks, default_locks
from widgetizer.core.tree_copy import ProgressCallback, TreeCopier, count_files, remove_path
from widgetizer.errors import classify_exception, WidgetizerError
from widgetizer.themes.constants import BUILD_DIR_PREFIX, DELETED_DIR, RETIRED_DIR_PREFIX, THEME_JSON
from widgetizer.themes.loader import (
    load_theme_json,
    raise_for_update_problems,
    read_version,
    update_folder_problem,
)
from widgetizer.themes.models import Deletion, DeletionKind, SnapshotResult, ThemeLayout
from widgetizer.themes.store import ThemeStore

logger = logging.getLogger(__name__)


def resolve_deletions(deleted_dir: Path) -> list[Deletion]:
    """Turn a deleted/ marker tree into explicit removals.

    A file marks a file for deletion, an empty directory marks a whole
    directory, and a non-empty directory only groups deeper markers.
    """
    if not deleted_dir.is_dir():
        return []
    deletions: list[Deletion] = []
    _collect_deletions(deleted_dir, PurePosixPath(), deletions)
    return deletions


def _collect_deletions(directory: Path, relative: PurePosixPath, out: list[Deletion]) -> None:
    for entry in sorted(directory.iterdir()):
        entry_rel = relative / entry.name
        if entry.is_dir():
            if any(entry.iterdir()):
                _collect_deletions(entry, entry_rel, out)
            else:
                out.append(Deletion(DeletionKind.DIRECTORY, entry_rel))
        else:
            out.append(Deletion(DeletionKind.FILE, entry_rel))


def apply_deletions(root: Path, deletions: list[Deletion]) -> int:
    """Remove each declared path below *root*; already-missing paths are skipped."""
    applied = 0
    for deletion in deletions:
        target = root.joinpath(*deletion.path.parts)
        if deletion.kind is DeletionKind.DIRECTORY and target.is_file():
            logger.warning("deletion marker %s names a directory but found a file", deletion.path)
        if remove_path(target):
            applied += 1
        else:
            logger.debug("deletion target already absent: %s", deletion.path)
    return applied


class SnapshotBuilder:
    """Rebuilds latest/ for a theme."""

    def __init__(self, store: ThemeStore, locks: ResourceLocks | None = None) -> None:
        self._store = store
        self._locks = locks or default_locks()

    def validate_updates(self, theme_id: str) -> tuple[str | None, list[str]]:
        """Return ``(base_version, update_versions)`` or raise listing every broken folder."""
        layout = self._store.layout(theme_id)
        base_version = read_version(layout.theme_json)
        updates = [v for v in self._store.list_versions(theme_id) if v != base_version]
        problems: list[str] = []
        for version in updates:
            theme_json = layout.version_dir(version) / THEME_JSON
            content = _read_bytes(theme_json)
            problem = update_folder_problem(version, content)
            if problem:
                problems.append(problem)
        if problems:
            logger.error("theme %s failed update validation: %s", theme_id, "; ".join(problems))
        raise_for_update_problems(theme_id, problems)
        return base_version, updates

    def build(
        self,
        theme_id: str,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> SnapshotResult:
        layout = self._store.require_theme(theme_id)
        with self._locks.theme(theme_id):
            versions = self._store.list_versions(theme_id)
            if len(versions) <= 1:
                logger.info("no updates for %s, skipping latest/ build", theme_id)
                return SnapshotResult(theme_id=theme_id, built=False, versions=tuple(versions))

            # Raises before anything on disk changes.
            load_theme_json(layout.theme_json)
            _base_version, updates = self.validate_updates(theme_id)

            _remove_stale_build_dirs(layout)
            logger.info("building latest/ for %s with versions: %s", theme_id, ", ".join(versions))
            build_dir = layout.root / f"{BUILD_DIR_PREFIX}{uuid.uuid4().hex[:12]}"
            try:
                copier, deletions_applied = self._assemble(
                    layout, updates, build_dir, progress_cb, cancel_event
                )
                self._swap_into_place(layout, build_dir)
            except WidgetizerError:
                remove_path(build_dir)
                raise
            except OSError as exc:
                remove_path(build_dir)
                raise classify_exception(exc, path=build_dir) from exc

            version = read_version(layout.latest_dir / THEME_JSON)
            logger.info("built latest/ for %s at version %s", theme_id, version)
            return SnapshotResult(
                theme_id=theme_id,
                built=True,
                versions=tuple(versions),
                version=version,
                files_copied=copier.copied,
                deletions_applied=deletions_applied,
            )

    def _assemble(
        self,
        layout: ThemeLayout,
        updates: list[str],
        build_dir: Path,
        progress_cb: ProgressCallback | None,
        cancel_event: Event | None,
    ) -> tuple[TreeCopier, int]:
        base_entries = [
            entry for entry in sorted(layout.root.iterdir())
            if not layout.is_versioning_entry(entry.name)
        ]
        update_entries: list[tuple[str, list[Path]]] = []
        for version in updates:
            version_dir = layout.version_dir(version)
            entries = [e for e in sorted(version_dir.iterdir()) if e.name != DELETED_DIR]
            update_entries.append((version, entries))

        total = sum(count_files(e) for e in base_entries)
        total += sum(count_files(e) for _, entries in update_entries for e in entries)
        copier = TreeCopier(total=total, progress_cb=progress_cb, cancel_event=cancel_event)

        build_dir.mkdir(parents=True)
        for entry in base_entries:
            copier.copy_entry(entry, build_dir / entry.name)

        deletions_applied = 0
        for version, entries in update_entries:
            for entry in entries:
                copier.copy_entry(entry, build_dir / entry.name)
            deletions = resolve_deletions(layout.version_dir(version) / DELETED_DIR)
            deletions_applied += apply_deletions(build_dir, deletions)
            logger.info(
                "applied version %s to latest/ (%d deletion markers)", version, len(deletions)
            )
        return copier, deletions_applied

    @staticmethod
    def _swap_into_place(layout: ThemeLayout, build_dir: Path) -> None:
        latest_dir = layout.latest_dir
        retired: Path | None = None
        if latest_dir.exists():
            retired = layout.root / f"{RETIRED_DIR_PREFIX}{uuid.uuid4().hex[:12]}"
            os.replace(latest_dir, retired)
        try:
            os.replace(build_dir, latest_dir)
        except OSError:
            if retired is not None:
                os.replace(retired, latest_dir)
            raise
        if retired is not None:
            try:
                remove_path(retired)
            except OSError as exc:
                logger.warning("could not remove retired snapshot %s: %s", retired, exc)


def _remove_stale_build_dirs(layout: ThemeLayout) -> None:
    """Drop temp siblings left behind by an interrupted build."""
    for entry in layout.root.iterdir():
        if entry.name.startswith((BUILD_DIR_PREFIX, RETIRED_DIR_PREFIX)):
            logger.warning("removing stale snapshot directory %s", entry)
            remove_path(entry)


def _read_bytes(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError:
        return None
