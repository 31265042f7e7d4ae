"""Validate and install uploaded theme archives (.zip)."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from threading import Event
from typing import Iterator, NoReturn

from widgetizer.core import semver
from widgetizer.core.locks import ResourceLocks, default_locks
from widgetizer.core.tree_copy import ProgressCallback, check_cancelled, remove_path
from widgetizer.errors import (
    ConflictError,
    ErrorCode,
    ThemeValidationError,
    classify_exception,
)
from widgetizer.themes.constants import (
    IGNORED_FILE_NAMES,
    REQUIRED_THEME_DIRS,
    THEME_JSON,
    UPDATES_DIR,
)
from widgetizer.themes.loader import (
    parse_theme_json,
    update_folder_problem,
    validate_theme_metadata,
)
from widgetizer.themes.models import ArchiveInspection, InstallResult
from widgetizer.themes.snapshot import SnapshotBuilder
from widgetizer.themes.store import ThemeStore

logger = logging.getLogger(__name__)

STAGING_DIR_PREFIX = ".upload-"
_MAC_METADATA_DIR = "__MACOSX"


def _is_ignored(parts: tuple[str, ...]) -> bool:
    return any(
        part == _MAC_METADATA_DIR or part.startswith(".") or part in IGNORED_FILE_NAMES
        for part in parts
    )


def _escapes_root(name: str) -> bool:
    if name.startswith(("/", "\\")) or "\\" in name:
        return True
    if len(name) > 1 and name[1] == ":":
        return True
    return ".." in PurePosixPath(name).parts


@contextmanager
def _open_archive(archive: Path | zipfile.ZipFile) -> Iterator[zipfile.ZipFile]:
    if isinstance(archive, zipfile.ZipFile):
        yield archive
        return
    path = Path(archive)
    try:
        zf = zipfile.ZipFile(path)
    except FileNotFoundError as exc:
        raise classify_exception(exc, path=path) from exc
    except zipfile.BadZipFile as exc:
        raise ThemeValidationError(
            ErrorCode.THEME_STRUCTURE_INVALID,
            message=f"{path.name} is not a valid zip archive",
            path=path,
        ) from exc
    with zf:
        yield zf


def inspect_archive(archive: Path | zipfile.ZipFile) -> ArchiveInspection:
    """Check an uploaded theme archive without extracting it.

    Every problem found is collected and reported in a single
    ThemeValidationError so the uploader can fix them all at once.
    """
    with _open_archive(archive) as zf:
        return _inspect(zf)


def _inspect(zf: zipfile.ZipFile) -> ArchiveInspection:
    problems: list[str] = []
    kept: list[zipfile.ZipInfo] = []
    for info in zf.infolist():
        if _escapes_root(info.filename):
            problems.append(f"entry '{info.filename}' points outside the theme folder")
            continue
        parts = PurePosixPath(info.filename).parts
        if not parts or _is_ignored(parts):
            continue
        kept.append(info)

    roots = {PurePosixPath(info.filename).parts[0] for info in kept}
    loose_files = [
        info.filename for info in kept
        if len(PurePosixPath(info.filename).parts) == 1 and not info.is_dir()
    ]
    if len(roots) != 1 or loose_files:
        problems.append("archive must contain exactly one theme folder at its root")
        _raise_archive_problems(problems)

    root = roots.pop()
    files: dict[PurePosixPath, zipfile.ZipInfo] = {}
    dirs: set[PurePosixPath] = set()
    for info in kept:
        rel = PurePosixPath(*PurePosixPath(info.filename).parts[1:])
        if not rel.parts:
            continue
        if info.is_dir():
            dirs.add(rel)
        else:
            files[rel] = info
            dirs.update(p for p in rel.parents if p.parts)

    theme_json: dict = {}
    version = ""
    theme_info = files.get(PurePosixPath(THEME_JSON))
    if theme_info is None:
        problems.append("missing theme.json")
    else:
        try:
            theme_json = parse_theme_json(zf.read(theme_info), context=f"{root}/{THEME_JSON}")
            version = validate_theme_metadata(theme_json, context=f"{root}/{THEME_JSON}")
        except ThemeValidationError as exc:
            problems.append(exc.message)

    top_files = [rel for rel in files if len(rel.parts) == 1]
    for stem in ("screenshot", "layout"):
        if not any(rel.stem == stem and rel.suffix for rel in top_files):
            problems.append(f"missing {stem} file ({stem}.*)")

    for required in REQUIRED_THEME_DIRS:
        has_content = any(
            len(rel.parts) > 1 and rel.parts[0] == required
            for rel in list(files) + list(dirs)
        )
        if not has_content:
            problems.append(f"missing or empty {required}/ directory")

    update_versions: list[str] = []
    update_folders = sorted({
        rel.parts[1] for rel in list(files) + list(dirs)
        if len(rel.parts) > 1 and rel.parts[0] == UPDATES_DIR
    })
    for folder in update_folders:
        update_json = files.get(PurePosixPath(UPDATES_DIR, folder, THEME_JSON))
        content = zf.read(update_json) if update_json is not None else None
        problem = update_folder_problem(folder, content)
        if problem:
            problems.append(problem)
        else:
            update_versions.append(folder)

    if problems:
        _raise_archive_problems(problems)

    logger.info(
        "archive theme %s version %s with %d update(s)", root, version, len(update_versions)
    )
    return ArchiveInspection(
        root_folder=root,
        theme_json=theme_json,
        version=version,
        update_versions=tuple(semver.sort_ascending(update_versions)),
        members=tuple(info.filename for info in kept),
    )


def _raise_archive_problems(problems: list[str]) -> NoReturn:
    mismatch_only = all("theme.json version" in problem for problem in problems)
    raise ThemeValidationError(
        ErrorCode.THEME_VERSION_MISMATCH if mismatch_only else ErrorCode.THEME_STRUCTURE_INVALID,
        message=f"Invalid theme archive: {'; '.join(problems)}",
        details={"problems": len(problems)},
    )


class ThemeInstaller:
    """Installs validated archives into the themes root."""

    def __init__(
        self,
        store: ThemeStore,
        builder: SnapshotBuilder | None = None,
        locks: ResourceLocks | None = None,
    ) -> None:
        self._store = store
        self._locks = locks or default_locks()
        self._builder = builder or SnapshotBuilder(store, self._locks)

    def install_archive(
        self,
        archive: Path | zipfile.ZipFile,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> InstallResult:
        with _open_archive(archive) as zf:
            inspection = _inspect(zf)
            theme_id = inspection.root_folder
            with self._locks.theme(theme_id):
                is_update = self._store.theme_exists(theme_id)
                to_install = self._versions_to_install(theme_id, inspection, is_update)
                self._store.themes_root.mkdir(parents=True, exist_ok=True)
                staging = Path(tempfile.mkdtemp(prefix=STAGING_DIR_PREFIX, dir=self._store.themes_root))
                try:
                    _extract(zf, inspection, staging, progress_cb, cancel_event)
                    self._place(theme_id, staging / theme_id, to_install, is_update)
                except OSError as exc:
                    raise classify_exception(exc, path=staging) from exc
                finally:
                    remove_path(staging)

                if self._store.has_updates(theme_id):
                    self._builder.build(theme_id, progress_cb=progress_cb, cancel_event=cancel_event)

        versions = self._store.list_versions(theme_id)
        if is_update:
            message = f"Added update(s) {', '.join(to_install)} to theme '{theme_id}'"
        else:
            message = f"Installed theme '{theme_id}' version {inspection.version}"
        logger.info(message)
        return InstallResult(
            theme_id=theme_id,
            is_update=is_update,
            installed_versions=tuple(to_install),
            version=self._store.source_version(theme_id),
            versions=tuple(versions),
            message=message,
        )

    def _versions_to_install(
        self, theme_id: str, inspection: ArchiveInspection, is_update: bool
    ) -> list[str]:
        if not is_update:
            return [inspection.version, *inspection.update_versions]

        installed_base = self._store.base_version(theme_id)
        if installed_base != inspection.version:
            raise ConflictError(
                ErrorCode.THEME_VERSION_CONFLICT,
                message=(
                    f"Theme '{theme_id}' is installed with base version {installed_base}; "
                    f"the archive has base version {inspection.version}"
                ),
                details={"theme": theme_id, "installed": installed_base, "incoming": inspection.version},
            )
        layout = self._store.layout(theme_id)
        new_versions = [v for v in inspection.update_versions if not layout.version_dir(v).exists()]
        if not new_versions:
            raise ConflictError(
                ErrorCode.THEME_VERSION_CONFLICT,
                message=f"Theme '{theme_id}' already has every version in this archive",
                details={"theme": theme_id},
            )
        return new_versions

    def _place(self, theme_id: str, extracted: Path, to_install: list[str], is_update: bool) -> None:
        layout = self._store.layout(theme_id)
        if not is_update:
            os.replace(extracted, layout.root)
            return
        layout.updates_dir.mkdir(parents=True, exist_ok=True)
        for version in to_install:
            os.replace(extracted / UPDATES_DIR / version, layout.version_dir(version))
            logger.info("added update %s to theme %s", version, theme_id)


def _extract(
    zf: zipfile.ZipFile,
    inspection: ArchiveInspection,
    staging: Path,
    progress_cb: ProgressCallback | None,
    cancel_event: Event | None,
) -> None:
    """Extract the inspected members only; ignored entries never reach disk."""
    members = [zf.getinfo(name) for name in inspection.members]
    file_members = [info for info in members if not info.is_dir()]
    total = len(file_members)
    done = 0
    for info in members:
        target = staging.joinpath(*PurePosixPath(info.filename).parts)
        if info.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            continue
        check_cancelled(cancel_event)
        target.parent.mkdir(parents=True, exist_ok=True)
        with zf.open(info) as src, open(target, "wb") as dst:
            shutil.copyfileobj(src, dst)
        done += 1
        if progress_cb:
            progress_cb(done, total, target.name)


def install_archive(
    archive: Path | zipfile.ZipFile,
    store: ThemeStore,
    *,
    progress_cb: ProgressCallback | None = None,
    cancel_event: Event | None = None,
) -> InstallResult:
    return ThemeInstaller(store).install_archive(
        archive, progress_cb=progress_cb, cancel_event=cancel_event
    )
