"""Propagate a theme's built snapshot into projects created from older versions.

An update is planned first: every JSON document it needs (theme.json on both
sides, new menus, new page templates) is read and validated before any file
in the project changes. Executing the plan then overwrites the theme-owned
files (layout, screenshot, assets, widgets, snippets), adds menus and pages
the project does not have yet, and rewrites the project's theme.json with
the user's setting values carried over.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Event
from typing import Any, Callable

from widgetizer.core import semver
from widgetizer.core.locks import ResourceLocks, default_locks
from widgetizer.core.project_store import ProjectRecord, ProjectStore, utc_timestamp
from widgetizer.core.settings_merge import merge_theme_settings
from widgetizer.core.tree_copy import ProgressCallback, TreeCopier, check_cancelled, count_files
from widgetizer.errors import ErrorCode, NotFoundError, ThemeValidationError, classify_exception
from widgetizer.themes.constants import (
    MENUS_DIR,
    PAGES_DIR,
    TEMPLATES_DIR,
    THEME_JSON,
    UPDATABLE_DIRS,
    UPDATABLE_FILE_STEMS,
)
from widgetizer.themes.loader import find_by_stem, load_theme_json, parse_theme_json
from widgetizer.themes.store import ThemeStore

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True, slots=True)
class UpdateCheck:
    has_update: bool
    current_version: str
    latest_version: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasUpdate": self.has_update,
            "currentVersion": self.current_version,
            "latestVersion": self.latest_version,
        }


@dataclass(frozen=True, slots=True)
class UpdateResult:
    success: bool
    previous_version: str | None
    new_version: str | None
    message: str = ""
    added_menus: tuple[str, ...] = ()
    added_pages: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "previousVersion": self.previous_version,
            "newVersion": self.new_version,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class ToggleResult:
    success: bool
    receive_theme_updates: bool

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "receiveThemeUpdates": self.receive_theme_updates}


@dataclass
class UpdateItem:
    """A single write the update will perform."""

    kind: str  # overwrite, menu, page
    dest: Path
    source: Path | None = None
    document: dict[str, Any] | None = None
    status: str = "pending"  # pending, exists, written


@dataclass
class UpdatePlan:
    """Everything needed to move one project to the theme's source version."""

    project: ProjectRecord
    project_dir: Path
    source_dir: Path
    previous_version: str | None
    new_version: str
    theme_json: dict[str, Any]
    items: list[UpdateItem] = field(default_factory=list)

    @property
    def pending(self) -> list[UpdateItem]:
        return [item for item in self.items if item.status == "pending"]

    @property
    def skipped(self) -> list[UpdateItem]:
        return [item for item in self.items if item.status == "exists"]


class ThemeUpdateService:
    """Checks for and applies theme updates to individual projects."""

    def __init__(
        self,
        store: ThemeStore,
        projects: ProjectStore,
        locks: ResourceLocks | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._projects = projects
        self._locks = locks or default_locks()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def check_for_updates(self, project_id: str) -> UpdateCheck:
        project = self._projects.require_project(project_id)
        return self._check(project)

    def _check(self, project: ProjectRecord) -> UpdateCheck:
        current = project.theme_version
        source_version = None
        if self._store.theme_exists(project.theme):
            source_version = self._store.source_version(project.theme)
        if not current or not source_version:
            return UpdateCheck(
                has_update=False,
                current_version=current or UNKNOWN_VERSION,
                latest_version=source_version or UNKNOWN_VERSION,
            )
        return UpdateCheck(
            has_update=semver.is_newer(current, source_version),
            current_version=current,
            latest_version=source_version,
        )

    def toggle_theme_updates(self, project_id: str, enabled: bool) -> ToggleResult:
        with self._locks.project(project_id):
            project = self._projects.require_project(project_id)
            project.receive_theme_updates = bool(enabled)
            self._projects.save_project(project)
        logger.info("project %s receiveThemeUpdates=%s", project_id, bool(enabled))
        return ToggleResult(success=True, receive_theme_updates=bool(enabled))

    def apply_theme_update(
        self,
        project_id: str,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> UpdateResult:
        with self._locks.project(project_id):
            project = self._projects.require_project(project_id)
            previous_version = project.theme_version
            status = self._check(project)
            if not status.has_update:
                return UpdateResult(
                    success=False,
                    previous_version=previous_version,
                    new_version=previous_version,
                    message="No update available",
                )

            with self._locks.theme(project.theme):
                plan = self.plan_update(project)
                logger.info(
                    "updating project %s from %s to %s",
                    project.id, plan.previous_version, plan.new_version,
                )
                try:
                    self.execute_plan(plan, progress_cb=progress_cb, cancel_event=cancel_event)
                except OSError as exc:
                    raise classify_exception(exc, path=plan.project_dir) from exc

            timestamp = utc_timestamp(self._clock())
            project.theme_version = plan.new_version
            project.last_theme_update_at = timestamp
            project.last_theme_update_version = plan.new_version
            self._projects.save_project(project)

        added_menus = tuple(i.dest.name for i in plan.items if i.kind == "menu" and i.status == "written")
        added_pages = tuple(
            i.dest.relative_to(plan.project_dir / PAGES_DIR).as_posix()
            for i in plan.items if i.kind == "page" and i.status == "written"
        )
        logger.info("project %s updated to theme version %s", project.id, plan.new_version)
        return UpdateResult(
            success=True,
            previous_version=previous_version,
            new_version=plan.new_version,
            message=f"Updated theme '{project.theme}' to version {plan.new_version}",
            added_menus=added_menus,
            added_pages=added_pages,
        )

    def plan_update(self, project: ProjectRecord) -> UpdatePlan:
        """Read and validate everything the update needs without writing anything."""
        if not self._store.theme_exists(project.theme):
            raise NotFoundError(
                ErrorCode.THEME_NOT_FOUND,
                message=f"Theme '{project.theme}' not found",
                details={"theme": project.theme},
            )
        project_dir = self._projects.project_dir(project)
        if not project_dir.is_dir():
            raise NotFoundError(
                ErrorCode.PROJECT_NOT_FOUND,
                message=f"Project directory missing for {project.id}",
                path=project_dir,
            )

        source_dir = self._store.source_directory(project.theme)
        new_theme = load_theme_json(source_dir / THEME_JSON)
        new_version = new_theme.get("version")
        if not semver.is_valid(new_version):
            raise ThemeValidationError(
                ErrorCode.THEME_VERSION_INVALID,
                message=f"Theme '{project.theme}' source has invalid version {new_version!r}",
                path=source_dir / THEME_JSON,
            )

        merged = merge_theme_settings(self._read_project_theme(project_dir), new_theme)
        merged["version"] = new_version

        plan = UpdatePlan(
            project=project,
            project_dir=project_dir,
            source_dir=source_dir,
            previous_version=project.theme_version,
            new_version=new_version,
            theme_json=merged,
        )
        self._plan_overwrites(plan)
        self._plan_menus(plan)
        self._plan_pages(plan, source_dir / TEMPLATES_DIR, project_dir / PAGES_DIR)
        return plan

    def execute_plan(
        self,
        plan: UpdatePlan,
        *,
        progress_cb: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> UpdatePlan:
        pending = plan.pending
        if plan.skipped:
            logger.debug(
                "keeping %d existing menu/page file(s) in %s", len(plan.skipped), plan.project_dir
            )
        total = sum(count_files(i.source) for i in pending if i.kind == "overwrite" and i.source)
        total += sum(1 for i in pending if i.kind != "overwrite") + 1
        copier = TreeCopier(total=total, progress_cb=progress_cb, cancel_event=cancel_event)
        written_docs = 0

        for item in pending:
            if item.kind == "overwrite" and item.source is not None:
                copier.copy_entry(item.source, item.dest)
            else:
                check_cancelled(cancel_event)
                _write_json(item.dest, item.document or {})
                written_docs += 1
                if progress_cb:
                    progress_cb(copier.copied + written_docs, total, item.dest.name)
                logger.info("added %s %s", item.kind, item.dest.name)
            item.status = "written"

        check_cancelled(cancel_event)
        _write_json(plan.project_dir / THEME_JSON, plan.theme_json)
        if progress_cb:
            progress_cb(total, total, THEME_JSON)
        return plan

    def _read_project_theme(self, project_dir: Path) -> dict[str, Any]:
        path = project_dir / THEME_JSON
        if not path.exists():
            logger.warning("project theme.json missing at %s; new settings start at defaults", path)
            return {}
        return load_theme_json(path)

    @staticmethod
    def _plan_overwrites(plan: UpdatePlan) -> None:
        sources: list[Path] = []
        for stem in UPDATABLE_FILE_STEMS:
            sources.extend(find_by_stem(plan.source_dir, stem))
        for name in UPDATABLE_DIRS:
            candidate = plan.source_dir / name
            if candidate.is_dir():
                sources.append(candidate)
            else:
                logger.debug("skipping %s - not in theme", name)
        for source in sources:
            plan.items.append(
                UpdateItem(kind="overwrite", source=source, dest=plan.project_dir / source.name)
            )

    def _plan_menus(self, plan: UpdatePlan) -> None:
        theme_menus = plan.source_dir / MENUS_DIR
        if not theme_menus.is_dir():
            return
        project_menus = plan.project_dir / MENUS_DIR
        now = utc_timestamp(self._clock())
        for menu_file in sorted(theme_menus.iterdir()):
            if not menu_file.is_file() or menu_file.suffix != ".json":
                continue
            dest = project_menus / menu_file.name
            if dest.exists():
                plan.items.append(UpdateItem(kind="menu", dest=dest, status="exists"))
                continue
            menu = _load_document(menu_file)
            document = dict(menu)
            document["id"] = menu_file.stem
            document["uuid"] = menu.get("uuid") or str(uuid.uuid4())
            document["created"] = now
            document["updated"] = now
            plan.items.append(UpdateItem(kind="menu", source=menu_file, dest=dest, document=document))

    def _plan_pages(self, plan: UpdatePlan, templates_dir: Path, pages_dir: Path) -> None:
        if not templates_dir.is_dir():
            return
        now = utc_timestamp(self._clock())
        for entry in sorted(templates_dir.iterdir()):
            if entry.is_dir():
                self._plan_pages(plan, entry, pages_dir / entry.name)
                continue
            if not entry.is_file() or entry.suffix != ".json":
                continue
            template = _load_document(entry)
            slug = template.get("slug") or entry.stem
            if not isinstance(slug, str) or not _is_safe_slug(slug):
                raise ThemeValidationError(
                    ErrorCode.THEME_STRUCTURE_INVALID,
                    message=f"Template {entry.name} has an unusable slug {slug!r}",
                    path=entry,
                )
            dest = pages_dir / f"{slug}.json"
            if dest.exists():
                plan.items.append(UpdateItem(kind="page", dest=dest, status="exists"))
                continue
            document = dict(template)
            document["id"] = slug
            document["slug"] = slug
            document["created"] = now
            document["updated"] = now
            plan.items.append(UpdateItem(kind="page", source=entry, dest=dest, document=document))


def _is_safe_slug(slug: str) -> bool:
    return bool(slug) and slug not in (".", "..") and "/" not in slug and "\\" not in slug


def _load_document(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_INVALID,
            message=f"Unable to read {path}: {exc}",
            path=path,
        ) from exc
    return parse_theme_json(content, context=str(path))


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
