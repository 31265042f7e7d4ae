"""theme.json parsing and validation rules shared by the store, builder and ingestion."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from widgetizer.core import semver
from widgetizer.errors import ErrorCode, ThemeValidationError
from widgetizer.themes.constants import MAX_THEME_JSON_BYTES, REQUIRED_THEME_FIELDS


def load_theme_json(path: Path, *, max_bytes: int = MAX_THEME_JSON_BYTES) -> dict[str, Any]:
    """Read and parse a theme.json file into a dict."""
    if not path.is_file():
        raise ThemeValidationError(ErrorCode.THEME_JSON_MISSING, path=path)
    content = _read_text_limited(path, max_bytes=max_bytes)
    return parse_theme_json(content, context=str(path))


def parse_theme_json(content: str | bytes, *, context: str) -> dict[str, Any]:
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_INVALID,
            message=f"Invalid JSON in {context}: {exc}",
        ) from exc
    if not isinstance(data, dict):
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_INVALID,
            message=f"Expected JSON object in {context}",
        )
    return data


def read_version(path: Path) -> str | None:
    """Return the ``version`` field of a theme.json, or None if it cannot be read."""
    try:
        data = load_theme_json(path)
    except ThemeValidationError:
        return None
    version = data.get("version")
    return version if isinstance(version, str) else None


def validate_theme_metadata(data: Mapping[str, Any], *, context: str) -> str:
    """Check the fields every installable theme.json carries; returns its version."""
    missing = [key for key in REQUIRED_THEME_FIELDS if not data.get(key)]
    if missing:
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_INVALID,
            message=f"{context}: missing required fields: {', '.join(missing)}",
        )
    version = data["version"]
    if not semver.is_valid(version):
        raise ThemeValidationError(
            ErrorCode.THEME_VERSION_INVALID,
            message=f'{context}: invalid version format "{version}". '
            "Must be a semantic version (e.g. 1.0.0)",
        )
    return version


def update_folder_problem(folder: str, theme_json_content: str | bytes | None) -> str | None:
    """Describe why an ``updates/<folder>/`` is unusable, or return None when it is fine.

    The folder must be named with a valid version and carry a theme.json whose
    ``version`` equals that name.
    """
    if not semver.is_valid(folder):
        return f"folder '{folder}' is not a valid version"
    if theme_json_content is None:
        return f"folder '{folder}' is missing theme.json"
    try:
        data = parse_theme_json(theme_json_content, context=f"{folder}/theme.json")
    except ThemeValidationError:
        return f"folder '{folder}' has invalid theme.json"
    declared = data.get("version")
    if declared != folder:
        return f"folder '{folder}' has theme.json version '{declared}'"
    return None


def raise_for_update_problems(theme_id: str, problems: list[str]) -> None:
    """Raise one error listing every broken update folder."""
    if not problems:
        return
    mismatch_only = all("theme.json version" in problem for problem in problems)
    raise ThemeValidationError(
        ErrorCode.THEME_VERSION_MISMATCH if mismatch_only else ErrorCode.THEME_STRUCTURE_INVALID,
        message=(
            f"Theme '{theme_id}' has invalid update folders: {'; '.join(problems)}. "
            "Each update folder must contain a theme.json whose version matches the folder name."
        ),
        details={"theme": theme_id, "problems": len(problems)},
    )


def find_by_stem(directory: Path, stem: str) -> list[Path]:
    """Return top-level files named ``<stem>.<ext>`` in *directory*."""
    if not directory.is_dir():
        return []
    return sorted(
        child for child in directory.iterdir()
        if child.is_file() and child.stem == stem and child.suffix
    )


def _read_text_limited(path: Path, *, max_bytes: int) -> str:
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_MISSING,
            message=f"Unable to stat {path}: {exc}",
            path=path,
        ) from exc
    if size > max_bytes:
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_INVALID,
            message=f"{path}: file exceeds max size ({max_bytes} bytes)",
            path=path,
        )
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ThemeValidationError(
            ErrorCode.THEME_JSON_INVALID,
            message=f"Unable to read {path}: {exc}",
            path=path,
        ) from exc
