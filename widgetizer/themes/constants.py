"""Theme tree layout constants."""

from __future__ import annotations

THEME_JSON = "theme.json"
UPDATES_DIR = "updates"
LATEST_DIR = "latest"
DELETED_DIR = "deleted"
MENUS_DIR = "menus"
TEMPLATES_DIR = "templates"
WIDGETS_DIR = "widgets"
PAGES_DIR = "pages"

# Temporary siblings of latest/ used while a snapshot is built or swapped.
BUILD_DIR_PREFIX = ".latest-build-"
RETIRED_DIR_PREFIX = ".latest-old-"

# Widget folder that holds shared partials rather than a widget.
GLOBAL_WIDGETS_DIR = "global"

REQUIRED_THEME_FIELDS: tuple[str, ...] = ("name", "version", "author")
REQUIRED_THEME_DIRS: tuple[str, ...] = ("assets", "templates", "widgets")

# Top-level entries a project receives on update, overwriting its copies.
UPDATABLE_FILE_STEMS: tuple[str, ...] = ("layout", "screenshot")
UPDATABLE_DIRS: tuple[str, ...] = ("assets", "widgets", "snippets")

IGNORED_FILE_NAMES: frozenset[str] = frozenset({".DS_Store", "Thumbs.db"})

MAX_THEME_JSON_BYTES = 1024 * 1024
