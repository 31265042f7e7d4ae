"""Tests for version queries over installed theme trees."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import add_update, make_theme, theme_json, write_json
from widgetizer.errors import NotFoundError
from widgetizer.themes.store import ThemeStore


def test_list_versions_base_only(store: ThemeStore, themes_root: Path) -> None:
    make_theme(themes_root)
    assert store.list_versions("arch") == ["1.0.0"]
    assert store.has_updates("arch") is False
    assert store.latest_version("arch") == "1.0.0"


def test_list_versions_sorted_numerically(store: ThemeStore, themes_root: Path) -> None:
    theme_dir = make_theme(themes_root)
    for version in ("1.10.0", "1.2.0", "1.9.0"):
        add_update(theme_dir, version)
    assert store.list_versions("arch") == ["1.0.0", "1.2.0", "1.9.0", "1.10.0"]
    assert store.latest_version("arch") == "1.10.0"


def test_list_versions_ignores_invalid_folders_and_duplicates(store: ThemeStore, themes_root: Path) -> None:
    theme_dir = make_theme(themes_root)
    add_update(theme_dir, "1.1.0")
    (theme_dir / "updates" / "draft").mkdir()
    (theme_dir / "updates" / "v1.2.0").mkdir()
    (theme_dir / "updates" / "1.0.0").mkdir()
    (theme_dir / "updates" / "notes.txt").write_text("x", encoding="utf-8")
    assert store.list_versions("arch") == ["1.0.0", "1.1.0"]


def test_unreadable_base_is_not_an_error(store: ThemeStore, themes_root: Path) -> None:
    theme_dir = make_theme(themes_root)
    (theme_dir / "theme.json").write_text("{not json", encoding="utf-8")
    add_update(theme_dir, "1.1.0")
    assert store.list_versions("arch") == ["1.1.0"]


def test_source_directory_requires_latest_theme_json(store: ThemeStore, themes_root: Path) -> None:
    theme_dir = make_theme(themes_root)
    (theme_dir / "latest").mkdir()
    assert store.source_directory("arch") == theme_dir

    write_json(theme_dir / "latest" / "theme.json", theme_json("1.1.0"))
    assert store.source_directory("arch") == theme_dir / "latest"
    assert store.source_version("arch") == "1.1.0"


class TestPendingUpdates:
    def test_no_updates_means_nothing_pending(self, store: ThemeStore, themes_root: Path) -> None:
        make_theme(themes_root)
        assert store.has_pending_updates("arch") is False

    def test_update_without_snapshot_is_pending(self, store: ThemeStore, themes_root: Path) -> None:
        add_update(make_theme(themes_root), "1.1.0")
        assert store.has_pending_updates("arch") is True
        assert store.pending_update_count() == 1

    def test_current_snapshot_is_not_pending(self, store: ThemeStore, themes_root: Path) -> None:
        theme_dir = make_theme(themes_root)
        add_update(theme_dir, "1.1.0")
        write_json(theme_dir / "latest" / "theme.json", theme_json("1.1.0"))
        assert store.has_pending_updates("arch") is False
        assert store.pending_update_count() == 0


def test_list_themes_summaries(store: ThemeStore, themes_root: Path) -> None:
    theme_dir = make_theme(themes_root)
    add_update(theme_dir, "1.1.0")
    other = make_theme(themes_root, "basic")
    write_json(other / "theme.json", theme_json("2.0.0", name="Basic"))
    (themes_root / ".upload-tmp").mkdir()
    (themes_root / "broken").mkdir()

    rows = store.list_themes()
    assert [row.theme_id for row in rows] == ["arch", "basic"]
    arch = rows[0]
    assert arch.version == "1.0.0"
    assert arch.versions == ("1.0.0", "1.1.0")
    assert arch.latest_version == "1.1.0"
    assert arch.has_pending_update is True
    assert arch.widget_count == 2
    assert arch.author == "Widgetizer"


def test_read_theme_json_by_version(store: ThemeStore, themes_root: Path) -> None:
    theme_dir = make_theme(themes_root)
    add_update(theme_dir, "1.1.0")
    assert store.read_theme_json("arch")["version"] == "1.0.0"
    assert store.read_theme_json("arch", "1.0.0")["version"] == "1.0.0"
    assert store.read_theme_json("arch", "1.1.0")["version"] == "1.1.0"
    with pytest.raises(NotFoundError):
        store.read_theme_json("arch", "9.9.9")


@pytest.mark.parametrize("theme_id", ["", "..", "a/b", "missing"])
def test_require_theme_rejects_unknown_ids(store: ThemeStore, themes_root: Path, theme_id: str) -> None:
    make_theme(themes_root)
    assert store.theme_exists(theme_id) is False
    with pytest.raises(NotFoundError):
        store.require_theme(theme_id)
