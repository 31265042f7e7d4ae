"""Command line access to theme versioning.

Usage examples:
  python -m widgetizer themes
  python -m widgetizer versions arch
  python -m widgetizer build arch
  python -m widgetizer check 3f2c9a
  python -m widgetizer apply 3f2c9a
  python -m widgetizer toggle 3f2c9a off
  python -m widgetizer install ~/Downloads/arch.zip

Results are printed as JSON. Errors exit with status 1.
"""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from widgetizer.app import build_service, configure_logging
from widgetizer.config.settings import AppSettings, DataPaths
from widgetizer.errors import WidgetizerError, format_error_for_user
from widgetizer.themes.service import ThemeService


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="widgetizer", description="Theme version management")
    p.add_argument("--data-root", help="Data directory (default: saved setting or $WIDGETIZER_DATA)")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("themes", help="List installed themes")

    versions = sub.add_parser("versions", help="List a theme's versions")
    versions.add_argument("theme")

    build = sub.add_parser("build", help="Rebuild a theme's latest/ snapshot")
    build.add_argument("theme")
    build.add_argument("--if-pending", action="store_true", help="Fail unless an update is pending")

    check = sub.add_parser("check", help="Check a project for theme updates")
    check.add_argument("project")

    apply = sub.add_parser("apply", help="Apply the available theme update to a project")
    apply.add_argument("project")

    toggle = sub.add_parser("toggle", help="Turn theme updates on or off for a project")
    toggle.add_argument("project")
    toggle.add_argument("state", choices=("on", "off"))

    install = sub.add_parser("install", help="Install a theme archive (.zip)")
    install.add_argument("archive")
    return p


def _resolve_paths(args: argparse.Namespace) -> tuple[DataPaths, str]:
    if args.data_root:
        return DataPaths(Path(args.data_root).expanduser()), args.log_level or "INFO"
    settings = AppSettings()
    return settings.paths, args.log_level or settings.log_level


def _run(service: ThemeService, args: argparse.Namespace) -> Any:
    if args.command == "themes":
        return [
            {
                "id": row.theme_id,
                "name": row.name,
                "version": row.version,
                "latestVersion": row.latest_version,
                "hasPendingUpdate": row.has_pending_update,
                "widgets": row.widget_count,
            }
            for row in service.available_themes()
        ]
    if args.command == "versions":
        return service.theme_versions(args.theme)
    if args.command == "build":
        if args.if_pending:
            result = service.update_theme(args.theme)
        else:
            result = service.build_snapshot(args.theme)
        return asdict(result)
    if args.command == "check":
        return service.check_for_updates(args.project).to_dict()
    if args.command == "apply":
        return service.apply_theme_update(args.project).to_dict()
    if args.command == "toggle":
        return service.toggle_theme_updates(args.project, args.state == "on").to_dict()
    if args.command == "install":
        result = service.install_archive(Path(args.archive))
        return asdict(result)
    raise ValueError(f"unknown command {args.command}")


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    paths, level = _resolve_paths(args)
    logger = configure_logging(paths, level=level, stderr=True)
    service = build_service(paths)
    try:
        payload = _run(service, args)
    except WidgetizerError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(format_error_for_user(exc), file=sys.stderr)
        return 1
    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
