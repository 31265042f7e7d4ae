"""Service bootstrap and logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys

from widgetizer.config.settings import DataPaths
from widgetizer.core.project_store import ProjectStore
from widgetizer.themes.service import ThemeService
from widgetizer.themes.store import ThemeStore

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(paths: DataPaths, *, level: str = "INFO", stderr: bool = False) -> logging.Logger:
    logger = logging.getLogger("widgetizer")
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = RotatingFileHandler(
        paths.log_dir / "widgetizer.log",
        maxBytes=512_000,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    if stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.WARNING)
        console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger.addHandler(console)
    logger.propagate = False
    return logger


def build_service(paths: DataPaths) -> ThemeService:
    store = ThemeStore(paths.themes_dir)
    projects = ProjectStore(paths.projects_file, paths.projects_dir)
    return ThemeService(store, projects)
