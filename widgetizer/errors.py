"""Error codes and error handling utilities for Widgetizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for theme and project operations."""

    # File system errors
    FILE_NOT_FOUND = auto()
    FILE_ACCESS_DENIED = auto()
    DISK_FULL = auto()
    PATH_INVALID = auto()

    # Theme errors
    THEME_NOT_FOUND = auto()
    THEME_JSON_MISSING = auto()
    THEME_JSON_INVALID = auto()
    THEME_STRUCTURE_INVALID = auto()
    THEME_VERSION_INVALID = auto()
    THEME_VERSION_MISMATCH = auto()
    THEME_VERSION_CONFLICT = auto()
    THEME_SETTINGS_INVALID = auto()
    THEME_NO_PENDING_UPDATES = auto()

    # Project errors
    PROJECT_NOT_FOUND = auto()
    PROJECT_RECORDS_INVALID = auto()

    # Operation errors
    OPERATION_CANCELLED = auto()
    OPERATION_FAILED = auto()


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.FILE_NOT_FOUND: "The file was not found. It may have been moved or deleted.",
    ErrorCode.FILE_ACCESS_DENIED: "Access denied. Check file and folder permissions.",
    ErrorCode.DISK_FULL: "The destination disk is full. Free up space and try again.",
    ErrorCode.PATH_INVALID: "The specified path is invalid or inaccessible.",

    ErrorCode.THEME_NOT_FOUND: "The theme is not installed.",
    ErrorCode.THEME_JSON_MISSING: "The theme is missing its theme.json file.",
    ErrorCode.THEME_JSON_INVALID: "theme.json could not be parsed.",
    ErrorCode.THEME_STRUCTURE_INVALID: "The theme folder structure is invalid.",
    ErrorCode.THEME_VERSION_INVALID: "Theme versions must use the MAJOR.MINOR.PATCH format (e.g. 1.0.0).",
    ErrorCode.THEME_VERSION_MISMATCH: "Update folder names must match the version in their theme.json.",
    ErrorCode.THEME_VERSION_CONFLICT: "This theme version conflicts with the installed theme.",
    ErrorCode.THEME_SETTINGS_INVALID: "The theme settings have an unexpected shape.",
    ErrorCode.THEME_NO_PENDING_UPDATES: "The theme has no pending updates.",

    ErrorCode.PROJECT_NOT_FOUND: "The project was not found.",
    ErrorCode.PROJECT_RECORDS_INVALID: "The projects file is corrupt or unreadable.",

    ErrorCode.OPERATION_CANCELLED: "Operation was cancelled by user.",
    ErrorCode.OPERATION_FAILED: "Operation failed. See details for more information.",
}


@dataclass
class WidgetizerError(Exception):
    """Base exception for Widgetizer with error code and context."""

    code: ErrorCode
    message: str = ""
    path: Path | None = None
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = ERROR_MESSAGES.get(self.code, "An unexpected error occurred.")
        if not self.suggestion and self.code in ERROR_MESSAGES:
            self.suggestion = ERROR_MESSAGES[self.code]

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f"\nFile: {self.path}")
        if self.details:
            details_str = " | ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"\nDetails: {details_str}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging or CLI output."""
        return {
            "code": self.code.name,
            "message": self.message,
            "path": str(self.path) if self.path else None,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ThemeValidationError(WidgetizerError):
    """Raised when a theme tree, archive or settings document fails validation."""


class NotFoundError(WidgetizerError):
    """Raised when a project or theme does not exist."""


class ConflictError(WidgetizerError):
    """Raised when incoming theme content conflicts with what is installed."""


class OperationCancelledError(WidgetizerError):
    """Raised when a long-running copy is cancelled."""


def classify_exception(exc: Exception, path: Path | None = None) -> WidgetizerError:
    """Classify a generic exception into a WidgetizerError with appropriate code."""
    if isinstance(exc, WidgetizerError):
        return exc
    exc_name = type(exc).__name__
    exc_str = str(exc).lower()

    if isinstance(exc, FileNotFoundError) or "no such file" in exc_str:
        return WidgetizerError(ErrorCode.FILE_NOT_FOUND, path=path, details={"original": exc_str})
    if isinstance(exc, PermissionError) or "access is denied" in exc_str or "permission denied" in exc_str:
        return WidgetizerError(ErrorCode.FILE_ACCESS_DENIED, path=path, details={"original": exc_str})
    if "disk full" in exc_str or "no space left" in exc_str:
        return WidgetizerError(ErrorCode.DISK_FULL, path=path, details={"original": exc_str})
    if isinstance(exc, (NotADirectoryError, IsADirectoryError)):
        return WidgetizerError(ErrorCode.PATH_INVALID, path=path, details={"original": exc_str})

    return WidgetizerError(
        ErrorCode.OPERATION_FAILED,
        message=f"{exc_name}: {exc}",
        path=path,
        details={"original": exc_str},
    )


def format_error_for_user(error: WidgetizerError | Exception) -> str:
    """Format an error for display to the user with actionable suggestions."""
    if isinstance(error, WidgetizerError):
        parts = [error.message]
        if error.suggestion and error.suggestion != error.message:
            parts.append(f"\n\n{error.suggestion}")
        if error.path:
            parts.append(f"\n\nFile: {error.path}")
        return "".join(parts)

    classified = classify_exception(error)
    return format_error_for_user(classified)
