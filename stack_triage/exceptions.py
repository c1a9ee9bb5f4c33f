"""Custom exception hierarchy for the stack triage helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class StackTriageError(Exception):
    """Base class for all stack triage related errors."""


class MalformedArgumentError(StackTriageError):
    """Raised when a call line carries an argument that is not an integer."""

    def __init__(self, line: str, token: str) -> None:
        super().__init__(f"failed to parse argument {token!r} on line: {line!r}")
        self.line = line
        self.token = token


class ConfigError(StackTriageError):
    """Raised when a configuration file cannot be interpreted."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


__all__ = ["StackTriageError", "MalformedArgumentError", "ConfigError"]
