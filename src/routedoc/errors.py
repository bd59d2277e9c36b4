from __future__ import annotations

from pathlib import Path
from typing import Optional


class RouteDocError(Exception):
    """Base class for errors that abort a routedoc run."""


class ConfigError(RouteDocError):
    pass


class PersistenceError(RouteDocError):
    """The intermediate directory or one of its group files could not be written."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class IntermediateFileError(RouteDocError):
    """A persisted group file could not be parsed back into endpoint records."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path
