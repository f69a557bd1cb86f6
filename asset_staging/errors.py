"""Error types raised by the asset staging helpers."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ConfigurationError",
    "FilesystemError",
    "StageError",
    "TransformationError",
]


class StageError(RuntimeError):
    """Raised when the staging pipeline cannot continue."""


class ConfigurationError(StageError):
    """Raised when a staging request is invalid before any work starts.

    Examples
    --------
    >>> raise ConfigurationError("`asset_hash` must be specified")
    Traceback (most recent call last):
    ConfigurationError: `asset_hash` must be specified
    """


class TransformationError(StageError):
    """Raised when bundling fails or produces no output.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    error_dir : Path | None, optional
        Directory holding the partial bundling output, when it was preserved.
    """

    def __init__(self, message: str, *, error_dir: Path | None = None) -> None:
        super().__init__(message)
        self.error_dir = error_dir


class FilesystemError(StageError):
    """Raised when a source entry is neither a file nor a directory."""
