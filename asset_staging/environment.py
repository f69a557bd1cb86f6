"""Environment helpers and output directory locators."""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from pathlib import Path

from .errors import ConfigurationError, StageError

__all__ = [
    "EnvOutputDirectory",
    "FixedOutputDirectory",
    "OutputDirectoryLocator",
    "coerce_bool",
    "require_env_path",
]


def require_env_path(name: str) -> Path:
    """Return ``Path`` value for ``name`` or raise :class:`StageError`.

    Parameters
    ----------
    name:
        Name of the environment variable to fetch.

    Raises
    ------
    StageError
        Raised when the environment variable is unset or empty.
    """
    value = os.environ.get(name)
    if not value:
        message = f"Environment variable '{name}' is not set."
        raise StageError(message)
    return Path(value)


def coerce_bool(value: object) -> bool:
    """Return ``value`` as a strict boolean.

    Examples
    --------
    >>> coerce_bool(" Yes ")
    True
    >>> coerce_bool("")
    False
    """
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        message = f"Cannot interpret {value!r} as a boolean"
        raise ConfigurationError(message)
    normalised = value.strip().lower()
    if normalised in {"", "false", "0", "no", "off"}:
        return False
    if normalised in {"true", "1", "yes", "on"}:
        return True
    message = f"Cannot interpret {value!r} as a boolean"
    raise ConfigurationError(message)


@typ.runtime_checkable
class OutputDirectoryLocator(typ.Protocol):
    """Find the directory that receives staged assets."""

    def locate(self) -> Path | None:
        """Return the absolute output directory, or ``None`` when unset."""
        ...


@dataclasses.dataclass(slots=True, frozen=True)
class FixedOutputDirectory:
    """Locator returning a directory chosen up front."""

    path: Path

    def locate(self) -> Path | None:
        return self.path.resolve()


@dataclasses.dataclass(slots=True, frozen=True)
class EnvOutputDirectory:
    """Locator reading the output directory from an environment variable."""

    name: str = "ASSET_OUTDIR"

    def locate(self) -> Path | None:
        value = os.environ.get(self.name)
        return Path(value).resolve() if value else None
