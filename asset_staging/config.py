"""Configuration models and loader for the asset staging helper.

This module reads TOML staging configurations describing the assets to
stage, their hash settings and optional bundling, and the environment
switches that disable staging or bundling.

Usage
-----
Load the assets declared in ``assets.toml``::

    from pathlib import Path
    from asset_staging.config import StagingSettings, load_config

    config = load_config(Path("assets.toml"))
    settings = StagingSettings.from_env()
    for asset in config.assets:
        props = asset.to_props(settings, config.target)
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from fnmatch import fnmatchcase
from pathlib import Path

import tomllib

from .bundling import BundlingOptions, ContainerImage, DockerVolume, ShellBundling
from .environment import (
    EnvOutputDirectory,
    FixedOutputDirectory,
    OutputDirectoryLocator,
    coerce_bool,
)
from .errors import ConfigurationError
from .fs_utils import FingerprintOptions, SymlinkFollowMode
from .hash_type import AssetHashType
from .staging.pipeline import AssetStagingProps

__all__ = [
    "AssetConfig",
    "StagingConfig",
    "StagingSettings",
    "load_config",
]

DISABLE_STAGING_ENV = "ASSET_STAGING_DISABLED"
BUNDLING_TARGETS_ENV = "ASSET_BUNDLING_TARGETS"


@dataclasses.dataclass(slots=True, frozen=True)
class StagingSettings:
    """Global switches read from the environment.

    Parameters
    ----------
    staging_disabled : bool, default=False
        Skip copying assets into the output directory.
    bundling_targets : tuple[str, ...], default=("*",)
        Glob patterns naming the targets that bundle; other targets skip
        bundling.

    Examples
    --------
    >>> StagingSettings(bundling_targets=("prod-*",)).skip_for("dev", bundling=True)
    True
    """

    staging_disabled: bool = False
    bundling_targets: tuple[str, ...] = ("*",)

    @classmethod
    def from_env(
        cls, environ: typ.Mapping[str, str] | None = None
    ) -> StagingSettings:
        """Build settings from ``environ`` (defaults to :data:`os.environ`)."""

        environ = os.environ if environ is None else environ
        disabled = coerce_bool(environ.get(DISABLE_STAGING_ENV, ""))
        raw_targets = environ.get(BUNDLING_TARGETS_ENV, "*")
        targets = tuple(
            pattern.strip() for pattern in raw_targets.split(",") if pattern.strip()
        )
        return cls(staging_disabled=disabled, bundling_targets=targets)

    def skip_for(self, target: str, *, bundling: bool) -> bool:
        """Return ``True`` when work for ``target`` should be skipped."""

        if bundling:
            return not any(
                fnmatchcase(target, pattern) for pattern in self.bundling_targets
            )
        return self.staging_disabled


@dataclasses.dataclass(slots=True)
class AssetConfig:
    """Describe a single asset declared in the configuration file.

    Parameters
    ----------
    name : str
        Key of the ``[assets.*]`` table.
    source : Path
        Absolute path of the asset source.
    fingerprint : FingerprintOptions
        Exclusion, symlink and salt settings.
    asset_hash : str | None, optional
        Custom hash seed.
    asset_hash_type : AssetHashType | None, optional
        Explicit hash strategy.
    bundling : BundlingOptions | None, optional
        Bundling configuration.
    output : str | None, optional
        Workflow output key receiving the staged path.
    """

    name: str
    source: Path
    fingerprint: FingerprintOptions = dataclasses.field(
        default_factory=FingerprintOptions
    )
    asset_hash: str | None = None
    asset_hash_type: AssetHashType | None = None
    bundling: BundlingOptions | None = None
    output: str | None = None

    def to_props(self, settings: StagingSettings, target: str) -> AssetStagingProps:
        """Return the staging request for this asset under ``settings``."""

        return AssetStagingProps(
            source_path=self.source,
            fingerprint=self.fingerprint,
            asset_hash=self.asset_hash,
            asset_hash_type=self.asset_hash_type,
            bundling=self.bundling,
            skip=settings.skip_for(target, bundling=self.bundling is not None),
            node_path=f"{target}/{self.name}",
        )


@dataclasses.dataclass(slots=True)
class StagingConfig:
    """Concrete configuration produced by :func:`load_config`.

    Parameters
    ----------
    workspace : Path
        Directory containing the configuration file; relative paths resolve
        against it.
    target : str
        Logical deployment target the assets are staged for.
    assets : list[AssetConfig]
        Assets declared in the file, in declaration order.
    outdir : Path | None, optional
        Output directory; when unset it is read from ``ASSET_OUTDIR``.
    """

    workspace: Path
    target: str
    assets: list[AssetConfig]
    outdir: Path | None = None

    def outdir_locator(self) -> OutputDirectoryLocator:
        """Return the locator for the configured output directory."""
        if self.outdir is not None:
            return FixedOutputDirectory(self.outdir)
        return EnvOutputDirectory()

    def select(self, names: typ.Sequence[str]) -> list[AssetConfig]:
        """Return the assets named in ``names`` (all assets when empty)."""

        if not names:
            return list(self.assets)
        known = {asset.name: asset for asset in self.assets}
        if missing := sorted(set(names) - known.keys()):
            message = f"Unknown asset(s): {', '.join(missing)}"
            raise ConfigurationError(message)
        return [known[name] for name in names]


def load_config(config_file: Path) -> StagingConfig:
    """Load the staging configuration stored in ``config_file``.

    Parameters
    ----------
    config_file : Path
        Path to the TOML configuration file.

    Returns
    -------
    StagingConfig
        Configuration with paths resolved against the file's directory.

    Raises
    ------
    FileNotFoundError
        Raised when the configuration file is absent at ``config_file``.
    ConfigurationError
        Raised when required configuration keys are missing or invalid.
    """
    config_file = Path(config_file)
    if not config_file.is_file():
        message = f"Configuration file not found at {config_file}"
        raise FileNotFoundError(message)

    data = _load_toml(config_file)
    workspace = config_file.resolve().parent
    common = data.get("common", {})
    assets_table = data.get("assets", {})
    if not isinstance(common, dict) or not isinstance(assets_table, dict):
        message = f"[common] and [assets] must be tables in {config_file}"
        raise ConfigurationError(message)
    if not assets_table:
        message = f"No assets configured to stage in {config_file}"
        raise ConfigurationError(message)

    outdir = common.get("outdir")
    return StagingConfig(
        workspace=workspace,
        target=str(common.get("target", "default")),
        assets=[
            _make_asset(name, entry, workspace, config_file)
            for name, entry in assets_table.items()
        ],
        outdir=(workspace / outdir).resolve() if outdir else None,
    )


def _load_toml(path: Path) -> dict[str, typ.Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        message = f"Invalid TOML in {path}: {exc}"
        raise ConfigurationError(message) from exc


def _make_asset(
    name: str, entry: object, workspace: Path, config_path: Path
) -> AssetConfig:
    label = f"assets.{name}"
    if not isinstance(entry, dict):
        message = f"[{label}] must be a table in {config_path}"
        raise ConfigurationError(message)
    _require_keys(entry, {"source"}, label, config_path)

    hash_type = _optional_string(entry, "asset_hash_type", label, config_path)
    bundling = entry.get("bundling")
    return AssetConfig(
        name=name,
        source=(workspace / _string(entry, "source", label, config_path)).resolve(),
        fingerprint=FingerprintOptions(
            exclude=tuple(_string_list(entry.get("exclude"), "exclude", label, config_path)),
            follow=_follow_mode(entry.get("follow"), label, config_path),
            extra_hash=_optional_string(entry, "extra_hash", label, config_path),
        ),
        asset_hash=_optional_string(entry, "asset_hash", label, config_path),
        asset_hash_type=AssetHashType.parse(hash_type) if hash_type else None,
        bundling=(
            _make_bundling(bundling, f"{label}.bundling", config_path)
            if bundling is not None
            else None
        ),
        output=_optional_string(entry, "output", label, config_path),
    )


def _make_bundling(
    entry: object, label: str, config_path: Path
) -> BundlingOptions:
    if not isinstance(entry, dict):
        message = f"[{label}] must be a table in {config_path}"
        raise ConfigurationError(message)
    _require_keys(entry, {"image"}, label, config_path)

    environment = entry.get("environment", {})
    if not isinstance(environment, dict):
        message = f"'environment' in [{label}] must be a table ({config_path})"
        raise ConfigurationError(message)

    local_command = _string_list(
        entry.get("local_command"), "local_command", label, config_path
    )
    return BundlingOptions(
        image=ContainerImage(
            image=_string(entry, "image", label, config_path),
            runtime=_optional_string(entry, "runtime", label, config_path) or "docker",
        ),
        command=tuple(_string_list(entry.get("command"), "command", label, config_path)),
        volumes=tuple(_make_volumes(entry.get("volumes", []), label, config_path)),
        environment={str(key): str(value) for key, value in environment.items()},
        working_directory=_optional_string(
            entry, "working_directory", label, config_path
        ),
        user=_optional_string(entry, "user", label, config_path),
        local=ShellBundling(tuple(local_command)) if local_command else None,
    )


def _make_volumes(
    value: object, label: str, config_path: Path
) -> list[DockerVolume]:
    if not isinstance(value, list):
        message = f"'volumes' in [{label}] must be a list ({config_path})"
        raise ConfigurationError(message)
    volumes: list[DockerVolume] = []
    for index, item in enumerate(value, start=1):
        if not isinstance(item, dict):
            message = (
                "Volume entries must be tables of key/value pairs "
                f"(entry #{index} in [{label}] of {config_path})"
            )
            raise ConfigurationError(message)
        _require_keys(item, {"host_path", "container_path"}, label, config_path)
        volumes.append(
            DockerVolume(
                host_path=str(item["host_path"]),
                container_path=str(item["container_path"]),
                consistency=str(item.get("consistency", "delegated")),
            )
        )
    return volumes


def _follow_mode(
    value: object, label: str, config_path: Path
) -> SymlinkFollowMode:
    if value is None:
        return SymlinkFollowMode.EXTERNAL
    try:
        return SymlinkFollowMode(str(value).lower())
    except ValueError as exc:
        message = f"Unknown 'follow' mode {value!r} in [{label}] of {config_path}"
        raise ConfigurationError(message) from exc


def _string(
    section: dict[str, typ.Any], key: str, label: str, config_path: Path
) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value:
        message = f"'{key}' in [{label}] must be a non-empty string ({config_path})"
        raise ConfigurationError(message)
    return value


def _optional_string(
    section: dict[str, typ.Any], key: str, label: str, config_path: Path
) -> str | None:
    """Return ``section[key]`` when present, rejecting non-string values."""

    if key not in section:
        return None
    return _string(section, key, label, config_path)


def _string_list(
    value: object, key: str, label: str, config_path: Path
) -> list[str]:
    """Return ``value`` as a list of strings (a bare string becomes one item)."""

    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        message = f"'{key}' in [{label}] must be a list of strings ({config_path})"
        raise ConfigurationError(message)
    return list(value)


def _require_keys(
    section: dict[str, typ.Any], keys: set[str], label: str, config_path: Path
) -> None:
    """Ensure ``section`` defines ``keys``.

    Examples
    --------
    >>> _require_keys(  # doctest: +SKIP
    ...     {'source': 'lambda'},
    ...     {'source'},
    ...     'assets.handler',
    ...     Path('assets.toml'),
    ... )
    """
    if missing := sorted(key for key in keys if key not in section):
        joined = ", ".join(missing)
        message = (
            "Missing required key(s) "
            f"{joined} in [{label}] section of {config_path}"
        )
        raise ConfigurationError(message)
