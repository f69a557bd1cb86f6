"""Utilities for preparing and writing staging workflow outputs."""

from __future__ import annotations

import json
import typing as typ
from pathlib import Path

from ..errors import ConfigurationError

if typ.TYPE_CHECKING:
    from ..cache import StagedAsset

__all__ = [
    "RESERVED_OUTPUT_KEYS",
    "_prepare_output_data",
    "_validate_no_reserved_key_collisions",
    "write_github_output",
]


RESERVED_OUTPUT_KEYS: set[str] = {
    "asset_outdir",
    "asset_map",
    "hash_map",
    "staged_assets",
}


def _prepare_output_data(
    outdir: Path,
    staged: dict[str, StagedAsset],
    outputs: dict[str, Path],
) -> dict[str, str | list[str]]:
    """Assemble workflow outputs describing the staged assets.

    Parameters
    ----------
    outdir : Path
        Directory that receives staged assets.
    staged : dict[str, StagedAsset]
        Mapping of asset names to their staging results.
    outputs : dict[str, Path]
        Mapping of configured output keys to staged asset paths.

    Returns
    -------
    dict[str, str | list[str]]
        Dictionary describing the staging results ready to be exported to the
        GitHub Actions output file.

    Examples
    --------
    >>> from asset_staging.cache import StagedAsset
    >>> staged = {"handler": StagedAsset(Path("/out/asset.abc"), "abc")}
    >>> result = _prepare_output_data(Path("/out"), staged, {})
    >>> sorted(result)
    ['asset_map', 'asset_outdir', 'hash_map', 'staged_assets']
    """

    asset_map_json = json.dumps(
        {name: asset.staged_path.as_posix() for name, asset in sorted(staged.items())}
    )
    hash_map_json = json.dumps(
        {name: asset.asset_hash for name, asset in sorted(staged.items())}
    )

    return {
        "asset_outdir": outdir.as_posix(),
        "staged_assets": sorted(staged),
        "asset_map": asset_map_json,
        "hash_map": hash_map_json,
    } | {key: path.as_posix() for key, path in outputs.items()}


def _validate_no_reserved_key_collisions(outputs: dict[str, Path]) -> None:
    """Ensure user-defined outputs avoid the reserved workflow output keys.

    Raises
    ------
    ConfigurationError
        Raised when a user-defined output key overlaps with reserved keys.

    Examples
    --------
    >>> _validate_no_reserved_key_collisions({"asset_map": Path("/out")})
    Traceback (most recent call last):
    ConfigurationError: Asset outputs collide with reserved keys: ['asset_map']
    """

    if collisions := sorted(outputs.keys() & RESERVED_OUTPUT_KEYS):
        message = f"Asset outputs collide with reserved keys: {collisions}"
        raise ConfigurationError(message)


def write_github_output(file: Path, values: dict[str, str | list[str]]) -> None:
    """Append the staging results in ``values`` to the GitHub output ``file``.

    Lists (such as ``staged_assets``) use the multi-line protocol with one
    asset name per line; strings (staged paths and the JSON maps) are
    escaped onto a single line. Every record is rendered before the file is
    opened, so an invalid value leaves ``file`` untouched.

    Raises
    ------
    ConfigurationError
        Raised when a list item would terminate its own multi-line record.
    """

    records = [_render_record(key, value) for key, value in values.items()]
    file.parent.mkdir(parents=True, exist_ok=True)
    with file.open("a", encoding="utf-8") as handle:
        handle.writelines(records)


def _render_record(key: str, value: str | list[str]) -> str:
    """Return the output record for one key.

    Examples
    --------
    >>> _render_record("staged_assets", ["handler", "site"])
    'staged_assets<<gh_STAGED_ASSETS\\nhandler\\nsite\\ngh_STAGED_ASSETS\\n'
    >>> _render_record("handler_path", "/out/asset.abc\\n")
    'handler_path=/out/asset.abc%0A\\n'
    """

    if isinstance(value, list):
        delimiter = f"gh_{key.upper()}"
        if delimiter in value:
            message = f"Output '{key}' contains its own delimiter {delimiter!r}"
            raise ConfigurationError(message)
        body = "\n".join(value)
        return f"{key}<<{delimiter}\n{body}\n{delimiter}\n"
    escaped = value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    return f"{key}={escaped}\n"
