"""Bundle directory lifecycle: creation, execution and failure recovery."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

from ..bundling import (
    BUNDLING_INPUT_DIR,
    BUNDLING_OUTPUT_DIR,
    BundlingOptions,
    DockerVolume,
)
from ..errors import TransformationError
from ..fs_utils import is_empty

__all__ = [
    "FALLBACK_USER",
    "bundle",
    "bundle_error_dir",
    "default_user",
    "render_asset_filename",
]

FALLBACK_USER = "1000:1000"


def render_asset_filename(asset_hash: str, extension: str = "") -> str:
    """Return the staged file name for ``asset_hash``.

    Examples
    --------
    >>> render_asset_filename("abc", ".zip")
    'asset.abc.zip'
    """

    return f"asset.{asset_hash}{extension}"


def bundle_error_dir(bundle_dir: Path) -> Path:
    """Return the sibling directory that keeps failed bundling output."""

    return bundle_dir.with_name(f"{bundle_dir.name}-error")


def default_user() -> str:
    """Return ``uid:gid`` for the current user, or :data:`FALLBACK_USER`."""

    getuid = getattr(os, "getuid", None)
    getgid = getattr(os, "getgid", None)
    if getuid is None or getgid is None:
        return FALLBACK_USER
    return f"{getuid()}:{getgid()}"


def bundle(
    options: BundlingOptions,
    *,
    source_path: Path,
    bundle_dir: Path,
    node_path: str,
) -> None:
    """Run ``options`` so that the bundle ends up in ``bundle_dir``.

    An existing ``bundle_dir`` is taken as a finished bundle and left alone.

    Parameters
    ----------
    options : BundlingOptions
        Bundling configuration to execute.
    source_path : Path
        Asset source mounted at :data:`BUNDLING_INPUT_DIR`.
    bundle_dir : Path
        Directory receiving the output, mounted at :data:`BUNDLING_OUTPUT_DIR`.
    node_path : str
        Logical asset name used in messages.

    Raises
    ------
    TransformationError
        Raised when bundling fails, after moving the partial output to
        ``<bundle_dir>-error``, or when bundling produced no output.
    """

    if bundle_dir.exists():
        return

    bundle_dir.mkdir(parents=True, exist_ok=True)
    bundle_dir.chmod(0o777)

    user = options.user or default_user()
    volumes = [
        DockerVolume(str(source_path), BUNDLING_INPUT_DIR),
        DockerVolume(str(bundle_dir), BUNDLING_OUTPUT_DIR),
        *options.volumes,
    ]

    bundled_locally = False
    try:
        print(f"Bundling asset {node_path}...", file=sys.stderr)
        if options.local is not None:
            bundled_locally = options.local.try_bundle(source_path, bundle_dir, options)
        if not bundled_locally:
            options.image.run(
                command=options.command,
                user=user,
                volumes=volumes,
                environment=options.environment,
                working_directory=options.working_directory or BUNDLING_INPUT_DIR,
            )
    except Exception as exc:
        error_dir = _preserve_failed_bundle(bundle_dir)
        message = (
            f"Failed to bundle asset {node_path}, bundle output is located at "
            f"{error_dir}: {exc}"
        )
        raise TransformationError(message, error_dir=error_dir) from exc

    if is_empty(bundle_dir):
        output_dir = bundle_dir if bundled_locally else BUNDLING_OUTPUT_DIR
        bundle_dir.rmdir()
        message = (
            "Bundling did not produce any output. Check that content is "
            f"written to {output_dir}."
        )
        raise TransformationError(message)


def _preserve_failed_bundle(bundle_dir: Path) -> Path:
    """Rename ``bundle_dir`` out of the way so the next run starts afresh."""

    error_dir = bundle_error_dir(bundle_dir)
    if error_dir.exists():
        shutil.rmtree(error_dir)
    bundle_dir.rename(error_dir)
    return error_dir
