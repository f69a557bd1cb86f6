"""Core asset staging pipeline.

Assets are staged under a name derived from their content hash, so staging
an unchanged asset again finds the previous output and does no work.

Usage
-----
Stage a directory into ``cdk.out``::

    from pathlib import Path

    from asset_staging import AssetStagingProps, FixedOutputDirectory, stage_asset

    staged = stage_asset(
        AssetStagingProps(source_path=Path("lambda")),
        outdir_locator=FixedOutputDirectory(Path("cdk.out")),
    )
    print(staged.staged_path, staged.asset_hash)
"""

from __future__ import annotations

import dataclasses
import hashlib
import os
import shutil
import typing as typ
from pathlib import Path

from ..cache import ASSET_CACHE, StagedAsset, StagingCache
from ..cache_key import calculate_cache_key, canonical_json
from ..errors import ConfigurationError, FilesystemError
from ..fs_utils import FingerprintOptions, copy_directory, fingerprint
from ..hash_type import AssetHashType, determine_hash_type
from .bundle import bundle, render_asset_filename

if typ.TYPE_CHECKING:
    from ..bundling import BundlingOptions
    from ..environment import OutputDirectoryLocator

__all__ = [
    "AssetStaging",
    "AssetStagingProps",
    "PlacementStyle",
    "place_asset",
    "stage_asset",
]

PlacementStyle = typ.Literal["move", "copy"]
_OUTPUT_HASH_TYPES = frozenset({AssetHashType.BUNDLE, AssetHashType.OUTPUT})


@dataclasses.dataclass(slots=True, frozen=True)
class AssetStagingProps:
    """Describe one staging request.

    Parameters
    ----------
    source_path : Path
        File or directory to stage.
    fingerprint : FingerprintOptions, optional
        Exclusion, symlink and salt settings used for hashing and copying.
    asset_hash : str | None, optional
        Custom hash seed; selects :attr:`AssetHashType.CUSTOM` by default.
    asset_hash_type : AssetHashType | None, optional
        Explicit hash strategy.
    bundling : BundlingOptions | None, optional
        Transformation run before staging.
    skip : bool, default=False
        Report the source path and hash without copying or bundling.
    node_path : str | None, optional
        Logical asset name used in messages; defaults to the source path.
    """

    source_path: Path
    fingerprint: FingerprintOptions = dataclasses.field(
        default_factory=FingerprintOptions
    )
    asset_hash: str | None = None
    asset_hash_type: AssetHashType | None = None
    bundling: BundlingOptions | None = None
    skip: bool = False
    node_path: str | None = None


class AssetStaging:
    """Stage an asset into the output directory, reusing earlier results.

    The staging work runs during construction. Requests that share a cache
    key reuse the :class:`StagedAsset` stored in ``cache``.

    Parameters
    ----------
    props : AssetStagingProps
        Staging request.
    outdir_locator : OutputDirectoryLocator
        Provides the directory receiving staged assets.
    cache : StagingCache, optional
        Memo shared between requests; defaults to :data:`ASSET_CACHE`.

    Raises
    ------
    ConfigurationError
        Raised when no output directory is configured or the hash options
        are inconsistent.
    TransformationError
        Raised when bundling fails or produces no output.
    FilesystemError
        Raised when the source is neither a file nor a directory.
    """

    def __init__(
        self,
        props: AssetStagingProps,
        *,
        outdir_locator: OutputDirectoryLocator,
        cache: StagingCache = ASSET_CACHE,
    ) -> None:
        self.source_path = Path(props.source_path).resolve()
        self.node_path = props.node_path or self.source_path.as_posix()
        self.fingerprint_options = props.fingerprint

        outdir = outdir_locator.locate()
        if not outdir:
            message = (
                "Unable to determine the asset output directory; configure one "
                f"before staging {self.node_path}"
            )
            raise ConfigurationError(message)
        self.outdir = Path(outdir)

        self.custom_fingerprint = props.asset_hash
        self.hash_type = determine_hash_type(props.asset_hash_type, props.asset_hash)
        if props.bundling is None and self.hash_type in _OUTPUT_HASH_TYPES:
            message = (
                f"Cannot use `{self.hash_type.value}` hash type when `bundling` is "
                "not specified."
            )
            raise ConfigurationError(message)

        bundling = props.bundling
        self.cache_key = calculate_cache_key(
            {
                "outdir": self.outdir.as_posix(),
                "source_path": self.source_path.as_posix(),
                "bundling": bundling,
                "asset_hash_type": self.hash_type,
                "custom_fingerprint": self.custom_fingerprint,
                "extra_hash": self.fingerprint_options.extra_hash,
                "exclude": list(self.fingerprint_options.exclude),
                "follow": self.fingerprint_options.follow,
                "skip": props.skip,
            }
        )

        if bundling is not None:
            staged = cache.obtain(
                self.cache_key, lambda: self._stage_by_bundling(bundling, props.skip)
            )
        else:
            staged = cache.obtain(
                self.cache_key, lambda: self._stage_by_copying(props.skip)
            )
        self.staged = staged
        self.staged_path = staged.staged_path
        self.asset_hash = staged.asset_hash

    def relative_staged_path(self, base_dir: Path | None) -> Path:
        """Return the staged path relative to ``base_dir``.

        Assets staged outside the output directory (for example skipped
        ones) keep their absolute path.
        """

        if base_dir is None:
            return self.staged_path
        if not self.staged_path.is_relative_to(self.outdir):
            return self.staged_path
        return Path(os.path.relpath(self.staged_path, base_dir))

    def _stage_by_copying(self, skip: bool) -> StagedAsset:
        # Skipped assets always report the plain source fingerprint.
        hash_type = AssetHashType.SOURCE if skip else self.hash_type
        asset_hash = self.calculate_hash(hash_type)
        if skip:
            staged_path = self.source_path
        else:
            extension = self.source_path.suffix if self.source_path.is_file() else ""
            staged_path = self.outdir / render_asset_filename(asset_hash, extension)

        place_asset(self.source_path, staged_path, "copy", self.fingerprint_options)
        return StagedAsset(staged_path=staged_path, asset_hash=asset_hash)

    def _stage_by_bundling(self, bundling: BundlingOptions, skip: bool) -> StagedAsset:
        if skip:
            return StagedAsset(
                staged_path=self.source_path,
                asset_hash=self.calculate_hash(AssetHashType.SOURCE),
            )

        asset_hash: str | None = None
        if self.hash_type in {AssetHashType.SOURCE, AssetHashType.CUSTOM}:
            asset_hash = self.calculate_hash(self.hash_type, bundling)

        bundle_dir = self._determine_bundle_dir(asset_hash)
        bundle(
            bundling,
            source_path=self.source_path,
            bundle_dir=bundle_dir,
            node_path=self.node_path,
        )

        if asset_hash is None:
            asset_hash = self.calculate_hash(self.hash_type, bundling, bundle_dir)
        staged_path = self.outdir / render_asset_filename(asset_hash)

        place_asset(bundle_dir, staged_path, "move", self.fingerprint_options)
        return StagedAsset(staged_path=staged_path, asset_hash=asset_hash)

    def _determine_bundle_dir(self, asset_hash: str | None) -> Path:
        if asset_hash:
            return self.outdir / render_asset_filename(asset_hash)
        # The hash depends on the output, so name the directory after the
        # request instead.
        return self.outdir / f"bundling-temp-{self.cache_key}"

    def calculate_hash(
        self,
        hash_type: AssetHashType,
        bundling: BundlingOptions | None = None,
        output_dir: Path | None = None,
    ) -> str:
        """Return the asset hash for ``hash_type``.

        ``CUSTOM`` hashes, and ``SOURCE`` hashes of bundled assets, fold the
        bundling configuration into the digest. Every other combination keeps
        the plain fingerprint so that existing hashes stay stable.

        Raises
        ------
        ConfigurationError
            Raised for ``BUNDLE``/``OUTPUT`` without a bundling output.
        """

        if hash_type is AssetHashType.CUSTOM or (
            hash_type is AssetHashType.SOURCE and bundling is not None
        ):
            hasher = hashlib.sha256()
            seed = self.custom_fingerprint or fingerprint(
                self.source_path, self.fingerprint_options
            )
            hasher.update(seed.encode("utf-8"))
            if bundling is not None:
                hasher.update(canonical_json(bundling))
            return hasher.hexdigest()

        if hash_type is AssetHashType.SOURCE:
            return fingerprint(self.source_path, self.fingerprint_options)

        if output_dir is None:
            message = (
                f"Cannot use `{hash_type.value}` hash type when `bundling` is "
                "not specified."
            )
            raise ConfigurationError(message)
        return fingerprint(output_dir, self.fingerprint_options)


def place_asset(
    source: Path,
    target: Path,
    style: PlacementStyle,
    options: FingerprintOptions | None = None,
) -> None:
    """Copy or move ``source`` to ``target`` unless ``target`` already exists.

    ``move`` treats ``source`` as disposable: it is renamed into place, or
    removed when ``target`` is already staged.
    ``copy`` builds the copy in a sibling ``<target>.tmp-<pid>`` directory and
    renames it into place, so an interrupted copy never leaves a partial
    ``target`` behind.

    Raises
    ------
    FilesystemError
        Raised when ``source`` is neither a file nor a directory.
    """

    if target.exists():
        if style == "move" and source != target and source.exists():
            _remove(source)
        return

    if style == "move":
        source.rename(target)
        return

    if not source.is_file() and not source.is_dir():
        message = f"Unknown file type: {source}"
        raise FilesystemError(message)

    target.parent.mkdir(parents=True, exist_ok=True)
    scratch = target.with_name(f"{target.name}.tmp-{os.getpid()}")
    _discard(scratch)
    try:
        if source.is_file():
            shutil.copyfile(source, scratch)
        else:
            scratch.mkdir()
            copy_directory(source, scratch, options, root=source)
        if not target.exists():
            scratch.rename(target)
    except OSError:
        # Another writer placed the target during the copy.
        if not target.exists():
            _discard(scratch)
            raise
    except BaseException:
        _discard(scratch)
        raise
    _discard(scratch)


def stage_asset(
    props: AssetStagingProps,
    *,
    outdir_locator: OutputDirectoryLocator,
    cache: StagingCache = ASSET_CACHE,
) -> StagedAsset:
    """Stage ``props`` and return the resulting :class:`StagedAsset`."""

    return AssetStaging(props, outdir_locator=outdir_locator, cache=cache).staged


def _discard(path: Path) -> None:
    if path.exists() or path.is_symlink():
        _remove(path)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
