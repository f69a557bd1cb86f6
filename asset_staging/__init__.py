"""Public interface for the asset staging package."""

from .bundling import (
    BUNDLING_INPUT_DIR,
    BUNDLING_OUTPUT_DIR,
    BundlingOptions,
    ContainerImage,
    DockerVolume,
    LocalBundling,
    ShellBundling,
)
from .cache import ASSET_CACHE, StagedAsset, StagingCache, clear_asset_cache
from .cache_key import calculate_cache_key, canonicalize
from .config import AssetConfig, StagingConfig, StagingSettings, load_config
from .environment import (
    EnvOutputDirectory,
    FixedOutputDirectory,
    OutputDirectoryLocator,
    require_env_path,
)
from .errors import (
    ConfigurationError,
    FilesystemError,
    StageError,
    TransformationError,
)
from .fs_utils import FingerprintOptions, SymlinkFollowMode, fingerprint
from .hash_type import AssetHashType, determine_hash_type
from .staging import AssetStaging, AssetStagingProps, stage_asset

__all__ = [
    "ASSET_CACHE",
    "BUNDLING_INPUT_DIR",
    "BUNDLING_OUTPUT_DIR",
    "AssetConfig",
    "AssetHashType",
    "AssetStaging",
    "AssetStagingProps",
    "BundlingOptions",
    "ConfigurationError",
    "ContainerImage",
    "DockerVolume",
    "EnvOutputDirectory",
    "FilesystemError",
    "FingerprintOptions",
    "FixedOutputDirectory",
    "LocalBundling",
    "OutputDirectoryLocator",
    "ShellBundling",
    "StageError",
    "StagedAsset",
    "StagingCache",
    "StagingConfig",
    "StagingSettings",
    "SymlinkFollowMode",
    "TransformationError",
    "calculate_cache_key",
    "canonicalize",
    "clear_asset_cache",
    "determine_hash_type",
    "fingerprint",
    "load_config",
    "require_env_path",
    "stage_asset",
]
