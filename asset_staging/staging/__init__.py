"""Staging pipeline package exposing asset staging utilities."""

from .bundle import bundle, bundle_error_dir, default_user, render_asset_filename
from .output import (
    RESERVED_OUTPUT_KEYS,
    _prepare_output_data,
    _validate_no_reserved_key_collisions,
    write_github_output,
)
from .pipeline import (
    AssetStaging,
    AssetStagingProps,
    PlacementStyle,
    place_asset,
    stage_asset,
)

__all__ = [
    "RESERVED_OUTPUT_KEYS",
    "AssetStaging",
    "AssetStagingProps",
    "PlacementStyle",
    "bundle",
    "bundle_error_dir",
    "default_user",
    "place_asset",
    "render_asset_filename",
    "stage_asset",
    "write_github_output",
]
