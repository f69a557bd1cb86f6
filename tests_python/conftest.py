"""Shared fixtures for the asset staging test suite."""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def asset_staging() -> object:
    """Load the asset staging package once for reuse across tests."""
    return importlib.import_module("asset_staging")


@pytest.fixture
def staging_pipeline(asset_staging: object) -> object:
    """Expose the staging pipeline module for unit-level assertions."""

    return importlib.import_module("asset_staging.staging.pipeline")


@pytest.fixture
def staging_bundle(asset_staging: object) -> object:
    """Expose the bundle lifecycle helpers for direct testing."""

    return importlib.import_module("asset_staging.staging.bundle")


@pytest.fixture
def staging_output(asset_staging: object) -> object:
    """Expose the staging output helpers for direct testing."""

    return importlib.import_module("asset_staging.staging.output")


@pytest.fixture(autouse=True)
def _isolated_asset_cache(asset_staging: object) -> None:
    """Start every test with an empty process-wide asset cache."""

    asset_staging.clear_asset_cache()


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated workspace without inherited staging switches."""
    root = tmp_path / "workspace"
    root.mkdir()
    for name in (
        "ASSET_OUTDIR",
        "ASSET_STAGING_DISABLED",
        "ASSET_BUNDLING_TARGETS",
        "GITHUB_OUTPUT",
    ):
        monkeypatch.delenv(name, raising=False)
    return root


@pytest.fixture
def outdir(workspace: Path) -> Path:
    """Return an empty output directory inside ``workspace``."""

    path = workspace / "cdk.out"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def locator(asset_staging: object, outdir: Path) -> object:
    """Return a locator pointing at ``outdir``."""

    return asset_staging.FixedOutputDirectory(outdir)


@pytest.fixture
def cache(asset_staging: object) -> object:
    """Return a fresh cache isolated from the shared instance."""

    return asset_staging.StagingCache()
