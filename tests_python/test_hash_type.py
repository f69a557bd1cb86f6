"""Tests for hash type resolution."""

from __future__ import annotations

import pytest

from asset_staging import AssetHashType, ConfigurationError, determine_hash_type


@pytest.mark.parametrize(
    ("requested", "seed", "expected"),
    [
        pytest.param(None, None, AssetHashType.SOURCE, id="default-source"),
        pytest.param(None, "seed", AssetHashType.CUSTOM, id="seed-implies-custom"),
        pytest.param(AssetHashType.CUSTOM, "seed", AssetHashType.CUSTOM, id="custom"),
        pytest.param(AssetHashType.OUTPUT, None, AssetHashType.OUTPUT, id="output"),
        pytest.param(AssetHashType.BUNDLE, None, AssetHashType.BUNDLE, id="bundle"),
    ],
)
def test_determine_hash_type_resolves(
    requested: AssetHashType | None, seed: str | None, expected: AssetHashType
) -> None:
    """Valid combinations resolve to the expected strategy."""

    assert determine_hash_type(requested, seed) is expected


def test_custom_without_seed_is_rejected() -> None:
    """``CUSTOM`` needs an ``asset_hash`` seed."""

    with pytest.raises(ConfigurationError, match="`asset_hash` must be specified"):
        determine_hash_type(AssetHashType.CUSTOM, None)


@pytest.mark.parametrize(
    "requested", [AssetHashType.SOURCE, AssetHashType.BUNDLE, AssetHashType.OUTPUT]
)
def test_seed_with_other_strategy_is_rejected(requested: AssetHashType) -> None:
    """A seed combined with a non-custom strategy is a configuration error."""

    with pytest.raises(ConfigurationError, match="Cannot specify"):
        determine_hash_type(requested, "seed")


def test_parse_accepts_any_case() -> None:
    """Configuration strings are matched case-insensitively."""

    assert AssetHashType.parse(" BUNDLE ") is AssetHashType.BUNDLE


def test_parse_rejects_unknown_names() -> None:
    """Unknown names list the accepted choices."""

    with pytest.raises(ConfigurationError) as exc:
        AssetHashType.parse("content")

    assert "source, custom, bundle, output" in str(exc.value)
