"""Asset hash strategies and their validation rules."""

from __future__ import annotations

import enum

from .errors import ConfigurationError

__all__ = ["AssetHashType", "determine_hash_type"]


class AssetHashType(enum.Enum):
    """How the hash of a staged asset is calculated."""

    SOURCE = "source"
    """Fingerprint the raw source."""

    CUSTOM = "custom"
    """Use the caller supplied ``asset_hash`` as the seed."""

    BUNDLE = "bundle"
    """Fingerprint the bundling output."""

    OUTPUT = "output"
    """Fingerprint the bundling output, always after bundling."""

    @classmethod
    def parse(cls, name: str) -> AssetHashType:
        """Return the member named ``name`` (case-insensitive).

        Examples
        --------
        >>> AssetHashType.parse("Output")
        <AssetHashType.OUTPUT: 'output'>
        """

        normalised = name.strip().lower()
        for member in cls:
            if member.value == normalised:
                return member
        choices = ", ".join(member.value for member in cls)
        message = f"Unknown asset hash type {name!r}; expected one of: {choices}"
        raise ConfigurationError(message)


def determine_hash_type(
    asset_hash_type: AssetHashType | None, custom_fingerprint: str | None
) -> AssetHashType:
    """Resolve the effective hash type from the caller's hints.

    Parameters
    ----------
    asset_hash_type : AssetHashType | None
        Explicitly requested strategy, if any.
    custom_fingerprint : str | None
        Seed supplied through ``asset_hash``.

    Returns
    -------
    AssetHashType
        ``CUSTOM`` when a seed is given and no strategy was requested,
        otherwise ``SOURCE`` by default.

    Raises
    ------
    ConfigurationError
        Raised when a seed accompanies a strategy other than ``CUSTOM``, or
        when ``CUSTOM`` is requested without a seed.

    Examples
    --------
    >>> determine_hash_type(None, "abc")
    <AssetHashType.CUSTOM: 'custom'>
    >>> determine_hash_type(None, None)
    <AssetHashType.SOURCE: 'source'>
    """

    if custom_fingerprint:
        hash_type = asset_hash_type or AssetHashType.CUSTOM
    else:
        hash_type = asset_hash_type or AssetHashType.SOURCE

    if custom_fingerprint and hash_type is not AssetHashType.CUSTOM:
        message = (
            f"Cannot specify `{hash_type.value}` for `asset_hash_type` when "
            "`asset_hash` is specified. Use `custom` or leave it unset."
        )
        raise ConfigurationError(message)
    if hash_type is AssetHashType.CUSTOM and not custom_fingerprint:
        message = (
            "`asset_hash` must be specified when `asset_hash_type` is set to "
            "`custom`."
        )
        raise ConfigurationError(message)
    return hash_type
