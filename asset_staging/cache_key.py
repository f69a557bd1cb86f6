"""Deterministic serialisation and cache keys for staging requests."""

from __future__ import annotations

import enum
import hashlib
import json
import typing as typ
from collections.abc import Mapping
from pathlib import PurePath

__all__ = ["calculate_cache_key", "canonical_json", "canonicalize"]


def canonicalize(value: object) -> typ.Any:
    """Return ``value`` rebuilt with every mapping's keys sorted.

    Sequences keep their order because it is meaningful; only mapping key
    order is normalised. Options objects exposing ``as_dict()``, paths and
    enum members are reduced to plain JSON values first.

    Examples
    --------
    >>> canonicalize({"b": 2, "a": {"d": 4, "c": [3, 1]}})
    {'a': {'c': [3, 1], 'd': 4}, 'b': 2}
    """

    if hasattr(value, "as_dict"):
        return canonicalize(value.as_dict())
    if isinstance(value, Mapping):
        return {str(key): canonicalize(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, PurePath):
        return value.as_posix()
    return value


def canonical_json(value: object) -> bytes:
    """Serialise ``value`` to compact JSON bytes with sorted mapping keys."""

    text = json.dumps(canonicalize(value), separators=(",", ":"))
    return text.encode("utf-8")


def calculate_cache_key(props: Mapping[str, object]) -> str:
    """Return the sha256 hex digest identifying ``props``.

    Parameters
    ----------
    props : Mapping[str, object]
        Configuration describing how an asset should be staged. Only the
        inputs of the staging decision belong here, never computed hashes.

    Examples
    --------
    >>> calculate_cache_key({"a": 1, "b": 2}) == calculate_cache_key({"b": 2, "a": 1})
    True
    """

    return hashlib.sha256(canonical_json(props)).hexdigest()
