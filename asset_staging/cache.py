"""Process-wide memoisation of staged assets."""

from __future__ import annotations

import dataclasses
import threading
import typing as typ
from pathlib import Path

__all__ = ["ASSET_CACHE", "StagedAsset", "StagingCache", "clear_asset_cache"]


@dataclasses.dataclass(slots=True, frozen=True)
class StagedAsset:
    """Outcome of staging a single asset."""

    staged_path: Path
    asset_hash: str


class StagingCache:
    """Map cache keys to staged assets, computing each key at most once.

    A failing computation is not stored, so a later request for the same key
    runs again. Concurrent callers for one key wait for the first computation
    and share its result.

    Examples
    --------
    >>> cache = StagingCache()
    >>> asset = StagedAsset(Path("/out/asset.abc"), "abc")
    >>> cache.obtain("key", lambda: asset) is cache.obtain("key", lambda: None)
    True
    """

    def __init__(self) -> None:
        self._entries: dict[str, StagedAsset] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def obtain(
        self, cache_key: str, compute: typ.Callable[[], StagedAsset]
    ) -> StagedAsset:
        """Return the cached value for ``cache_key`` or store ``compute()``."""

        if (cached := self._entries.get(cache_key)) is not None:
            return cached

        with self._guard:
            lock = self._key_locks.setdefault(cache_key, threading.Lock())

        with lock:
            if (cached := self._entries.get(cache_key)) is not None:
                return cached
            staged = compute()
            self._entries[cache_key] = staged
            return staged

    def clear(self) -> None:
        """Forget every cached entry.

        Per-key locks are kept, so a computation still running when the
        cache is cleared keeps excluding new callers for the same key.
        """

        with self._guard:
            self._entries.clear()


ASSET_CACHE = StagingCache()


def clear_asset_cache() -> None:
    """Clear the shared :data:`ASSET_CACHE` (used for test isolation)."""

    ASSET_CACHE.clear()
