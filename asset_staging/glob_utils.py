"""Glob-based exclusion rules shared by fingerprinting and copying."""

from __future__ import annotations

import typing as typ
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

__all__ = ["GlobIgnore"]


class GlobIgnore:
    """Decide whether paths below ``root`` are excluded by ``patterns``.

    Patterns are evaluated in order. A pattern prefixed with ``!`` re-includes
    paths excluded by an earlier pattern. Patterns without a ``/`` match the
    entry's base name anywhere in the tree; other patterns match the path
    relative to ``root``.

    Examples
    --------
    >>> rules = GlobIgnore(Path("/src"), ["*.pyc", "!keep.pyc"])
    >>> rules.ignores(Path("/src/pkg/mod.pyc"))
    True
    >>> rules.ignores(Path("/src/pkg/keep.pyc"))
    False
    """

    def __init__(self, root: Path, patterns: typ.Iterable[str] = ()) -> None:
        self.root = root
        self.patterns = [pattern for pattern in patterns if pattern]

    def ignores(self, path: Path) -> bool:
        """Return ``True`` when ``path`` is excluded."""

        if not self.patterns:
            return False
        try:
            relative = path.relative_to(self.root)
        except ValueError:
            return False
        relative_text = relative.as_posix()
        if relative_text in {"", "."}:
            return False

        ignored = False
        for pattern in self.patterns:
            negated = pattern.startswith("!")
            if negated != ignored:
                continue
            body = pattern[1:] if negated else pattern
            matched = _matches(relative_text, body)
            if negated:
                ignored = not matched
            else:
                ignored = matched
        return ignored


def _matches(relative_text: str, pattern: str) -> bool:
    pattern = pattern.strip("/")
    if "/" not in pattern:
        return fnmatchcase(PurePosixPath(relative_text).name, pattern)
    return fnmatchcase(relative_text, pattern)
