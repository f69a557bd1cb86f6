"""Filesystem helpers: fingerprinting, filtered copies and emptiness checks."""

from __future__ import annotations

import dataclasses
import enum
import hashlib
import json
import os
import shutil
from pathlib import Path

from .errors import FilesystemError
from .glob_utils import GlobIgnore

__all__ = [
    "FingerprintOptions",
    "SymlinkFollowMode",
    "content_fingerprint",
    "copy_directory",
    "fingerprint",
    "is_empty",
]

_BUFFER_SIZE = 8 * 1024
_CTRL_SOH = b"\x01"
_CTRL_SOT = b"\x02"
_CTRL_ETX = b"\x03"


class SymlinkFollowMode(enum.Enum):
    """Which symbolic links are followed while hashing or copying."""

    NEVER = "never"
    ALWAYS = "always"
    EXTERNAL = "external"
    BLOCK_EXTERNAL = "block-external"


@dataclasses.dataclass(slots=True, frozen=True)
class FingerprintOptions:
    """Filters applied when fingerprinting and copying an asset.

    Parameters
    ----------
    exclude : tuple[str, ...], default=()
        Glob patterns excluded from the asset; ``!`` re-includes.
    follow : SymlinkFollowMode, default=SymlinkFollowMode.EXTERNAL
        Symbolic link policy.
    extra_hash : str | None, optional
        Salt mixed into the fingerprint.
    """

    exclude: tuple[str, ...] = ()
    follow: SymlinkFollowMode = SymlinkFollowMode.EXTERNAL
    extra_hash: str | None = None

    def ignore_rules(self, root: Path) -> GlobIgnore:
        """Return the exclusion rules anchored at ``root``."""
        return GlobIgnore(root, self.exclude)


def fingerprint(path: Path, options: FingerprintOptions | None = None) -> str:
    """Return a deterministic sha256 fingerprint of a file or directory.

    Parameters
    ----------
    path : Path
        File or directory to hash.
    options : FingerprintOptions | None, optional
        Exclusion, symlink and salt settings.

    Returns
    -------
    str
        Hex digest covering the option fields and every non-excluded entry
        in sorted walk order.

    Raises
    ------
    FilesystemError
        Raised when an entry is neither a file, a directory nor a symlink.
    """

    options = options or FingerprintOptions()
    path = Path(path)
    hasher = hashlib.sha256()
    _hash_field(hasher, "options.extra", options.extra_hash or "")
    _hash_field(hasher, "options.follow", options.follow.value)
    if options.exclude:
        _hash_field(hasher, "options.exclude", json.dumps(list(options.exclude)))

    is_dir = path.is_dir()
    root_dir = path if is_dir else path.parent
    rules = options.ignore_rules(path)

    def visit(symbolic: Path, real: Path, *, is_root: bool = False) -> None:
        if not is_root and rules.ignores(symbolic):
            return
        relative = "" if symbolic == path else symbolic.relative_to(path).as_posix()
        if real.is_symlink():
            link_target = os.readlink(real)
            resolved = (real.parent / link_target).resolve()
            if _should_follow(options.follow, root_dir, resolved):
                visit(symbolic, resolved)
            else:
                _hash_field(hasher, f"link:{relative}", link_target)
        elif real.is_file():
            _hash_field(hasher, f"file:{relative}", content_fingerprint(real))
        elif real.is_dir():
            for name in sorted(os.listdir(real)):
                visit(symbolic / name, real / name)
        else:
            message = f"Unable to hash {symbolic}: it is neither a file nor a directory"
            raise FilesystemError(message)

    visit(path, path, is_root=is_dir)
    return hasher.hexdigest()


def content_fingerprint(path: Path) -> str:
    """Return ``<size>:<sha256>`` for ``path`` with CRLF normalised to LF.

    Files containing a NUL byte in their first block are treated as binary
    and hashed verbatim.
    """

    hasher = hashlib.sha256()
    size = 0
    binary: bool | None = None
    pending = b""
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_BUFFER_SIZE), b""):
            if binary is None:
                binary = b"\x00" in chunk
            if not binary:
                chunk = pending + chunk
                pending = b""
                if chunk.endswith(b"\r"):
                    chunk, pending = chunk[:-1], b"\r"
                chunk = chunk.replace(b"\r\n", b"\n")
            size += len(chunk)
            hasher.update(chunk)
    if pending:
        size += len(pending)
        hasher.update(pending)
    return f"{size}:{hasher.hexdigest()}"


def copy_directory(
    source: Path,
    destination: Path,
    options: FingerprintOptions | None = None,
    root: Path | None = None,
) -> None:
    """Copy ``source`` into the existing ``destination`` honouring ``options``.

    The same exclusion rules used by :func:`fingerprint` apply, so the copy
    and the hash describe the same content.
    """

    options = options or FingerprintOptions()
    root = root or source
    if not source.is_dir():
        message = f"{source} is not a directory"
        raise FilesystemError(message)

    rules = options.ignore_rules(root)
    for name in os.listdir(source):
        source_entry = source / name
        if rules.ignores(source_entry):
            continue
        destination_entry = destination / name

        # Links that are not followed, dangling ones included, are recreated
        # as links so the copy matches the fingerprint's ``link:`` entries.
        if source_entry.is_symlink():
            link_target = os.readlink(source_entry)
            resolved = (source / link_target).resolve()
            if not _should_follow(options.follow, root, resolved):
                destination_entry.symlink_to(link_target)
                continue

        if source_entry.is_dir():
            destination_entry.mkdir()
            copy_directory(source_entry, destination_entry, options, root)
        elif source_entry.is_file():
            shutil.copyfile(source_entry, destination_entry)


def is_empty(directory: Path) -> bool:
    """Return ``True`` when ``directory`` has no entries."""

    with os.scandir(directory) as entries:
        return next(entries, None) is None


def _should_follow(mode: SymlinkFollowMode, root: Path, target: Path) -> bool:
    exists = target.exists()
    internal = target.is_relative_to(root.resolve())
    if mode is SymlinkFollowMode.ALWAYS:
        return exists
    if mode is SymlinkFollowMode.EXTERNAL:
        return exists and not internal
    if mode is SymlinkFollowMode.BLOCK_EXTERNAL:
        return exists and internal
    return False


def _hash_field(hasher: hashlib._Hash, header: str, value: str) -> None:
    hasher.update(_CTRL_SOH)
    hasher.update(header.encode("utf-8"))
    hasher.update(_CTRL_SOT)
    hasher.update(value.encode("utf-8"))
    hasher.update(_CTRL_ETX)
