"""Shared helpers for the asset staging test suites."""

from __future__ import annotations

import dataclasses
import hashlib
import typing as typ
from pathlib import Path

__all__ = [
    "RecordingBundler",
    "RecordingImage",
    "decode_output_file",
    "expected_file_fingerprint",
    "write_asset_inputs",
]


def decode_output_file(path: Path) -> dict[str, str]:
    """Parse GitHub output records written with ``write_github_output``.

    Parameters
    ----------
    path : Path
        Path to the output file containing GitHub workflow output records.

    Returns
    -------
    dict[str, str]
        Mapping of output keys to their decoded string values.
    """

    lines = path.read_text(encoding="utf-8").splitlines()
    values: dict[str, str] = {}
    index = 0
    while index < len(lines):
        line = lines[index]
        if "<<" in line:
            key, delimiter = line.split("<<", 1)
            index += 1
            buffer: list[str] = []
            while index < len(lines) and lines[index] != delimiter:
                buffer.append(lines[index])
                index += 1
            values[key] = "\n".join(buffer)
            index += 1  # Skip the delimiter terminator.
            continue
        if "=" in line:
            key, value = line.split("=", 1)
            decoded = (
                value.replace("%0A", "\n")
                .replace("%0D", "\r")
                .replace("%25", "%")
            )
            values[key] = decoded
        index += 1
    return values


def write_asset_inputs(root: Path) -> Path:
    """Populate ``root/src`` with a small asset directory and return it.

    Parameters
    ----------
    root : Path
        Workspace root directory to populate with test inputs.
    """
    source = root / "src"
    (source / "pkg").mkdir(parents=True, exist_ok=True)
    (source / "index.py").write_text("print('hello')\n", encoding="utf-8")
    (source / "pkg" / "util.py").write_text("VALUE = 1\n", encoding="utf-8")
    (source / "pkg" / "util.pyc").write_bytes(b"\x00compiled")
    return source


def expected_file_fingerprint(data: bytes, *, extra: str = "") -> str:
    """Recompute the fingerprint of a single text file holding ``data``."""

    content = f"{len(data)}:{hashlib.sha256(data).hexdigest()}"
    hasher = hashlib.sha256()
    for header, value in (
        ("options.extra", extra),
        ("options.follow", "external"),
        ("file:", content),
    ):
        hasher.update(b"\x01" + header.encode() + b"\x02" + value.encode() + b"\x03")
    return hasher.hexdigest()


class RecordingBundler:
    """In-process ``LocalBundling`` double that records every request."""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        *,
        handles: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.files = {"index.js": "bundled"} if files is None else files
        self.handles = handles
        self.error = error
        self.calls: list[tuple[Path, Path]] = []

    def try_bundle(self, input_dir: Path, output_dir: Path, options: object) -> bool:
        self.calls.append((input_dir, output_dir))
        if not self.handles:
            return False
        for name, content in self.files.items():
            (output_dir / name).write_text(content, encoding="utf-8")
        if self.error is not None:
            raise self.error
        return True


@dataclasses.dataclass
class RecordingImage:
    """Container image double writing ``files`` into the output mount."""

    image: str = "recording"
    files: dict[str, str] = dataclasses.field(
        default_factory=lambda: {"index.js": "from-container"}
    )
    runs: list[dict[str, typ.Any]] = dataclasses.field(default_factory=list)

    def run(self, **kwargs: typ.Any) -> None:
        self.runs.append(kwargs)
        output = next(
            Path(volume.host_path)
            for volume in kwargs["volumes"]
            if volume.container_path == "/asset-output"
        )
        for name, content in self.files.items():
            (output / name).write_text(content, encoding="utf-8")

    def as_dict(self) -> dict[str, str]:
        return {"image": self.image}
