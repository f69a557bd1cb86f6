"""Bundling options and the executors that run them.

Bundling transforms an asset's source before it is staged. Two executors
are available:

* :class:`ContainerImage` runs the command inside a container, with the
  source mounted at :data:`BUNDLING_INPUT_DIR` and the output directory at
  :data:`BUNDLING_OUTPUT_DIR`.
* A :class:`LocalBundling` implementation (such as :class:`ShellBundling`)
  may handle the run on the host instead. It reports whether it did, and the
  container is used when it did not.

Usage
-----
Bundle with a container image, preferring a local toolchain when present::

    options = BundlingOptions(
        image=ContainerImage("python:3.12"),
        command=("sh", "-c", "cp -r /asset-input/. /asset-output"),
        local=ShellBundling(("sh", "-c", 'cp -r "$ASSET_INPUT"/. "$ASSET_OUTPUT"')),
    )
"""

from __future__ import annotations

import dataclasses
import sys
import typing as typ
from pathlib import Path

from plumbum import local
from plumbum.commands import CommandNotFound

__all__ = [
    "BUNDLING_INPUT_DIR",
    "BUNDLING_OUTPUT_DIR",
    "BundlingOptions",
    "ContainerImage",
    "DockerVolume",
    "LocalBundling",
    "ShellBundling",
]

BUNDLING_INPUT_DIR = "/asset-input"
BUNDLING_OUTPUT_DIR = "/asset-output"


@dataclasses.dataclass(slots=True, frozen=True)
class DockerVolume:
    """A host path mounted into the bundling container."""

    host_path: str
    container_path: str
    consistency: str = "delegated"

    def as_flag(self) -> str:
        """Return the ``-v`` argument value for this volume."""
        return f"{self.host_path}:{self.container_path}:{self.consistency}"

    def as_dict(self) -> dict[str, str]:
        return {
            "host_path": self.host_path,
            "container_path": self.container_path,
            "consistency": self.consistency,
        }


@dataclasses.dataclass(slots=True, frozen=True)
class ContainerImage:
    """Container image executed through a container runtime CLI.

    Parameters
    ----------
    image : str
        Image reference passed to ``<runtime> run``.
    runtime : str, default="docker"
        Container runtime executable (``docker``, ``podman``, ...).
    """

    image: str
    runtime: str = "docker"

    def run_args(
        self,
        *,
        command: typ.Sequence[str] = (),
        user: str | None = None,
        volumes: typ.Sequence[DockerVolume] = (),
        environment: typ.Mapping[str, str] | None = None,
        working_directory: str | None = None,
    ) -> list[str]:
        """Return the runtime arguments for one bundling run.

        Examples
        --------
        >>> ContainerImage("alpine").run_args(command=["ls"], user="1000:1000")
        ['run', '--rm', '-u', '1000:1000', 'alpine', 'ls']
        """

        args = ["run", "--rm"]
        if user:
            args.extend(["-u", user])
        for volume in volumes:
            args.extend(["-v", volume.as_flag()])
        for key, value in sorted((environment or {}).items()):
            args.extend(["--env", f"{key}={value}"])
        if working_directory:
            args.extend(["-w", working_directory])
        args.append(self.image)
        args.extend(command)
        return args

    def run(self, **kwargs: typ.Any) -> None:
        """Run the container, raising when the runtime exits non-zero.

        Raises
        ------
        plumbum.commands.ProcessExecutionError
            Raised when the container exits with a non-zero status.
        plumbum.commands.CommandNotFound
            Raised when the runtime executable is not on ``PATH``.
        """

        runtime = local[self.runtime]
        output = runtime[self.run_args(**kwargs)]()
        if output:
            print(output, file=sys.stderr, end="")

    def as_dict(self) -> dict[str, str]:
        return {"image": self.image, "runtime": self.runtime}


@typ.runtime_checkable
class LocalBundling(typ.Protocol):
    """Bundle on the host instead of inside a container."""

    def try_bundle(
        self, input_dir: Path, output_dir: Path, options: BundlingOptions
    ) -> bool:
        """Write the bundle into ``output_dir``; return ``False`` to decline."""
        ...


@dataclasses.dataclass(slots=True, frozen=True)
class ShellBundling:
    """Run a host command with ``ASSET_INPUT``/``ASSET_OUTPUT`` exported.

    The command runs from the source directory. When its executable is not on
    ``PATH`` the bundler declines and the container image is used instead.
    """

    command: tuple[str, ...]

    def try_bundle(
        self, input_dir: Path, output_dir: Path, options: BundlingOptions
    ) -> bool:
        if not self.command:
            return False
        try:
            program = local.which(self.command[0])
        except CommandNotFound:
            return False

        cwd = input_dir if input_dir.is_dir() else input_dir.parent
        environment = {
            **dict(options.environment),
            "ASSET_INPUT": str(input_dir),
            "ASSET_OUTPUT": str(output_dir),
        }
        with local.cwd(str(cwd)), local.env(**environment):
            output = local[program][list(self.command[1:])]()
        if output:
            print(output, file=sys.stderr, end="")
        return True

    def as_dict(self) -> dict[str, list[str]]:
        return {"command": list(self.command)}


@dataclasses.dataclass(slots=True, frozen=True)
class BundlingOptions:
    """Describe how an asset is bundled before staging.

    Parameters
    ----------
    image : ContainerImage
        Image that runs :attr:`command`.
    command : tuple[str, ...], default=()
        Command executed in the container; an empty tuple runs the image's
        default command.
    volumes : tuple[DockerVolume, ...], default=()
        Extra mounts added after the input and output mounts.
    environment : Mapping[str, str], default={}
        Environment variables for the run.
    working_directory : str | None, optional
        Working directory inside the container; defaults to
        :data:`BUNDLING_INPUT_DIR`.
    user : str | None, optional
        ``uid:gid`` to run as; defaults to the current user.
    local : LocalBundling | None, optional
        Host bundler attempted before the container.
    """

    image: ContainerImage
    command: tuple[str, ...] = ()
    volumes: tuple[DockerVolume, ...] = ()
    environment: typ.Mapping[str, str] = dataclasses.field(default_factory=dict)
    working_directory: str | None = None
    user: str | None = None
    local: LocalBundling | None = None

    def as_dict(self) -> dict[str, typ.Any]:
        """Return the bundling identity folded into hashes and cache keys."""

        data: dict[str, typ.Any] = {
            "image": self.image.as_dict(),
            "command": list(self.command),
            "volumes": [volume.as_dict() for volume in self.volumes],
            "environment": dict(self.environment),
            "working_directory": self.working_directory,
            "user": self.user,
        }
        if self.local is not None:
            describe = getattr(self.local, "as_dict", None)
            data["local"] = describe() if describe else type(self.local).__name__
        return data
