"""Tests for bundling options and their executors."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from asset_staging import bundling as bundling_module
from asset_staging.bundling import (
    BundlingOptions,
    ContainerImage,
    DockerVolume,
    ShellBundling,
)


class _RecordingLocal:
    """Stand-in for :data:`plumbum.local` that records invocations."""

    def __init__(self, output: str = "") -> None:
        self.output = output
        self.invocations: list[list[str]] = []

    def __getitem__(self, program: str) -> _RecordingCommand:
        return _RecordingCommand(self, [program])


class _RecordingCommand:
    def __init__(self, owner: _RecordingLocal, argv: list[str]) -> None:
        self.owner = owner
        self.argv = argv

    def __getitem__(self, args: list[str]) -> _RecordingCommand:
        return _RecordingCommand(self.owner, [*self.argv, *args])

    def __call__(self) -> str:
        self.owner.invocations.append(self.argv)
        return self.owner.output


class TestContainerImage:
    """Tests for :class:`ContainerImage`."""

    def test_run_args_include_every_option(self) -> None:
        """Mounts, sorted environment and working directory precede the image."""

        args = ContainerImage("node:20").run_args(
            command=["npm", "run", "build"],
            user="1:2",
            volumes=[DockerVolume("/src", "/asset-input")],
            environment={"B": "2", "A": "1"},
            working_directory="/asset-input",
        )

        assert args == [
            "run",
            "--rm",
            "-u",
            "1:2",
            "-v",
            "/src:/asset-input:delegated",
            "--env",
            "A=1",
            "--env",
            "B=2",
            "-w",
            "/asset-input",
            "node:20",
            "npm",
            "run",
            "build",
        ]

    def test_run_args_without_options(self) -> None:
        """An empty command runs the image's default entry point."""

        assert ContainerImage("alpine").run_args() == ["run", "--rm", "alpine"]

    def test_run_invokes_configured_runtime(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """``run`` shells out to the runtime and echoes its output to stderr."""

        fake = _RecordingLocal(output="bundle complete\n")
        monkeypatch.setattr(bundling_module, "local", fake)

        ContainerImage("alpine", runtime="podman").run(
            command=["true"], user="1000:1000"
        )

        assert fake.invocations == [
            ["podman", "run", "--rm", "-u", "1000:1000", "alpine", "true"]
        ]
        assert "bundle complete" in capsys.readouterr().err


class TestShellBundling:
    """Tests for :class:`ShellBundling`."""

    @pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")
    def test_runs_command_with_asset_variables(self, tmp_path: Path) -> None:
        """The command sees the input and output directories and options env."""

        source = tmp_path / "src"
        source.mkdir()
        (source / "index.py").write_text("print('hi')\n", encoding="utf-8")
        output = tmp_path / "out"
        output.mkdir()
        bundler = ShellBundling(
            (
                "sh",
                "-c",
                'cp "$ASSET_INPUT/index.py" "$ASSET_OUTPUT/" && '
                'printf "%s" "$GREETING" > "$ASSET_OUTPUT/greeting.txt" && '
                'pwd > "$ASSET_OUTPUT/cwd.txt"',
            )
        )
        options = BundlingOptions(
            image=ContainerImage("unused"), environment={"GREETING": "hello"}
        )

        assert bundler.try_bundle(source, output, options) is True
        assert (output / "index.py").exists()
        assert (output / "greeting.txt").read_text(encoding="utf-8") == "hello"
        cwd = (output / "cwd.txt").read_text(encoding="utf-8").strip()
        assert os.path.samefile(cwd, source)

    def test_declines_when_program_is_missing(self, tmp_path: Path) -> None:
        """Missing executables hand the work to the container image."""

        bundler = ShellBundling(("definitely-not-an-installed-bundler",))
        options = BundlingOptions(image=ContainerImage("unused"))

        assert bundler.try_bundle(tmp_path, tmp_path, options) is False

    def test_declines_empty_command(self, tmp_path: Path) -> None:
        """An empty command never runs."""

        options = BundlingOptions(image=ContainerImage("unused"))

        assert ShellBundling(()).try_bundle(tmp_path, tmp_path, options) is False

    def test_satisfies_local_bundling_protocol(self) -> None:
        """Shell bundlers plug into ``BundlingOptions.local``."""

        assert isinstance(ShellBundling(("make",)), bundling_module.LocalBundling)


class TestBundlingOptions:
    """Tests for the bundling identity used in hashes."""

    def test_as_dict_describes_every_field(self) -> None:
        """All options that affect the output appear in the identity."""

        options = BundlingOptions(
            image=ContainerImage("python:3.12"),
            command=("make",),
            volumes=(DockerVolume("/cache", "/root/.cache", "cached"),),
            environment={"MODE": "release"},
            working_directory="/work",
            user="0:0",
            local=ShellBundling(("make", "local")),
        )

        assert options.as_dict() == {
            "image": {"image": "python:3.12", "runtime": "docker"},
            "command": ["make"],
            "volumes": [
                {
                    "host_path": "/cache",
                    "container_path": "/root/.cache",
                    "consistency": "cached",
                }
            ],
            "environment": {"MODE": "release"},
            "working_directory": "/work",
            "user": "0:0",
            "local": {"command": ["make", "local"]},
        }

    def test_opaque_local_bundlers_use_their_class_name(self) -> None:
        """Local bundlers without ``as_dict`` are identified by type."""

        class Esbuild:
            def try_bundle(self, *args: object) -> bool:
                return False

        options = BundlingOptions(image=ContainerImage("node"), local=Esbuild())

        assert options.as_dict()["local"] == "Esbuild"

    def test_local_is_omitted_when_unset(self) -> None:
        """Container-only bundling keeps a stable identity."""

        assert "local" not in BundlingOptions(image=ContainerImage("node")).as_dict()


class TestDefaultUser:
    """Tests for the container user fallback."""

    def test_uses_current_ids(self, staging_bundle: object) -> None:
        """POSIX hosts report their uid and gid."""

        if not hasattr(os, "getuid"):
            pytest.skip("uid/gid are POSIX only")
        assert staging_bundle.default_user() == f"{os.getuid()}:{os.getgid()}"

    def test_falls_back_without_ids(
        self, staging_bundle: object, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Hosts without ``getuid`` use the fixed fallback user."""

        monkeypatch.delattr(os, "getuid", raising=False)

        assert staging_bundle.default_user() == "1000:1000"
