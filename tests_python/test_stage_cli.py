"""Behavioural tests for the ``stage-assets`` CLI entry point."""

from __future__ import annotations

import importlib
import json
from pathlib import Path
from types import ModuleType

import pytest

from stage_test_helpers import decode_output_file, write_asset_inputs

CONFIG = """\
[common]
outdir = "cdk.out"
target = "prod"

[assets.handler]
source = "src"
exclude = ["*.pyc"]
output = "handler_path"

[assets.readme]
source = "README.md"
"""


@pytest.fixture
def stage_cli() -> ModuleType:
    """Import the CLI module."""

    return importlib.import_module("stage_assets")


@pytest.fixture
def config_file(workspace: Path) -> Path:
    """Write a configuration with a directory and a file asset."""

    write_asset_inputs(workspace)
    (workspace / "README.md").write_text("# Assets\n", encoding="utf-8")
    path = workspace / "assets.toml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def test_stage_cli_stages_and_reports(
    stage_cli: ModuleType,
    config_file: Path,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """The CLI should stage assets and emit GitHub outputs."""

    github_output = workspace / "outputs.txt"

    stage_cli.main(config_file, github_output=github_output)

    outputs = decode_output_file(github_output)
    outdir = (workspace / "cdk.out").resolve()
    assert outputs["asset_outdir"] == outdir.as_posix()
    assert outputs["staged_assets"].splitlines() == ["handler", "readme"]
    asset_map = json.loads(outputs["asset_map"])
    hash_map = json.loads(outputs["hash_map"])
    assert asset_map["readme"] == (outdir / f"asset.{hash_map['readme']}.md").as_posix()
    assert outputs["handler_path"] == asset_map["handler"]
    assert not (Path(asset_map["handler"]) / "pkg" / "util.pyc").exists()
    stderr = capsys.readouterr().err
    assert "Staged 'handler' ->" in stderr
    assert "Staged 2 asset(s)." in stderr


def test_stage_cli_stages_selected_assets(
    stage_cli: ModuleType, config_file: Path, workspace: Path
) -> None:
    """``--asset`` limits staging to the named assets."""

    github_output = workspace / "outputs.txt"

    stage_cli.main(config_file, asset=("readme",), github_output=github_output)

    outputs = decode_output_file(github_output)
    assert outputs["staged_assets"] == "readme"
    assert "handler_path" not in outputs


def test_stage_cli_uses_github_output_env(
    stage_cli: ModuleType,
    config_file: Path,
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """``GITHUB_OUTPUT`` is used when no output file is passed."""

    github_output = workspace / "env-outputs.txt"
    monkeypatch.setenv("GITHUB_OUTPUT", str(github_output))

    stage_cli.main(config_file)

    assert "asset_map" in decode_output_file(github_output)


def test_stage_cli_honours_disabled_staging(
    stage_cli: ModuleType,
    config_file: Path,
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Disabled staging reports source paths and copies nothing."""

    monkeypatch.setenv("ASSET_STAGING_DISABLED", "true")
    github_output = workspace / "outputs.txt"

    stage_cli.main(config_file, github_output=github_output)

    asset_map = json.loads(decode_output_file(github_output)["asset_map"])
    assert asset_map["readme"] == (workspace / "README.md").resolve().as_posix()
    assert not (workspace / "cdk.out").exists() or not any(
        (workspace / "cdk.out").iterdir()
    )
    assert "::warning title=Asset Skipped::" in capsys.readouterr().err


def test_stage_cli_reports_missing_config(
    stage_cli: ModuleType,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """The CLI should exit with an error when the configuration is missing."""

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(workspace / "missing.toml")

    assert exc.value.code == 1, "CLI should exit with status 1 on failure"
    assert "::error title=Staging Failure::" in capsys.readouterr().err


def test_stage_cli_reports_unknown_asset(
    stage_cli: ModuleType, config_file: Path
) -> None:
    """Unknown ``--asset`` names fail the run."""

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(config_file, asset=("ghost",))

    assert exc.value.code == 1


def test_stage_cli_requires_output_directory(
    stage_cli: ModuleType,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Without ``outdir`` or ``ASSET_OUTDIR`` staging cannot start."""

    write_asset_inputs(workspace)
    config = workspace / "assets.toml"
    config.write_text('[assets.handler]\nsource = "src"\n', encoding="utf-8")

    with pytest.raises(SystemExit):
        stage_cli.main(config)

    assert "output directory" in capsys.readouterr().err


def test_app_parses_command_line(
    stage_cli: ModuleType,
    config_file: Path,
    workspace: Path,
) -> None:
    """The cyclopts application wires arguments through to ``main``."""

    github_output = workspace / "outputs.txt"

    stage_cli.app(
        [
            str(config_file),
            "--asset",
            "readme",
            "--github-output",
            str(github_output),
        ],
        exit_on_error=False,
    )

    assert decode_output_file(github_output)["staged_assets"] == "readme"


def test_stage_cli_reports_wrongly_typed_values(
    stage_cli: ModuleType,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Non-string settings fail with an annotation rather than a traceback."""

    write_asset_inputs(workspace)
    config = workspace / "assets.toml"
    config.write_text(
        '[common]\noutdir = "cdk.out"\n[assets.handler]\nsource = "src"\n'
        "extra_hash = 5\n",
        encoding="utf-8",
    )

    with pytest.raises(SystemExit) as exc:
        stage_cli.main(config)

    assert exc.value.code == 1
    assert "::error title=Staging Failure::" in capsys.readouterr().err
