"""Command-line entry point for the asset staging helper.

Examples
--------
Stage every asset declared in ``assets.toml``::

    stage-assets assets.toml

Stage a single asset and export its staged path to a GitHub workflow::

    export GITHUB_OUTPUT="$(mktemp)"
    stage-assets assets.toml --asset handler
"""

from __future__ import annotations

import os
import sys
import typing as typ
from pathlib import Path

from asset_staging import StageError, StagingSettings, load_config, stage_asset
from asset_staging.staging.output import (
    _prepare_output_data,
    _validate_no_reserved_key_collisions,
    write_github_output,
)

import cyclopts
from cyclopts import Parameter

if typ.TYPE_CHECKING:
    from asset_staging import StagedAsset

app = cyclopts.App(help="Stage assets declared in a TOML configuration file.")


@app.default
def main(
    config_file: Path,
    *,
    asset: typ.Annotated[tuple[str, ...], Parameter(name="--asset")] = (),
    github_output: Path | None = None,
) -> None:
    """Stage the assets declared in ``config_file``.

    Parameters
    ----------
    config_file:
        Path to the TOML configuration file.
    asset:
        Names of the assets to stage; all assets are staged when omitted.
    github_output:
        File receiving GitHub Actions outputs. Defaults to ``GITHUB_OUTPUT``
        when that variable is set.
    """
    try:
        config = load_config(Path(config_file))
        settings = StagingSettings.from_env()
        locator = config.outdir_locator()

        staged: dict[str, StagedAsset] = {}
        outputs: dict[str, Path] = {}
        for entry in config.select(asset):
            props = entry.to_props(settings, config.target)
            if props.skip:
                print(
                    f"::warning title=Asset Skipped::Staging disabled for "
                    f"'{entry.name}'; using the source path",
                    file=sys.stderr,
                )
            result = stage_asset(props, outdir_locator=locator)
            staged[entry.name] = result
            if entry.output:
                outputs[entry.output] = result.staged_path
            print(
                f"Staged '{entry.name}' -> '{result.staged_path}'",
                file=sys.stderr,
            )

        output_file = github_output or _env_output_path()
        if output_file is not None:
            _validate_no_reserved_key_collisions(outputs)
            outdir = locator.locate() or config.workspace
            write_github_output(
                output_file, _prepare_output_data(outdir, staged, outputs)
            )
    except (FileNotFoundError, StageError) as exc:
        print(f"::error title=Staging Failure::{exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"Staged {len(staged)} asset(s).", file=sys.stderr)


def _env_output_path() -> Path | None:
    value = os.environ.get("GITHUB_OUTPUT")
    return Path(value) if value else None


if __name__ == "__main__":
    app()
