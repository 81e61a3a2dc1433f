"""
Trellis Command-Line Interface.

Provides the ``trellis`` entry point:

- ``trellis init-config`` — write a bundle configuration YAML with defaults
- ``trellis inspect``     — show the manifest of a stage archive
- ``trellis attach-path`` — record a save root in a params metadata document

Usage:
    trellis init-config bundle.yaml
    trellis inspect models/run_1/linearstage_4f2a9c
    trellis attach-path params.json --path models/run_1 --as-portable
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer

app = typer.Typer(
    name="trellis",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


# ── App callback ────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from trellis import __version__

        typer.echo(f"trellis-ml {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    _: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Trellis: stage parameters backed by native and portable archives."""
    ...  # pragma: no cover


# ── Commands ────────────────────────────────────────────────────────────────


@app.command("init-config")
def init_config(
    output: Annotated[
        Path,
        typer.Argument(help="Output YAML file path."),
    ] = Path("bundle.yaml"),
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing file."),
    ] = False,
) -> None:
    """Generate a bundle configuration with all fields and defaults."""
    from trellis.core import BundleConfig, save_config_as_yaml

    if output.exists() and not force:
        typer.echo(f"Error: '{output}' already exists. Use --force to overwrite.", err=True)
        raise typer.Exit(code=1)

    save_config_as_yaml({"bundle": BundleConfig().model_dump(mode="json")}, output)
    typer.echo(f"Config created: {output}")


@app.command()
def inspect(
    archive: Annotated[
        Path,
        typer.Argument(help="Stage archive: a bundle file or a native stage directory."),
    ],
) -> None:
    """Print the manifest recorded in a stage archive."""
    from trellis.bundle import BundleFile
    from trellis.core.paths import BUNDLE_MANIFEST, NATIVE_METADATA_FILE
    from trellis.stages import read_native_metadata

    if BundleFile.is_bundle(archive):
        with BundleFile(archive, mode="r") as bundle:
            payload: dict[str, Any] = {"kind": "bundle", **bundle.read_json(BUNDLE_MANIFEST)}
            payload["entries"] = bundle.names()
    elif (archive / NATIVE_METADATA_FILE).exists():
        payload = {"kind": "native", **read_native_metadata(archive)}
    else:
        typer.echo(f"Error: no stage archive found at: {archive}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(payload, indent=2))


@app.command("attach-path")
def attach_path(
    metadata: Annotated[
        Path,
        typer.Argument(help="Params metadata JSON document."),
    ],
    path: Annotated[
        str,
        typer.Option("--path", "-p", help="Save root the stage archive was written under."),
    ],
    as_native: Annotated[
        bool | None,
        typer.Option(
            "--as-native/--as-portable",
            help="Reload as a native stage or through the portable runtime.",
        ),
    ] = None,
    param: Annotated[
        str | None,
        typer.Option("--param", help="Params key holding the stage descriptor."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write here instead of in place."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Bundle configuration YAML."),
    ] = None,
) -> None:
    """Merge the save root and native flag into the stage entry of a params document."""
    from trellis.core import (
        LOGGER_NAME,
        STAGE_PARAM_NAME,
        BundleConfig,
        Logger,
        LogStyle,
        load_params_metadata,
        save_params_metadata,
    )
    from trellis.exceptions import TrellisMalformedInputError
    from trellis.params import update_params_metadata_with_path

    cfg = BundleConfig.from_yaml(config) if config is not None else BundleConfig()
    log = Logger.setup(name=LOGGER_NAME, log_dir=cfg.log_dir, level=cfg.log_level)

    if not metadata.exists():
        typer.echo(f"Error: metadata not found: {metadata}", err=True)
        raise typer.Exit(code=1)

    flag = cfg.default_as_native if as_native is None else as_native
    key = param or STAGE_PARAM_NAME

    try:
        doc = load_params_metadata(metadata)
        updated = update_params_metadata_with_path(doc, path, flag, param_name=key)
    except (json.JSONDecodeError, TrellisMalformedInputError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if key not in updated:
        log.warning(f"{LogStyle.WARNING} No '{key}' entry in {metadata.name}; document unchanged")

    target = save_params_metadata(updated, output or metadata)
    LogStyle.log_section(log, "PARAMS METADATA")
    log.info(f"{LogStyle.INDENT}{LogStyle.ARROW} {'Metadata':<18}: {target}")
    log.info(f"{LogStyle.INDENT}{LogStyle.ARROW} {'Save root':<18}: {path} (asSpark={flag})")
