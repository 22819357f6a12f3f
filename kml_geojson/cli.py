"""Command-line entry point.

Thin wiring layer between the shell and ``kml_geojson.run``: builds the
configuration (environment first, then command-line overrides),
configures logging and maps pipeline errors to exit codes.

Exit codes:
    0  conversion succeeded
    1  processing or configuration failure
    2  the input file was rejected as invalid
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from kml_geojson.core.config import PipelineConfig, validate_config
from kml_geojson.core.exceptions import PipelineError
from kml_geojson.orchestrators.kml_pipeline import accepts, run

app = typer.Typer(help="KML to GeoJSON preprocessor: convert, index, describe and archive")

logger = logging.getLogger("kml_geojson.cli")

EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("convert")
def convert(
    input_path: Annotated[Path, typer.Argument(help="KML file to convert")],
    output_dir: Annotated[Path, typer.Argument(help="Directory receiving the outputs")],
    max_layers: Annotated[
        Optional[int], typer.Option("--max-layers", help="Maximum number of layers allowed")
    ] = None,
    index_worthy_size: Annotated[
        Optional[int],
        typer.Option("--index-worthy-size", help="Output size in bytes that triggers indexing"),
    ] = None,
    index_binary: Annotated[
        Optional[str], typer.Option("--index-binary", help="Path to the mapnik-index program")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")
    ] = False,
    json_errors: Annotated[
        bool,
        typer.Option("--json-errors", help="Report pipeline failures as a JSON object on stderr"),
    ] = False,
) -> None:
    """Convert every layer of INPUT_PATH into GeoJSON under OUTPUT_DIR."""
    _configure_logging(verbose)

    try:
        config = PipelineConfig.from_env()
        overrides = {
            key: value
            for key, value in (
                ("max_layer_count", max_layers),
                ("index_worthy_size", index_worthy_size),
                ("index_binary", index_binary),
            )
            if value is not None
        }
        if overrides:
            config = dataclasses.replace(config, **overrides)
            validate_config(config)

        run(input_path, output_dir, config=config)
    except PipelineError as exc:
        if json_errors:
            typer.echo(json.dumps(exc.to_error_dict()), err=True)
        else:
            typer.echo(f"{exc.code}: {exc.message}", err=True)
        raise typer.Exit(EXIT_INVALID_INPUT if exc.is_invalid_input else EXIT_FAILURE) from exc
    except ValueError as exc:
        typer.echo(f"ERROR loading configuration: {exc}", err=True)
        raise typer.Exit(EXIT_FAILURE) from exc

    typer.echo(f"Converted {input_path.name} into {output_dir}")


@app.command("accepts")
def accepts_command(
    filetype: Annotated[str, typer.Argument(help="Detected file type token, e.g. 'kml'")],
) -> None:
    """Print whether files of FILETYPE are handled by this preprocessor."""
    typer.echo("true" if accepts({"filetype": filetype}) else "false")


if __name__ == "__main__":
    app()
