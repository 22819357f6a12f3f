"""Orchestrator for the KML → GeoJSON conversion pipeline.

Coordinates the pipeline stages for one input file:

1. Create the output directory (recursive, idempotent)
2. Open the KML source and validate its layer structure
3. Convert each layer sequentially into ``<name>.geojson``
4. Reject the run if no layer produced a single usable feature
5. Write ``metadata.json`` describing the original file
6. Build spatial indexes for large outputs (parallel fan-out)
7. Archive the original file as ``archived.kml``

Every stage failure is fatal and short-circuits the rest; the caller
receives exactly one exception. Outputs written before a failure are
left in place. The source dataset is closed before metadata capture
starts, whatever happens during validation or conversion.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from kml_geojson.activities.archive_original import archive_original
from kml_geojson.activities.build_indexes import build_indexes
from kml_geojson.activities.convert_layer import OutputCreateError, convert_layer
from kml_geojson.activities.digest import digest_source
from kml_geojson.activities.sanitize import sanitize_layer_name
from kml_geojson.activities.source import open_source_dataset
from kml_geojson.activities.validate_layers import validate_layers
from kml_geojson.activities.write_metadata import write_metadata
from kml_geojson.core.config import PipelineConfig
from kml_geojson.core.constants import OUTPUT_EXTENSION, SOURCE_FILETYPE, Stage
from kml_geojson.core.exceptions import PermanentError, PipelineError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from kml_geojson.activities.write_metadata import Digester

logger = logging.getLogger("kml_geojson.orchestrators.kml_pipeline")

DESCRIPTION = "Convert KML to GeoJSON"


# ---------------------------------------------------------------------------
# Exceptions raised by the orchestrator itself
# ---------------------------------------------------------------------------


class OutputDirectoryError(PermanentError):
    """Raised when the output directory cannot be created."""

    default_stage = Stage.CREATE_OUTPUT_DIR.value
    default_code = "OUTPUT_DIR_CREATE_FAILED"


class NoUsableFeaturesError(PermanentError):
    """Raised when no layer yielded a single feature with usable geometry."""

    default_stage = Stage.TOTAL_ZERO_CHECK.value
    default_code = "NO_USABLE_FEATURES"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def accepts(file_info: Mapping[str, object]) -> bool:
    """Whether this pipeline handles a file with the given detected info.

    Args:
        file_info: File description from the selecting framework; only
            its ``filetype`` entry is consulted.
    """
    return file_info.get("filetype") == SOURCE_FILETYPE


def run(
    input_path: Path | str,
    output_dir: Path | str,
    *,
    config: PipelineConfig | None = None,
    digester: Digester = digest_source,
    correlation_id: str = "",
) -> None:
    """Convert a KML file into per-layer GeoJSON documents.

    Returns normally on success.

    Args:
        input_path: The KML file to convert.
        output_dir: Directory receiving every output (created if missing).
        config: Limits and external tool settings; defaults apply when
            omitted.
        digester: Collaborator producing the ``metadata.json`` record.
        correlation_id: Caller identifier attached to any raised error.

    Raises:
        PipelineError: The first failure of any stage. Its ``category``
            is ``"validation"`` when the input itself was rejected.
    """
    config = config or PipelineConfig()
    input_path = Path(input_path)
    output_dir = Path(output_dir)

    logger.info(
        "Conversion started | file=%s | output_dir=%s | correlation_id=%s",
        input_path.name,
        output_dir,
        correlation_id,
    )

    try:
        _create_output_dir(output_dir)
        output_paths, total_features = _convert_source(input_path, output_dir, config)

        if total_features == 0:
            msg = "KML does not contain any valid features"
            raise NoUsableFeaturesError(msg)

        write_metadata(input_path, output_dir, digester=digester)
        build_indexes(
            output_paths,
            index_binary=config.index_binary,
            index_worthy_size=config.index_worthy_size,
        )
        archive_original(input_path, output_dir)
    except PipelineError as exc:
        if not exc.correlation_id:
            exc.correlation_id = correlation_id
        logger.error(
            "Conversion failed | file=%s | stage=%s | code=%s | category=%s | error=%s",
            input_path.name,
            exc.stage,
            exc.code,
            exc.category,
            exc.message,
        )
        raise

    logger.info(
        "Conversion complete | file=%s | stage=%s | layers=%d | features=%d | correlation_id=%s",
        input_path.name,
        Stage.DONE.value,
        len(output_paths),
        total_features,
        correlation_id,
    )


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _create_output_dir(output_dir: Path) -> None:
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Cannot create output directory {output_dir}: {exc}"
        raise OutputDirectoryError(msg) from exc


def _convert_source(
    input_path: Path,
    output_dir: Path,
    config: PipelineConfig,
) -> tuple[list[Path], int]:
    """Open, validate and convert every layer; the source is closed on return.

    Returns:
        Output paths of layers that contributed features, and the total
        number of features written across all layers.
    """
    output_paths: list[Path] = []
    total_features = 0
    # sanitised output name -> raw layer name that wrote it
    claimed: dict[str, str] = {}

    with open_source_dataset(input_path) as dataset:
        validate_layers(dataset, max_layer_count=config.max_layer_count)

        for layer in dataset.layers():
            output_name = sanitize_layer_name(layer.name)
            if output_name in claimed:
                raise OutputCreateError(
                    layer.name,
                    f"'{output_name}{OUTPUT_EXTENSION}' was already written "
                    f"for layer '{claimed[output_name]}'",
                )

            result = convert_layer(layer, output_dir, target_crs=config.target_crs)

            if result.document_written:
                claimed[output_name] = layer.name
            if result.produced and result.output_path is not None:
                output_paths.append(result.output_path)
            total_features += result.features_written

    logger.info(
        "Layers converted | file=%s | outputs=%d | features=%d",
        input_path.name,
        len(output_paths),
        total_features,
    )
    return output_paths, total_features
