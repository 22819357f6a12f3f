"""Convert one KML layer into a GeoJSON document.

The output document is ``<output_dir>/<sanitised name>.geojson`` with a
single layer declared in the target CRS and carrying the source layer's
geometry type and attribute schema. Only features passing
``is_usable`` are copied.

The writer is always closed before this function returns, so the file
can be opened by ``mapnik-index`` without a handle conflict.

Layers with no features at all are skipped without creating a file.
Layers whose features are all filtered out still leave a (feature-less)
document on disk but report no output path.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from kml_geojson.activities.filter_features import is_usable
from kml_geojson.activities.sanitize import sanitize_layer_name
from kml_geojson.core.constants import (
    DEFAULT_TARGET_CRS,
    OUTPUT_DRIVER,
    OUTPUT_EXTENSION,
    Stage,
)
from kml_geojson.core.exceptions import PermanentError
from kml_geojson.models.conversion import LayerConversion

logger = logging.getLogger("kml_geojson.activities.convert_layer")


class OutputCreateError(PermanentError):
    """Raised when an output document cannot be created or written.

    Attributes:
        layer_name: Raw name of the layer being converted.
        cause: Underlying error description.
    """

    default_stage = Stage.CONVERTING.value
    default_code = "OUTPUT_CREATE_FAILED"

    def __init__(self, layer_name: str, cause: object, **kwargs: object) -> None:
        self.layer_name = layer_name
        self.cause = str(cause)
        super().__init__(
            f"Cannot create output for layer '{layer_name}': {cause}",
            **kwargs,
        )


def output_path_for(layer_name: str, output_dir: Path | str) -> Path:
    """Return the GeoJSON path a layer named *layer_name* is written to."""
    return Path(output_dir) / f"{sanitize_layer_name(layer_name)}{OUTPUT_EXTENSION}"


def crs_to_wkt(target_crs: str) -> str:
    """Resolve a user-supplied CRS (``"EPSG:4326"``, WKT, PROJ) to WKT."""
    from pyproj import CRS

    return CRS.from_user_input(target_crs).to_wkt()


def convert_layer(
    layer: Any,
    output_dir: Path | str,
    *,
    target_crs: str = DEFAULT_TARGET_CRS,
) -> LayerConversion:
    """Copy the usable features of *layer* into a new GeoJSON document.

    Args:
        layer: A ``SourceLayer`` (anything exposing ``name``, ``schema``,
            ``feature_count`` and ``features()``).
        output_dir: Existing directory to write into.
        target_crs: Reference system declared on the output layer.

    Returns:
        A ``LayerConversion``. ``output_path`` is set only when at least
        one feature was written.

    Raises:
        OutputCreateError: If the document cannot be created or a
            feature cannot be written to it.
    """
    import fiona

    output_name = sanitize_layer_name(layer.name)

    if layer.feature_count == 0:
        logger.info("Layer skipped | layer=%s | reason=no features", layer.name)
        return LayerConversion(layer_name=layer.name, output_name=output_name)

    out_path = output_path_for(layer.name, output_dir)

    try:
        sink = fiona.open(
            str(out_path),
            "w",
            driver=OUTPUT_DRIVER,
            schema=_output_schema(layer.schema),
            crs_wkt=crs_to_wkt(target_crs),
        )
    except Exception as exc:
        raise OutputCreateError(layer.name, exc) from exc

    written = 0
    skipped = 0
    try:
        for feature in layer.features():
            if not is_usable(feature):
                skipped += 1
                continue
            sink.write(feature)
            written += 1
    except Exception as exc:
        raise OutputCreateError(layer.name, exc) from exc
    finally:
        sink.close()

    if skipped:
        logger.warning(
            "Features without usable geometry skipped | layer=%s | skipped=%d",
            layer.name,
            skipped,
        )

    logger.info(
        "Layer converted | layer=%s | output=%s | features=%d",
        layer.name,
        out_path.name,
        written,
    )

    return LayerConversion(
        layer_name=layer.name,
        output_name=output_name,
        output_path=out_path if written else None,
        features_written=written,
        skipped_features=skipped,
    )


def _output_schema(source_schema: dict[str, Any]) -> dict[str, Any]:
    """Copy the source schema, keeping the geometry type and attributes."""
    return {
        "geometry": source_schema.get("geometry", "Unknown"),
        "properties": dict(source_schema.get("properties", {})),
    }
