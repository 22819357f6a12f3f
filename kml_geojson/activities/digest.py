"""Default digester: describe the original KML file.

The pipeline treats the digester as a collaborator: any callable taking
the original path and returning a ``SourceMetadata`` (or a
JSON-serialisable mapping) can be passed to ``run()``. This one reads
the document with fiona and reports its size, projection, extent and
per-layer fields.
"""

from __future__ import annotations

import logging
from pathlib import Path

from kml_geojson.activities.source import open_source_dataset
from kml_geojson.core.constants import DEFAULT_TARGET_CRS, SOURCE_EXTENSION
from kml_geojson.models.metadata import SourceMetadata, VectorLayerMetadata

logger = logging.getLogger("kml_geojson.activities.digest")


def digest_source(path: Path | str) -> SourceMetadata:
    """Inspect the original KML file and build its metadata record.

    Layers are read through ``open_source_dataset``, so counts and bounds
    agree with what the converter sees.

    Raises:
        SourceOpenError: If the file is not readable KML.
        OSError: If the file cannot be stat'ed.
    """
    path = Path(path)
    vector_layers: list[VectorLayerMetadata] = []
    layer_bounds: list[tuple[float, float, float, float]] = []
    crs_wkt = ""

    with open_source_dataset(path) as dataset:
        for layer in dataset.layers():
            count = layer.feature_count
            crs_wkt = crs_wkt or layer.crs_wkt
            if count > 0:
                layer_bounds.append(layer.bounds)
            vector_layers.append(
                VectorLayerMetadata(
                    id=layer.name,
                    geometry_type=layer.geometry_type,
                    feature_count=count,
                    fields={str(k): str(v) for k, v in layer.schema.get("properties", {}).items()},
                )
            )

    extent = _union_bounds(layer_bounds)
    center = [(extent[0] + extent[2]) / 2, (extent[1] + extent[3]) / 2] if extent else []

    metadata = SourceMetadata(
        filename=path.name,
        filesize=path.stat().st_size,
        filetype=SOURCE_EXTENSION,
        projection=_proj4(crs_wkt),
        extent=extent,
        center=center,
        layers=[layer.id for layer in vector_layers],
        vector_layers=vector_layers,
    )

    logger.info(
        "Source digested | file=%s | size=%d | layers=%d",
        metadata.filename,
        metadata.filesize,
        len(metadata.layers),
    )
    return metadata


def _union_bounds(bounds: list[tuple[float, float, float, float]]) -> list[float]:
    if not bounds:
        return []
    return [
        min(b[0] for b in bounds),
        min(b[1] for b in bounds),
        max(b[2] for b in bounds),
        max(b[3] for b in bounds),
    ]


def _proj4(crs_wkt: str) -> str:
    """PROJ string for the source CRS; KML without one is WGS 84."""
    from pyproj import CRS

    crs = CRS.from_wkt(crs_wkt) if crs_wkt else CRS.from_user_input(DEFAULT_TARGET_CRS)
    return crs.to_proj4()
