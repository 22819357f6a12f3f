"""Pydantic model for the ``metadata.json`` written next to the outputs.

Describes the *original* KML file, independent of the converted
GeoJSON layers: its size, reference system, extent and the vector
layers it contains. This is the provenance record for a run.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Schema version for forward compatibility
SCHEMA_VERSION = "kml-source-metadata-v1"


class VectorLayerMetadata(BaseModel):
    """One layer of the source document.

    Attributes:
        id: Raw layer name.
        geometry_type: Layer-level geometry type reported by OGR.
        feature_count: Number of features in the layer.
        fields: Attribute names mapped to their OGR field types.
    """

    id: str
    geometry_type: str = "Unknown"
    feature_count: int = 0
    fields: dict[str, str] = Field(default_factory=dict)


class SourceMetadata(BaseModel):
    """Top-level metadata record for an original KML file.

    Attributes:
        schema_version: Schema identifier for forward compatibility.
        filename: Name of the original file.
        filesize: Size of the original file in bytes.
        filetype: Extension of the original file (``".kml"``).
        dstype: Datasource kind used to read it.
        projection: PROJ string of the source reference system.
        extent: ``[min_lon, min_lat, max_lon, max_lat]`` over all layers,
            empty when no layer carries geometry.
        center: ``[lon, lat]`` at the middle of ``extent``.
        layers: Raw layer names in document order.
        vector_layers: Per-layer details.
    """

    schema_version: str = Field(default=SCHEMA_VERSION, alias="$schema")
    filename: str = ""
    filesize: int = 0
    filetype: str = ".kml"
    dstype: str = "gdal"
    projection: str = ""
    extent: list[float] = Field(default_factory=list)
    center: list[float] = Field(default_factory=list)
    layers: list[str] = Field(default_factory=list)
    vector_layers: list[VectorLayerMetadata] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise to a JSON string using the ``$schema`` alias."""
        return self.model_dump_json(indent=indent, by_alias=True)
