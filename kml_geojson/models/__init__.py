"""Data models.

- LayerConversion: Outcome of converting one KML layer
- SourceMetadata: Descriptor of the original KML written as metadata.json
"""

from kml_geojson.models.conversion import LayerConversion
from kml_geojson.models.metadata import SourceMetadata, VectorLayerMetadata

__all__ = [
    "LayerConversion",
    "SourceMetadata",
    "VectorLayerMetadata",
]
