"""KML to GeoJSON conversion preprocessor.

Converts a multi-layer KML document into one GeoJSON document per
layer, builds spatial indexes for large outputs, records metadata about
the original file and archives it alongside the outputs.
"""

from kml_geojson.orchestrators.kml_pipeline import DESCRIPTION, accepts, run

__version__ = "0.1.0"

__all__ = ["DESCRIPTION", "accepts", "run"]
