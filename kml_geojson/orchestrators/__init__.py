"""Pipeline orchestration for the KML to GeoJSON conversion."""
