"""Pipeline activities.

Each activity performs a single unit of work within a conversion run:
- source: Open the KML document and hand out its layers
- validate_layers: Reject structurally invalid documents
- sanitize / filter_features / convert_layer: Write one GeoJSON per layer
- write_metadata / digest: Record metadata about the original file
- build_indexes: Build spatial indexes for large outputs
- archive_original: Keep a byte copy of the input
"""
