"""Shared pipeline constants, the single source of truth.

File names, extensions and defaults used by more than one activity.
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# Source / output formats
# ---------------------------------------------------------------------------

SOURCE_FILETYPE: str = "kml"
"""File type token a selecting framework reports for KML input."""

SOURCE_EXTENSION: str = ".kml"
"""Extension token stripped from layer names and used for the archive."""

KML_NAMESPACE: str = "http://www.opengis.net/kml/2.2"

OUTPUT_EXTENSION: str = ".geojson"
"""Extension of every per-layer output document."""

OUTPUT_DRIVER: str = "GeoJSON"
"""OGR driver used to write per-layer output documents."""

# ---------------------------------------------------------------------------
# Fixed output file names
# ---------------------------------------------------------------------------

METADATA_FILENAME: str = "metadata.json"
ARCHIVE_FILENAME: str = f"archived{SOURCE_EXTENSION}"

INDEX_SUFFIX: str = ".index"
"""Suffix ``mapnik-index`` appends to the file it indexes."""

# ---------------------------------------------------------------------------
# Defaults (overridable through PipelineConfig)
# ---------------------------------------------------------------------------

DEFAULT_MAX_LAYER_COUNT: int = 15
DEFAULT_INDEX_WORTHY_SIZE: int = 10 * 1024 * 1024  # 10 MiB
DEFAULT_INDEX_BINARY: str = "mapnik-index"
DEFAULT_TARGET_CRS: str = "EPSG:4326"

INDEX_ERROR_MARKER: str = "Error"
"""Text ``mapnik-index --validate-features`` prints when a feature fails."""


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


class Stage(enum.Enum):
    """Stages of a conversion run, in execution order.

    The value is the ``stage`` carried by errors raised from that stage.
    """

    CREATE_OUTPUT_DIR = "create_output_dir"
    OPENING = "opening"
    VALIDATING = "validating"
    CONVERTING = "converting"
    TOTAL_ZERO_CHECK = "total_zero_check"
    METADATA_CAPTURE = "metadata_capture"
    INDEXING = "indexing"
    ARCHIVING = "archiving"
    DONE = "done"
