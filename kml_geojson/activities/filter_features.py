"""Per-feature geometry predicate.

A feature is worth copying only if it carries a geometry and that
geometry is non-empty by shapely's own ``is_empty`` test. Geometry that
shapely refuses to build at all (e.g. a one-point LineString) is
degenerate and counts as absent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

logger = logging.getLogger("kml_geojson.activities.filter_features")


def feature_geometry(feature: object) -> object | None:
    """Return the geometry of a fiona record or GeoJSON-like mapping."""
    if hasattr(feature, "geometry"):
        return feature.geometry  # type: ignore[attr-defined]
    if isinstance(feature, Mapping):
        return feature.get("geometry")
    return None


def is_usable(feature: object) -> bool:
    """Whether *feature* has a present, non-empty geometry."""
    from shapely.errors import ShapelyError
    from shapely.geometry import shape

    geom = feature_geometry(feature)
    if geom is None:
        return False

    try:
        return not shape(geom).is_empty
    except (ShapelyError, ValueError, TypeError, AttributeError, IndexError, KeyError) as exc:
        logger.debug("Degenerate geometry treated as absent: %s", exc)
        return False
