"""Shared pytest fixtures for the KML to GeoJSON test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


@pytest.fixture()
def two_layer_kml(data_dir: Path) -> Path:
    """Path to a KML with two Folders: 'Blocks North' (2 polygons) and 'wells' (1 point)."""
    return data_dir / "two_layer_orchard.kml"


@pytest.fixture()
def mixed_geometry_kml(data_dir: Path) -> Path:
    """Path to a KML whose 'sites' Folder mixes null, empty and valid geometry."""
    return data_dir / "mixed_geometry.kml"


@pytest.fixture()
def not_kml_xml(data_dir: Path) -> Path:
    """Path to well-formed XML whose root element is not <kml>."""
    return data_dir / "not_kml.xml"


@pytest.fixture()
def malformed_kml(data_dir: Path) -> Path:
    """Path to a .kml file that is not XML."""
    return data_dir / "malformed.kml"


# ---------------------------------------------------------------------------
# In-memory stand-ins for source layers and datasets
# ---------------------------------------------------------------------------

POINT_SCHEMA: dict[str, Any] = {"geometry": "Point", "properties": {"name": "str"}}


def _point_feature(x: float, y: float, name: str = "") -> dict[str, Any]:
    """A GeoJSON-like record with a point geometry."""
    return {
        "geometry": {"type": "Point", "coordinates": (x, y)},
        "properties": {"name": name},
    }


def _bare_feature(name: str = "") -> dict[str, Any]:
    """A record with no geometry at all."""
    return {"geometry": None, "properties": {"name": name}}


class FakeLayer:
    """Anything ``convert_layer`` can consume, backed by a list."""

    def __init__(
        self,
        name: str,
        features: list[dict[str, Any]],
        schema: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self._features = features
        self.schema = schema or POINT_SCHEMA

    @property
    def feature_count(self) -> int:
        return len(self._features)

    def features(self):
        yield from self._features


class FakeDataset:
    """Stand-in for ``SourceDataset`` recording whether it was closed."""

    def __init__(self, layers: list[FakeLayer]) -> None:
        self._layers = layers
        self.closed = False

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    @property
    def layer_names(self) -> list[str]:
        return [layer.name for layer in self._layers]

    def layers(self):
        yield from self._layers

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def make_layer():
    """Factory fixture building ``FakeLayer`` instances."""
    return FakeLayer


@pytest.fixture()
def make_dataset():
    """Factory fixture building ``FakeDataset`` instances."""
    return FakeDataset


@pytest.fixture()
def source_file(tmp_path: Path) -> Path:
    """A small stand-in input file for runs whose source is faked."""
    path = tmp_path / "input.kml"
    path.write_bytes(b'<?xml version="1.0"?>\n<kml xmlns="http://www.opengis.net/kml/2.2"/>\n')
    return path


@pytest.fixture()
def point_feature():
    """Factory fixture building point records."""
    return _point_feature


@pytest.fixture()
def bare_feature():
    """Factory fixture building records without geometry."""
    return _bare_feature


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture()
def index_binary_on_path():
    """Make every ``mapnik-index`` lookup succeed without the real program."""
    with patch("kml_geojson.core.config.shutil.which", return_value="/usr/bin/mapnik-index") as m:
        yield m
