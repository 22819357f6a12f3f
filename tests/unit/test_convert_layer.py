"""Tests for single-layer conversion into GeoJSON.

Writes real GeoJSON documents with fiona into ``tmp_path`` from
in-memory layers, then reads them back as plain JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from kml_geojson.activities.convert_layer import (
    OutputCreateError,
    convert_layer,
    crs_to_wkt,
    output_path_for,
)


def _features_in(path: Path) -> list[dict]:
    return json.loads(path.read_text(encoding="utf-8"))["features"]


class TestOutputPath:
    def test_uses_sanitised_name(self, tmp_path: Path) -> None:
        assert output_path_for("Blocks North.kml", tmp_path) == tmp_path / "Blocks_North.geojson"

    def test_crs_to_wkt(self) -> None:
        assert "WGS" in crs_to_wkt("EPSG:4326")


class TestConvertLayer:
    """Feature filtering and result reporting."""

    def test_copies_usable_features_only(
        self, tmp_path: Path, make_layer, point_feature, bare_feature
    ) -> None:
        layer = make_layer(
            "wells",
            [
                bare_feature("no geometry"),
                {
                    "geometry": {"type": "Point", "coordinates": ()},
                    "properties": {"name": "empty"},
                },
                point_feature(-120.5, 46.6, "Well 1"),
            ],
        )

        result = convert_layer(layer, tmp_path)

        assert result.layer_name == "wells"
        assert result.output_name == "wells"
        assert result.output_path == tmp_path / "wells.geojson"
        assert result.features_written == 1
        assert result.skipped_features == 2
        assert result.produced is True

        features = _features_in(tmp_path / "wells.geojson")
        assert len(features) == 1
        assert features[0]["properties"]["name"] == "Well 1"
        assert features[0]["geometry"]["type"] == "Point"
        assert features[0]["geometry"]["coordinates"][:2] == [-120.5, 46.6]

    def test_keeps_attribute_schema(self, tmp_path: Path, make_layer) -> None:
        schema = {"geometry": "Point", "properties": {"name": "str", "depth": "int"}}
        layer = make_layer(
            "wells",
            [
                {
                    "geometry": {"type": "Point", "coordinates": (1.0, 2.0)},
                    "properties": {"name": "deep", "depth": 120},
                }
            ],
            schema=schema,
        )

        convert_layer(layer, tmp_path)

        props = _features_in(tmp_path / "wells.geojson")[0]["properties"]
        assert props == {"name": "deep", "depth": 120}

    def test_layer_without_features_creates_nothing(self, tmp_path: Path, make_layer) -> None:
        result = convert_layer(make_layer("empty", []), tmp_path)

        assert result.output_path is None
        assert result.features_written == 0
        assert result.produced is False
        assert result.document_written is False
        assert not (tmp_path / "empty.geojson").exists()

    def test_all_features_filtered_leaves_empty_document(
        self, tmp_path: Path, make_layer, bare_feature
    ) -> None:
        layer = make_layer("labels", [bare_feature("a"), bare_feature("b")])

        result = convert_layer(layer, tmp_path)

        assert result.output_path is None
        assert result.features_written == 0
        assert result.skipped_features == 2
        assert result.produced is False
        assert result.document_written is True
        assert _features_in(tmp_path / "labels.geojson") == []

    def test_rerun_overwrites_output(self, tmp_path: Path, make_layer, point_feature) -> None:
        layer = make_layer("wells", [point_feature(1.0, 2.0, "a")])
        convert_layer(layer, tmp_path)
        first = _features_in(tmp_path / "wells.geojson")

        convert_layer(layer, tmp_path)

        assert _features_in(tmp_path / "wells.geojson") == first


class TestConvertLayerFailures:
    """Creation and write failures surface as OutputCreateError."""

    def test_create_failure(self, tmp_path: Path, make_layer, point_feature) -> None:
        layer = make_layer("wells", [point_feature(1.0, 2.0)])

        with (
            patch("fiona.open", side_effect=OSError("disk full")),
            pytest.raises(OutputCreateError) as exc_info,
        ):
            convert_layer(layer, tmp_path)

        err = exc_info.value
        assert err.layer_name == "wells"
        assert "disk full" in err.message
        assert err.stage == "converting"
        assert err.code == "OUTPUT_CREATE_FAILED"
        assert err.category == "permanent"

    def test_unknown_crs(self, tmp_path: Path, make_layer, point_feature) -> None:
        layer = make_layer("wells", [point_feature(1.0, 2.0)])

        with pytest.raises(OutputCreateError):
            convert_layer(layer, tmp_path, target_crs="EPSG:999999")

    def test_write_failure_closes_sink(self, tmp_path: Path, make_layer, point_feature) -> None:
        layer = make_layer("wells", [point_feature(1.0, 2.0)])

        with patch("fiona.open") as mock_open:
            sink = mock_open.return_value
            sink.write.side_effect = ValueError("record does not match schema")

            with pytest.raises(OutputCreateError, match="record does not match schema"):
                convert_layer(layer, tmp_path)

        sink.close.assert_called_once()
