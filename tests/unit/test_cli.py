"""Tests for the command-line entry point.

``run`` is patched in the CLI module so only argument handling,
configuration overrides and exit-code mapping are exercised.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from kml_geojson.activities.build_indexes import IndexBuildError
from kml_geojson.activities.validate_layers import TooManyLayersError
from kml_geojson.cli import EXIT_FAILURE, EXIT_INVALID_INPUT, app

runner = CliRunner()

_RUN = "kml_geojson.cli.run"


@pytest.mark.usefixtures("index_binary_on_path")
class TestConvertCommand:
    def test_success(self, tmp_path: Path) -> None:
        with patch(_RUN) as mock_run:
            result = runner.invoke(app, ["convert", "in.kml", str(tmp_path)])

        assert result.exit_code == 0
        assert "Converted in.kml" in result.output
        args, kwargs = mock_run.call_args
        assert args == (Path("in.kml"), tmp_path)
        assert kwargs["config"].max_layer_count == 15

    def test_overrides_applied(self, tmp_path: Path) -> None:
        with patch(_RUN) as mock_run:
            result = runner.invoke(
                app,
                [
                    "convert",
                    "in.kml",
                    str(tmp_path),
                    "--max-layers",
                    "4",
                    "--index-worthy-size",
                    "0",
                    "--index-binary",
                    "/opt/mapnik-index",
                ],
            )

        assert result.exit_code == 0
        config = mock_run.call_args.kwargs["config"]
        assert config.max_layer_count == 4
        assert config.index_worthy_size == 0
        assert config.index_binary == "/opt/mapnik-index"

    def test_invalid_input_exit_code(self, tmp_path: Path) -> None:
        with patch(_RUN, side_effect=TooManyLayersError(16, 15)):
            result = runner.invoke(app, ["convert", "in.kml", str(tmp_path)])

        assert result.exit_code == EXIT_INVALID_INPUT
        assert "TOO_MANY_LAYERS" in result.output

    def test_processing_failure_exit_code(self, tmp_path: Path) -> None:
        with patch(_RUN, side_effect=IndexBuildError("Error: bad feature")):
            result = runner.invoke(app, ["convert", "in.kml", str(tmp_path)])

        assert result.exit_code == EXIT_FAILURE
        assert "INDEX_BUILD_FAILED" in result.output

    def test_invalid_override_rejected(self, tmp_path: Path) -> None:
        with patch(_RUN) as mock_run:
            result = runner.invoke(app, ["convert", "in.kml", str(tmp_path), "--max-layers", "0"])

        assert result.exit_code == EXIT_FAILURE
        assert "CONFIG_VALIDATION_FAILED" in result.output
        mock_run.assert_not_called()

    def test_bad_environment(self, tmp_path: Path) -> None:
        with (
            patch.dict(os.environ, {"KML_INDEX_WORTHY_SIZE": "big"}, clear=False),
            patch(_RUN) as mock_run,
        ):
            result = runner.invoke(app, ["convert", "in.kml", str(tmp_path)])

        assert result.exit_code == EXIT_FAILURE
        mock_run.assert_not_called()

    def test_missing_index_binary(self, tmp_path: Path, index_binary_on_path) -> None:
        index_binary_on_path.return_value = None

        with patch(_RUN) as mock_run:
            result = runner.invoke(
                app, ["convert", "in.kml", str(tmp_path), "--index-binary", "/opt/none"]
            )

        assert result.exit_code == EXIT_FAILURE
        assert "MAPNIK_INDEX_PATH" in result.output
        mock_run.assert_not_called()

    def test_json_errors(self, tmp_path: Path) -> None:
        err = TooManyLayersError(16, 15, correlation_id="job-3")
        with patch(_RUN, side_effect=err):
            result = runner.invoke(app, ["convert", "in.kml", str(tmp_path), "--json-errors"])

        assert result.exit_code == EXIT_INVALID_INPUT
        payload = json.loads(result.output.strip().splitlines()[-1])
        assert payload["category"] == "validation"
        assert payload["code"] == "TOO_MANY_LAYERS"
        assert payload["stage"] == "validating"
        assert payload["correlation_id"] == "job-3"
        assert payload["retryable"] is False


class TestAcceptsCommand:
    def test_kml(self) -> None:
        result = runner.invoke(app, ["accepts", "kml"])
        assert result.exit_code == 0
        assert result.output.strip() == "true"

    def test_other(self) -> None:
        result = runner.invoke(app, ["accepts", "gpx"])
        assert result.exit_code == 0
        assert result.output.strip() == "false"
