"""Pipeline configuration loaded from environment variables.

Every value has a default matching the preprocessor's historical
constants, so ``PipelineConfig()`` is a valid configuration. The
config object is passed into each run explicitly; nothing is read from
mutable module state, so one process can run pipelines with different
limits side by side.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if a value is out of
    its valid range, the target CRS cannot be understood by pyproj, or
    the index program cannot be found.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass

from kml_geojson.core.constants import (
    DEFAULT_INDEX_BINARY,
    DEFAULT_INDEX_WORTHY_SIZE,
    DEFAULT_MAX_LAYER_COUNT,
    DEFAULT_TARGET_CRS,
)
from kml_geojson.core.exceptions import PermanentError


class ConfigValidationError(PermanentError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Attributes:
        max_layer_count: Maximum number of layers a source document may have.
        index_worthy_size: Output size in bytes at or above which a spatial
            index is built.
        index_binary: Path or name of the ``mapnik-index`` executable.
        target_crs: Reference system declared on every output layer.
    """

    max_layer_count: int = DEFAULT_MAX_LAYER_COUNT
    index_worthy_size: int = DEFAULT_INDEX_WORTHY_SIZE
    index_binary: str = DEFAULT_INDEX_BINARY
    target_crs: str = DEFAULT_TARGET_CRS

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or empty,
                the CRS is not recognised, or the index program is missing.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``KML_MAX_LAYER_COUNT=abc``).
        """
        config = cls(
            max_layer_count=int(os.getenv("KML_MAX_LAYER_COUNT", str(DEFAULT_MAX_LAYER_COUNT))),
            index_worthy_size=int(
                os.getenv("KML_INDEX_WORTHY_SIZE", str(DEFAULT_INDEX_WORTHY_SIZE))
            ),
            index_binary=os.getenv("MAPNIK_INDEX_PATH", DEFAULT_INDEX_BINARY),
            target_crs=os.getenv("KML_TARGET_CRS", DEFAULT_TARGET_CRS),
        )
        validate_config(config)
        return config


def validate_config(config: PipelineConfig) -> None:
    """Validate configuration ranges and the index program.

    Raises:
        ConfigValidationError: On the first invalid value.
    """
    if config.max_layer_count < 1:
        raise ConfigValidationError(
            "KML_MAX_LAYER_COUNT",
            config.max_layer_count,
            "must be >= 1",
        )

    if config.index_worthy_size < 0:
        raise ConfigValidationError(
            "KML_INDEX_WORTHY_SIZE",
            config.index_worthy_size,
            "must be >= 0 (bytes)",
        )

    if not config.index_binary:
        raise ConfigValidationError(
            "MAPNIK_INDEX_PATH",
            config.index_binary,
            "must not be empty",
        )

    from pyproj import CRS
    from pyproj.exceptions import CRSError

    try:
        CRS.from_user_input(config.target_crs)
    except CRSError as exc:
        raise ConfigValidationError(
            "KML_TARGET_CRS",
            config.target_crs,
            f"not a recognised coordinate reference system ({exc})",
        ) from exc

    if shutil.which(config.index_binary) is None:
        raise ConfigValidationError(
            "MAPNIK_INDEX_PATH",
            config.index_binary,
            "not found or not executable",
        )
