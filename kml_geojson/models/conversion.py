"""Data model for the outcome of converting one source layer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class LayerConversion:
    """Result of converting a single KML layer into a GeoJSON document.

    Attributes:
        layer_name: Raw layer name as reported by the source document.
        output_name: Sanitised name used for the output file stem.
        output_path: Path of the written document, or ``None`` when the
            layer was skipped because it had no features.
        features_written: Number of features copied into the output.
        skipped_features: Number of source features rejected for lacking
            usable geometry.
    """

    layer_name: str
    output_name: str
    output_path: Path | None = None
    features_written: int = 0
    skipped_features: int = 0

    @property
    def produced(self) -> bool:
        """Whether the layer contributed at least one feature."""
        return self.output_path is not None and self.features_written > 0

    @property
    def document_written(self) -> bool:
        """Whether an output file was created, even a feature-less one."""
        return self.features_written + self.skipped_features > 0
