"""Structural validation of an opened source dataset.

Runs once, before any per-layer work, so a structurally invalid document
is rejected without writing a single output file. Checks in order:

1. At least one layer.
2. No more than ``max_layer_count`` layers.
3. No raw layer name occurs twice (exact, case-sensitive match).

Every failure is a ``ValidationError`` subclass: the caller should treat
it as a rejection of the input, not a transient fault.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Protocol

from kml_geojson.core.constants import DEFAULT_MAX_LAYER_COUNT, Stage
from kml_geojson.core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger("kml_geojson.activities.validate_layers")


class LayerListing(Protocol):
    """What the validator needs from a dataset."""

    @property
    def layer_count(self) -> int: ...

    @property
    def layer_names(self) -> list[str]: ...


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LayerValidationError(ValidationError):
    """Base class for structural layer problems."""

    default_stage = Stage.VALIDATING.value
    default_code = "LAYER_VALIDATION_FAILED"


class NoLayersError(LayerValidationError):
    """Raised when the document has no layers at all."""

    default_code = "NO_LAYERS"

    def __init__(
        self,
        message: str = "KML does not contain any layers.",
        **kwargs: object,
    ) -> None:
        super().__init__(message, **kwargs)


class TooManyLayersError(LayerValidationError):
    """Raised when the document has more layers than allowed.

    Attributes:
        found: Number of layers in the document.
        maximum: Configured layer cap.
    """

    default_code = "TOO_MANY_LAYERS"

    def __init__(self, found: int, maximum: int, **kwargs: object) -> None:
        self.found = found
        self.maximum = maximum
        super().__init__(
            f"{found} layers found. Maximum of {maximum} layers allowed.",
            **kwargs,
        )


class DuplicateLayerNamesError(LayerValidationError):
    """Raised when two or more layers share a raw name.

    Attributes:
        counts: Each duplicated name mapped to the number of times it occurs.
    """

    default_code = "DUPLICATE_LAYER_NAMES"

    def __init__(self, counts: dict[str, int], **kwargs: object) -> None:
        self.counts = dict(counts)
        details = ", ".join(f"'{name}' found {count} times" for name, count in counts.items())
        super().__init__(f"Duplicate layer names: {details}", **kwargs)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def count_layer_names(names: Iterable[str]) -> dict[str, int]:
    """Return every name occurring more than once, with its count.

    Names keep the order in which they were first seen.
    """
    counts = Counter(names)
    return {name: count for name, count in counts.items() if count > 1}


def validate_layers(
    dataset: LayerListing,
    *,
    max_layer_count: int = DEFAULT_MAX_LAYER_COUNT,
) -> None:
    """Check a dataset is structurally eligible for conversion.

    Args:
        dataset: An open dataset exposing ``layer_count`` and ``layer_names``.
        max_layer_count: Maximum number of layers allowed.

    Raises:
        NoLayersError: If the dataset has no layers.
        TooManyLayersError: If the dataset has more than ``max_layer_count``.
        DuplicateLayerNamesError: If any raw layer name is repeated.
    """
    layer_count = dataset.layer_count

    if layer_count < 1:
        raise NoLayersError()

    if layer_count > max_layer_count:
        raise TooManyLayersError(layer_count, max_layer_count)

    duplicates = count_layer_names(dataset.layer_names)
    if duplicates:
        raise DuplicateLayerNamesError(duplicates)

    logger.info(
        "Layers validated | layers=%d | max=%d",
        layer_count,
        max_layer_count,
    )
