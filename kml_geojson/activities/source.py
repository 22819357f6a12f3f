"""Source KML dataset handle.

Wraps fiona (OGR KML driver) behind a small handle the orchestrator owns
for the duration of a run:

- ``SourceDataset`` lists the document's layers in native order and
  hands out ``SourceLayer`` objects one at a time.
- ``open_source_dataset()`` is the only supported way to acquire a
  dataset; it guarantees ``close()`` on every exit path.

Before OGR sees the file it is checked to be well-formed XML with a KML
root element (lxml), so garbage input fails with a clear message.

Empty points:
    OGR reads ``<Point>`` without coordinates as ``POINT EMPTY``, but
    fiona reports that geometry as ``(0, 0)``, indistinguishable from a
    real point. Such elements are removed from a scratch copy of the
    document before OGR reads it, so their placemarks arrive with no
    geometry and are filtered like any other geometry-less feature.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kml_geojson.core.constants import KML_NAMESPACE, Stage
from kml_geojson.core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("kml_geojson.activities.source")

# fiona ships with its KML readers disabled.
KML_DRIVERS: tuple[str, ...] = ("KML", "LIBKML")


class SourceOpenError(ValidationError):
    """Raised when the source document cannot be opened as KML."""

    default_stage = Stage.OPENING.value
    default_code = "SOURCE_OPEN_FAILED"


def enable_kml_drivers() -> None:
    """Register the OGR KML drivers with fiona. Safe to call repeatedly."""
    from fiona.drvsupport import supported_drivers

    for driver in KML_DRIVERS:
        supported_drivers[driver] = "rw"


# ---------------------------------------------------------------------------
# XML / KML sniffing
# ---------------------------------------------------------------------------


def validate_xml(kml_path: Path) -> Any:
    """Validate that the file is well-formed XML with a KML root element.

    Returns:
        The parsed root element.

    Raises:
        SourceOpenError: If the file cannot be read, is empty, is not
            valid XML, or its root element is not ``<kml>``.
    """
    from lxml import etree  # type: ignore[attr-defined]

    try:
        content = kml_path.read_bytes()
    except OSError as exc:
        msg = f"Cannot read KML file: {exc}"
        raise SourceOpenError(msg) from exc

    if not content.strip():
        msg = "KML file is empty"
        raise SourceOpenError(msg)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"Not valid XML: {exc}"
        raise SourceOpenError(msg) from exc

    tag = root.tag
    if f"{{{KML_NAMESPACE}}}" not in tag and "kml" not in tag.lower():
        msg = f"Not a KML file, root element is <{tag}>"
        raise SourceOpenError(msg)

    return root


def _is_blank_point(element: Any) -> bool:
    from lxml import etree  # type: ignore[attr-defined]

    if etree.QName(element).localname != "Point":
        return False
    for child in element.iterchildren(etree.Element):
        if etree.QName(child).localname == "coordinates":
            return not (child.text or "").strip()
    return True


def strip_empty_points(root: Any) -> int:
    """Remove every ``<Point>`` without coordinates from *root* in place.

    Returns:
        The number of elements removed.
    """
    from lxml import etree  # type: ignore[attr-defined]

    blanks = [el for el in root.iter(etree.Element) if _is_blank_point(el)]
    for element in blanks:
        parent = element.getparent()
        if parent is not None:
            parent.remove(element)
    return len(blanks)


def _readable_copy(path: Path, root: Any) -> tuple[Path, Path | None]:
    """Return the path OGR should read and the scratch directory, if any.

    The copy keeps the original file name: OGR names root-level layers
    after it.
    """
    from lxml import etree  # type: ignore[attr-defined]

    removed = strip_empty_points(root)
    if not removed:
        return path, None

    scratch_dir = Path(tempfile.mkdtemp(prefix="kml_geojson_"))
    read_path = scratch_dir / path.name
    try:
        etree.ElementTree(root).write(str(read_path), xml_declaration=True, encoding="UTF-8")
    except OSError as exc:
        shutil.rmtree(scratch_dir, ignore_errors=True)
        msg = f"Cannot prepare {path.name} for reading: {exc}"
        raise SourceOpenError(msg) from exc

    logger.info("Empty points removed | file=%s | count=%d", path.name, removed)
    return read_path, scratch_dir


# ---------------------------------------------------------------------------
# Layer handle
# ---------------------------------------------------------------------------


class SourceLayer:
    """One named layer of an open source dataset.

    Attributes:
        name: Raw layer name (may contain filesystem-unsafe characters).
        index: Zero-based position of the layer in the document.
    """

    def __init__(self, collection: Any, name: str, index: int) -> None:
        self._collection = collection
        self.name = name
        self.index = index

    @property
    def schema(self) -> dict[str, Any]:
        """Fiona schema (``geometry`` type plus ``properties`` mapping)."""
        return dict(self._collection.schema)

    @property
    def geometry_type(self) -> str:
        """Layer-level geometry type (e.g. ``"Polygon"``, ``"3D Point"``)."""
        return str(self._collection.schema.get("geometry", "Unknown"))

    @property
    def crs_wkt(self) -> str:
        return self._collection.crs_wkt or ""

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """``(minx, miny, maxx, maxy)`` over the layer's features."""
        return tuple(self._collection.bounds)  # type: ignore[return-value]

    @property
    def feature_count(self) -> int:
        """Number of features in the layer."""
        try:
            count = len(self._collection)
        except (TypeError, ValueError):
            count = -1
        if count < 0:
            count = sum(1 for _ in self._collection)
        return count

    def features(self) -> Iterator[Any]:
        """Iterate the layer's feature records in document order."""
        yield from self._collection

    def __repr__(self) -> str:
        return f"SourceLayer(name={self.name!r}, index={self.index})"


# ---------------------------------------------------------------------------
# Dataset handle
# ---------------------------------------------------------------------------


class SourceDataset:
    """Open handle on a KML document.

    Use ``open_source_dataset()`` rather than constructing this directly.

    Attributes:
        path: The original document.
        read_path: The file OGR reads; a scratch copy when empty points
            had to be removed, otherwise ``path`` itself.
    """

    def __init__(
        self,
        path: Path,
        layer_names: list[str],
        *,
        read_path: Path | None = None,
        scratch_dir: Path | None = None,
    ) -> None:
        self.path = path
        self.read_path = read_path or path
        self._layer_names = list(layer_names)
        self._scratch_dir = scratch_dir
        self._open_layer: Any = None
        self.closed = False

    @classmethod
    def open(cls, path: Path | str) -> SourceDataset:
        """Sniff the file and list its layers.

        Raises:
            SourceOpenError: If the file is not readable KML.
        """
        import fiona

        path = Path(path)
        root = validate_xml(path)
        enable_kml_drivers()
        read_path, scratch_dir = _readable_copy(path, root)

        try:
            layer_names = fiona.listlayers(str(read_path))
        except Exception as exc:
            if scratch_dir is not None:
                shutil.rmtree(scratch_dir, ignore_errors=True)
            msg = f"Cannot open KML datasource {path.name}: {exc}"
            raise SourceOpenError(msg) from exc

        logger.info(
            "Source opened | file=%s | layers=%d",
            path.name,
            len(layer_names),
        )
        return cls(path, layer_names, read_path=read_path, scratch_dir=scratch_dir)

    @property
    def layer_count(self) -> int:
        return len(self._layer_names)

    @property
    def layer_names(self) -> list[str]:
        """Raw layer names in document order, duplicates included."""
        return list(self._layer_names)

    def layers(self) -> Iterator[SourceLayer]:
        """Yield each layer in turn.

        Layers are looked up by name, so names must be unique; run
        ``validate_layers`` first. A layer's collection is closed as soon
        as the consumer advances to the next layer, so at most one layer
        is open at a time.

        Raises:
            SourceOpenError: If a listed layer cannot be opened.
        """
        import fiona

        if self.closed:
            msg = f"Source dataset {self.path.name} is closed"
            raise SourceOpenError(msg, stage=Stage.CONVERTING.value)

        for index, name in enumerate(self._layer_names):
            try:
                collection = fiona.open(str(self.read_path), layer=name)
            except Exception as exc:
                msg = f"Cannot open layer '{name}' of {self.path.name}: {exc}"
                raise SourceOpenError(msg, stage=Stage.CONVERTING.value) from exc

            self._open_layer = collection
            try:
                yield SourceLayer(collection, name, index)
            finally:
                collection.close()
                self._open_layer = None

    def close(self) -> None:
        """Release the dataset and its scratch copy. Safe to call more than once."""
        if self.closed:
            return
        if self._open_layer is not None:
            self._open_layer.close()
            self._open_layer = None
        if self._scratch_dir is not None:
            shutil.rmtree(self._scratch_dir, ignore_errors=True)
            self._scratch_dir = None
        self.closed = True
        logger.debug("Source closed | file=%s", self.path.name)


@contextmanager
def open_source_dataset(path: Path | str) -> Iterator[SourceDataset]:
    """Open a KML dataset and guarantee it is closed on exit.

    Raises:
        SourceOpenError: If the file is not readable KML.
    """
    dataset = SourceDataset.open(path)
    try:
        yield dataset
    finally:
        dataset.close()
