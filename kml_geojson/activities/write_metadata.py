"""Write metadata activity: persist the digest of the original file.

Calls the digester collaborator on the *original* KML path and writes
its result to ``metadata.json`` in the output directory. The pipeline
only persists the record; what goes into it is up to the digester.

A failure here (digester or write) is fatal to the whole run.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kml_geojson.activities.digest import digest_source
from kml_geojson.core.constants import METADATA_FILENAME, Stage
from kml_geojson.core.exceptions import PermanentError
from kml_geojson.models.metadata import SourceMetadata

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    Digester = Callable[[Path], SourceMetadata | Mapping[str, Any]]

logger = logging.getLogger("kml_geojson.activities.write_metadata")


class MetadataWriteError(PermanentError):
    """Raised when metadata capture or writing fails."""

    default_stage = Stage.METADATA_CAPTURE.value
    default_code = "METADATA_WRITE_FAILED"


def write_metadata(
    input_path: Path | str,
    output_dir: Path | str,
    *,
    digester: Digester = digest_source,
) -> Path:
    """Digest the original file and write ``metadata.json``.

    Args:
        input_path: The original KML file.
        output_dir: Directory receiving ``metadata.json``.
        digester: Collaborator producing the metadata record.

    Returns:
        Path of the written metadata file.

    Raises:
        MetadataWriteError: If digesting, serialising or writing fails.
    """
    input_path = Path(input_path)
    metadata_path = Path(output_dir) / METADATA_FILENAME

    try:
        record = digester(input_path)
    except MetadataWriteError:
        raise
    except Exception as exc:
        msg = f"Cannot digest {input_path.name}: {exc}"
        raise MetadataWriteError(msg) from exc

    try:
        metadata_json = _serialise(record)
    except (TypeError, ValueError) as exc:
        msg = f"Metadata for {input_path.name} is not JSON-serialisable: {exc}"
        raise MetadataWriteError(msg) from exc

    try:
        metadata_path.write_text(metadata_json, encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to write {metadata_path}: {exc}"
        raise MetadataWriteError(msg) from exc

    logger.info(
        "Metadata written | source=%s | path=%s | bytes=%d",
        input_path.name,
        metadata_path,
        len(metadata_json),
    )
    return metadata_path


def _serialise(record: SourceMetadata | Mapping[str, Any]) -> str:
    if isinstance(record, SourceMetadata):
        return record.to_json()
    return json.dumps(dict(record))
