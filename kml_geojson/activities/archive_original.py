"""Archive the original KML next to its converted outputs."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from kml_geojson.core.constants import ARCHIVE_FILENAME, Stage
from kml_geojson.core.exceptions import PermanentError

logger = logging.getLogger("kml_geojson.activities.archive_original")


class ArchiveWriteError(PermanentError):
    """Raised when the original file cannot be copied into the output directory."""

    default_stage = Stage.ARCHIVING.value
    default_code = "ARCHIVE_WRITE_FAILED"


def archive_original(input_path: Path | str, output_dir: Path | str) -> Path:
    """Copy the original file byte-for-byte to ``<output_dir>/archived.kml``.

    Overwrites an archive left by a previous run.

    Raises:
        ArchiveWriteError: If the original cannot be read or the copy
            cannot be written.
    """
    input_path = Path(input_path)
    archive_path = Path(output_dir) / ARCHIVE_FILENAME

    try:
        shutil.copyfile(input_path, archive_path)
    except OSError as exc:
        msg = f"Failed to archive {input_path.name} to {archive_path}: {exc}"
        raise ArchiveWriteError(msg) from exc

    logger.info("Original archived | source=%s | path=%s", input_path.name, archive_path)
    return archive_path
