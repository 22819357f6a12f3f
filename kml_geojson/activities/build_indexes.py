"""Spatial index fan-out for converted GeoJSON documents.

Every output document at or above ``index_worthy_size`` bytes gets a
``<file>.index`` built by the external ``mapnik-index`` program, run
with ``--validate-features``. Smaller files are skipped.

``mapnik-index`` reports bad features on stderr while still exiting 0,
so a job fails when its captured stderr contains ``"Error"``,
regardless of exit status.

Concurrency:
    All jobs are dispatched at once on a thread pool sized to the number
    of files. The scheduler waits for every job to finish; the first
    failure to complete is raised afterwards and later failures are
    logged and discarded. Nothing is retried or cancelled.
"""

from __future__ import annotations

import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import TYPE_CHECKING

from kml_geojson.core.constants import (
    DEFAULT_INDEX_BINARY,
    DEFAULT_INDEX_WORTHY_SIZE,
    INDEX_ERROR_MARKER,
    INDEX_SUFFIX,
    Stage,
)
from kml_geojson.core.exceptions import PermanentError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger("kml_geojson.activities.build_indexes")


class IndexBuildError(PermanentError):
    """Raised when an index job fails.

    Attributes:
        path: The GeoJSON document being indexed.
        diagnostics: Text captured from ``mapnik-index`` stderr, if any.
    """

    default_stage = Stage.INDEXING.value
    default_code = "INDEX_BUILD_FAILED"

    def __init__(
        self,
        message: str,
        *,
        path: Path | str = "",
        diagnostics: str = "",
        **kwargs: object,
    ) -> None:
        self.path = str(path)
        self.diagnostics = diagnostics
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


def index_path_for(layer_file: Path | str) -> Path:
    """Return the path ``mapnik-index`` writes for *layer_file*."""
    layer_file = Path(layer_file)
    return layer_file.with_name(layer_file.name + INDEX_SUFFIX)


def build_index(
    layer_file: Path | str,
    *,
    index_binary: str = DEFAULT_INDEX_BINARY,
    index_worthy_size: int = DEFAULT_INDEX_WORTHY_SIZE,
) -> Path | None:
    """Build the spatial index for one document if it is large enough.

    Returns:
        The expected index path, or ``None`` if the file was below the
        size threshold and no index was built.

    Raises:
        IndexBuildError: If the file cannot be stat'ed, the program cannot
            be started, or its diagnostics contain an error marker.
    """
    layer_file = Path(layer_file)

    try:
        size = layer_file.stat().st_size
    except OSError as exc:
        msg = f"Cannot stat {layer_file.name}: {exc}"
        raise IndexBuildError(msg, path=layer_file) from exc

    if size < index_worthy_size:
        logger.debug(
            "Index skipped | file=%s | size=%d | threshold=%d",
            layer_file.name,
            size,
            index_worthy_size,
        )
        return None

    cmd = [index_binary, str(layer_file), "--validate-features"]
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as exc:
        msg = f"Cannot run {index_binary} for {layer_file.name}: {exc}"
        raise IndexBuildError(msg, path=layer_file) from exc

    diagnostics = result.stderr or ""
    if INDEX_ERROR_MARKER in diagnostics:
        raise IndexBuildError(diagnostics, path=layer_file, diagnostics=diagnostics)

    logger.info(
        "Index built | file=%s | size=%d | returncode=%d",
        layer_file.name,
        size,
        result.returncode,
    )
    return index_path_for(layer_file)


def build_indexes(
    layer_files: Iterable[Path | str],
    *,
    index_binary: str = DEFAULT_INDEX_BINARY,
    index_worthy_size: int = DEFAULT_INDEX_WORTHY_SIZE,
) -> list[Path]:
    """Index every document concurrently and wait for all of them.

    Args:
        layer_files: Output documents to consider (order is irrelevant).
        index_binary: ``mapnik-index`` executable.
        index_worthy_size: Size threshold in bytes.

    Returns:
        Index paths that were built, in completion order.

    Raises:
        IndexBuildError: The first job failure, raised once every job
            has reached a terminal state.
    """
    files = [Path(f) for f in layer_files]
    if not files:
        return []

    built: list[Path] = []
    first_error: IndexBuildError | None = None

    with ThreadPoolExecutor(max_workers=len(files)) as pool:
        futures = {
            pool.submit(
                build_index,
                f,
                index_binary=index_binary,
                index_worthy_size=index_worthy_size,
            ): f
            for f in files
        }
        for future in as_completed(futures):
            layer_file = futures[future]
            try:
                index_file = future.result()
            except IndexBuildError as exc:
                if first_error is None:
                    first_error = exc
                else:
                    logger.warning(
                        "Index failed after earlier failure | file=%s | error=%s",
                        layer_file.name,
                        exc.message,
                    )
                continue
            if index_file is not None:
                built.append(index_file)

    if first_error is not None:
        logger.error(
            "Index build failed | file=%s | jobs=%d",
            Path(first_error.path).name,
            len(files),
        )
        raise first_error

    logger.info("Indexes complete | jobs=%d | built=%d", len(files), len(built))
    return built
