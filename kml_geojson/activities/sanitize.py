"""Layer name sanitisation for output file names.

KML layer names come from ``<Folder>``/``<Document>`` names, and
features at the document root get the KML filename as their layer
name. The result is used as the stem of ``<name>.geojson`` so it must
be safe on any filesystem.

Rules, applied in order:

1. Strip the ``.kml`` token wherever it occurs.
2. Replace space, ``\\``, ``/``, ``&`` and ``?`` with ``_``.
3. Drop every character outside ``[A-Za-z0-9_.-]``.
4. Strip ``.kml`` again until none remains, since step 3 can splice a
   new token together (``"a.k#ml"`` → ``"a.kml"``).

The function is total: an all-hostile name collapses to ``""``.
"""

from __future__ import annotations

import re

from kml_geojson.core.constants import SOURCE_EXTENSION

_PATH_HOSTILE_RE = re.compile(r"[ \\/&?]")
_DISALLOWED_RE = re.compile(r"[^_0-9a-zA-Z.-]")


def sanitize_layer_name(raw_name: str) -> str:
    """Map a raw layer label to a filesystem-safe identifier.

    Args:
        raw_name: Layer name as reported by the source document.

    Returns:
        A string containing only ``[A-Za-z0-9_.-]``, possibly empty.
        Sanitising an already-sanitised name returns it unchanged.
    """
    name = _strip_extension(raw_name)
    name = _PATH_HOSTILE_RE.sub("_", name)
    name = _DISALLOWED_RE.sub("", name)
    return _strip_extension(name)


def _strip_extension(name: str) -> str:
    while SOURCE_EXTENSION in name:
        name = name.replace(SOURCE_EXTENSION, "")
    return name
