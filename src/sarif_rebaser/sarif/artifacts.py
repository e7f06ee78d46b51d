"""Artifact locations: ``uri`` + ``uriBaseId`` + ``run.artifacts[index]``.

``uriBaseId`` chains are resolved the way SARIF §3.14.14 describes for
``run.originalUriBaseIds``: prepend each base until the result is absolute,
following ``uriBaseId`` links and stopping on a cycle or a missing id.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping
from urllib.parse import quote

from sarif_rebaser.core.paths import file_name

logger = logging.getLogger(__name__)

_ABSOLUTE = re.compile(r"^(/|[a-z][a-z0-9+\-.]*:)", re.IGNORECASE)


def is_absolute(uri: str) -> bool:
    return _ABSOLUTE.match(uri) is not None


def resolve_uri_base_id(
    uri_base_id: str, original_uri_base_ids: Mapping[str, Any]
) -> str | None:
    """Absolute uri for *uri_base_id*, or ``None`` when it cannot be resolved."""
    resolved = ""
    visited: set[str] = set()
    current: str | None = uri_base_id
    while current is not None:
        if current in visited:
            logger.warning("uriBaseId cycle through %r", current)
            return None
        visited.add(current)
        entry = original_uri_base_ids.get(current)
        if not isinstance(entry, Mapping):
            logger.debug("uriBaseId %r not in originalUriBaseIds", current)
            return None
        resolved = str(entry.get("uri") or "") + resolved
        if is_absolute(resolved):
            return resolved
        current = entry.get("uriBaseId")
    return None


def parse_artifact_location(
    run: Mapping[str, Any],
    artifact_location: Mapping[str, Any] | None,
    *,
    log_uri: str = "",
    run_index: int = 0,
) -> tuple[str | None, str | None, str | None]:
    """``(uri, uri_base, uri_contents)`` for one artifact location.

    *uri* is made absolute against its ``uriBaseId`` when that id resolves;
    otherwise the relative uri is returned unchanged.  *uri_contents* is a
    ``sarif:`` uri when the run embeds the artifact's text or bytes.
    """
    if not artifact_location:
        return None, None, None
    artifacts = run.get("artifacts") or []
    index = artifact_location.get("index")
    run_artifact: Mapping[str, Any] = {}
    if isinstance(index, int) and 0 <= index < len(artifacts):
        run_artifact = artifacts[index] or {}
    run_location = run_artifact.get("location") or {}
    contents = run_artifact.get("contents") or {}

    # If index is absent, uri SHALL be present.
    uri = artifact_location.get("uri") or run_location.get("uri") or ""
    uri_base_id = artifact_location.get("uriBaseId") or run_location.get("uriBaseId")
    uri_base = None
    if uri_base_id:
        uri_base = resolve_uri_base_id(uri_base_id, run.get("originalUriBaseIds") or {})
        if uri_base and uri and not is_absolute(uri):
            uri = uri_base + uri

    uri_contents = None
    if contents.get("text") or contents.get("binary"):
        name = file_name(uri) if uri else "Untitled"
        uri_contents = "sarif:" + quote(
            f"{quote(log_uri, safe='')}/{run_index}/{index}/{name or 'Untitled'}",
            safe="/%",
        )
    return uri, uri_base, uri_contents
