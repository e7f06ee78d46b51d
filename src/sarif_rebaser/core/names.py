"""Distinct name index: base file name to the single uri that carries it."""

from __future__ import annotations

from typing import Iterable

from sarif_rebaser.core.paths import file_name


def map_distinct(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Keep only keys that map to exactly one value.

    A key seen again with the *same* value collapses to one entry; a key
    seen with a *different* value is dropped entirely.
    """
    distinct: dict[str, str | None] = {}
    for key, value in pairs:
        if key in distinct:
            if distinct[key] != value:
                distinct[key] = None
        else:
            distinct[key] = value
    return {key: value for key, value in distinct.items() if value}


def file_and_uri_pairs(uris: Iterable[str]) -> list[tuple[str, str]]:
    """``(base name, uri)`` for every uri that names a file.

    A single leading slash is dropped from the uri so ``/a/b.c`` and
    ``a/b.c`` count as the same artifact.
    """
    pairs: list[tuple[str, str]] = []
    for uri in uris:
        if not uri:
            continue
        name = file_name(uri)
        if name:
            pairs.append((name, uri[1:] if uri.startswith("/") else uri))
    return pairs


def distinct_names(uris: Iterable[str]) -> dict[str, str]:
    return map_distinct(file_and_uri_pairs(uris))
