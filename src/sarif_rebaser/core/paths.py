"""Path utilities: segment splitting, case policy and common-run helpers.

Every helper here is pure.  Case sensitivity is never read from the running
platform implicitly: callers pass a ``CasePolicy`` (or an ``equal``
predicate), and ``CasePolicy.detect()`` is the single place that looks at
``sys.platform``.

Segment layout produced by :func:`split_uri`::

    file:///x/y/b.c      -> ["file://", "x", "y", "b.c"]
    http://host/a/b      -> ["http://host", "a", "b"]
    /x/y/b.c             -> ["", "x", "y", "b.c"]
    C:\\src\\b.c         -> ["C:", "src", "b.c"]

``join_uri`` reverses the split with ``'/'``.
"""

from __future__ import annotations

import operator
import re
import sys
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence, TypeVar
from urllib.parse import urlsplit

from sarif_rebaser.errors import MalformedUriError

T = TypeVar("T")

_SEPARATORS = re.compile(r"[/\\]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# Platforms whose default file systems compare names case-insensitively.
_CASE_INSENSITIVE_PLATFORMS = frozenset({"win32", "cygwin", "darwin"})


@dataclass(frozen=True)
class CasePolicy:
    """How path segments are compared on the current machine."""

    case_insensitive: bool = False

    @classmethod
    def detect(cls, platform: str | None = None) -> CasePolicy:
        plat = sys.platform if platform is None else platform
        return cls(case_insensitive=plat in _CASE_INSENSITIVE_PLATFORMS)

    def key(self, segment: str) -> str:
        return segment.lower() if self.case_insensitive else segment

    def equal(self, a: str, b: str) -> bool:
        return self.key(a) == self.key(b)

    def normalize_uri(self, uri: str) -> str:
        """Canonical lookup key for a local uri.

        Only ``file:`` uris and plain paths fold case; other schemes keep
        their spelling because their servers decide case semantics.
        """
        if not self.case_insensitive:
            return uri
        scheme = _scheme_of(uri)
        if scheme in ("", "file"):
            return uri.lower()
        return uri


def _scheme_of(uri: str) -> str:
    try:
        scheme = urlsplit(uri).scheme
    except ValueError:
        return ""
    # A single letter is a drive (``C:\\x``), not a scheme.
    return scheme if len(scheme) > 1 else ""


def _normalize_segments(segments: list[str], *, keep_leading_empty: bool) -> list[str]:
    """Drop empty and ``.`` segments, fold ``..`` into an ordinary parent."""
    out: list[str] = []
    for index, seg in enumerate(segments):
        if seg == "":
            if index == 0 and keep_leading_empty:
                out.append(seg)
            continue
        if seg == ".":
            continue
        if seg == ".." and out and out[-1] not in ("", ".."):
            out.pop()
            continue
        out.append(seg)
    return out


def split_uri(uri: str) -> list[str]:
    """Split *uri* into ``scheme://authority`` plus path segments.

    Query and fragment are ignored.  Raises ``MalformedUriError`` when the
    input cannot be interpreted as a uri or path at all.
    """
    if not isinstance(uri, str):
        raise MalformedUriError(uri, "expected a string")
    if not uri.strip():
        raise MalformedUriError(uri, "empty")
    if _CONTROL_CHARS.search(uri):
        raise MalformedUriError(uri, "contains control characters")
    try:
        parts = urlsplit(uri)
    except ValueError as exc:
        raise MalformedUriError(uri, str(exc)) from exc

    if len(parts.scheme) > 1:
        head = f"{parts.scheme}://{parts.netloc}"
        path = parts.path[1:] if parts.path.startswith("/") else parts.path
        return [head, *_normalize_segments(_SEPARATORS.split(path), keep_leading_empty=False)]

    # Plain path, possibly with a drive letter.
    return _normalize_segments(_SEPARATORS.split(uri), keep_leading_empty=True)


def join_uri(segments: Sequence[str]) -> str:
    return "/".join(segments)


def file_name(uri: str) -> str:
    """Last path component of *uri* (``''`` when it ends in a separator)."""
    return _SEPARATORS.split(uri)[-1]


def parent_uri(uri: str) -> str:
    """The directory part of *uri*, in the same form as the input."""
    segments = split_uri(uri)
    if len(segments) <= 1:
        return join_uri(segments)
    return join_uri(segments[:-1])


def common_length(
    a: Sequence[T],
    b: Sequence[T],
    equal: Callable[[T, T], bool] = operator.eq,
) -> int:
    """Length of the shared leading run of *a* and *b*."""
    i = 0
    while i < len(a) and i < len(b) and equal(a[i], b[i]):
        i += 1
    return i


def common_suffix_length(
    a: Sequence[str],
    b: Sequence[str],
    policy: CasePolicy | None = None,
) -> int:
    """Number of trailing segments *a* and *b* share under *policy*."""
    equal = policy.equal if policy is not None else operator.eq
    return common_length(a[::-1], b[::-1], equal)


def common_indices(
    a: Sequence[T],
    b: Sequence[T],
    equal: Callable[[T, T], bool] = operator.eq,
) -> Iterator[tuple[int, int]]:
    """Yield ``(i, j)`` for every ``a[i] == b[j]``, scanning *a* then *b*.

    >>> list(common_indices(["a", "b", "c"], ["x", "b", "y", "c", "z", "b"]))
    [(1, 1), (1, 5), (2, 3)]
    """
    for a_index, a_part in enumerate(a):
        for b_index, b_part in enumerate(b):
            if equal(a_part, b_part):
                yield a_index, b_index
