"""Exception taxonomy.

Only hard failures are modelled as exceptions.  A resolution that finds
nothing (missing file, ambiguous match, user declined) is a normal outcome
and is reported as an empty string, never raised.
"""

from __future__ import annotations


class SarifRebaserError(Exception):
    """Base class for all errors raised by sarif_rebaser."""


class MalformedUriError(SarifRebaserError, ValueError):
    """An artifact or local URI could not be parsed at all."""

    def __init__(self, uri: object, reason: str) -> None:
        self.uri = uri
        self.reason = reason
        super().__init__(f"malformed uri {uri!r}: {reason}")


class LogLoadError(SarifRebaserError):
    """A SARIF log file could not be read or decoded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to load '{path}': {reason}")


class ConfigError(SarifRebaserError):
    """A rebaser configuration file is missing or invalid."""
