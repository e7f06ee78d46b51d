"""Enums shared across the rebaser, the loader and the CLI."""

from __future__ import annotations

from enum import Enum


class ResolutionState(str, Enum):
    """Lifecycle of a single artifact uri within a session."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    DECLINED = "declined"


class PromptChoice(str, Enum):
    """Answer to "Unable to find file": locate it manually or skip."""

    LOCATE = "locate"
    SKIP = "skip"


class ResultLevel(str, Enum):
    """SARIF ``result.level`` values."""

    NONE = "none"
    NOTE = "note"
    WARNING = "warning"
    ERROR = "error"


class SupportStatus(str, Enum):
    """Whether a log's version/schema pair can be loaded."""

    SUPPORTED = "supported"
    NEWER = "newer"              # loaded, but newer than this package knows
    UNSUPPORTED = "unsupported"
