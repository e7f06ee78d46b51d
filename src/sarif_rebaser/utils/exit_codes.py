"""Centralized exit-code contract for all CLI commands.

Code  Meaning
----  -------
  0   Success: every artifact resolved / instance valid
  1   Violation: some artifacts unresolved or declined / schema violation
  2   Error: usage error, missing log, malformed uri, bad configuration
"""

from __future__ import annotations

from enum import IntEnum
from typing import Mapping


class ExitCode(IntEnum):
    SUCCESS = 0
    VIOLATION = 1
    ERROR = 2


def exit_code_for_summary(summary: Mapping[str, int]) -> ExitCode:
    """Map a resolution report ``summary`` block onto the exit contract."""
    if summary.get("resolved", 0) == summary.get("total", 0):
        return ExitCode.SUCCESS
    return ExitCode.VIOLATION
