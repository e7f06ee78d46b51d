"""Shared utilities for sarif_rebaser."""

from sarif_rebaser.utils.exit_codes import ExitCode, exit_code_for_summary
from sarif_rebaser.utils.json_norm import stable_json_dump, stable_json_dumps

__all__ = [
    "ExitCode",
    "exit_code_for_summary",
    "stable_json_dump",
    "stable_json_dumps",
]
