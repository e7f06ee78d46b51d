"""SarifLog / LogResult: the flattened view of a loaded log."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sarif_rebaser.model import ResultLevel

ResultId = tuple[str, int, int]  # (log uri, run index, result index)


@dataclass(frozen=True, slots=True)
class LogResult:
    """One ``runs[i].results[j]`` entry with its artifact location resolved."""

    result_id: ResultId
    uri: str | None
    uri_base: str | None = None
    uri_contents: str | None = None
    relative_uri: str = ""
    rule_id: str | None = None
    message: str = "—"
    level: ResultLevel = ResultLevel.WARNING
    baseline_state: str = "new"
    suppressed: bool = False
    region: dict | None = None

    def to_dict(self) -> dict:
        log_uri, run_index, result_index = self.result_id
        d: dict = {
            "id": [log_uri, run_index, result_index],
            "uri": self.uri,
            "relative_uri": self.relative_uri,
            "rule_id": self.rule_id,
            "message": self.message,
            "level": self.level.value,
            "baseline_state": self.baseline_state,
            "suppression": "suppressed" if self.suppressed else "not suppressed",
        }
        if self.uri_base:
            d["uri_base"] = self.uri_base
        if self.uri_contents:
            d["uri_contents"] = self.uri_contents
        if self.region:
            d["region"] = dict(self.region)
        return d


@dataclass
class SarifLog:
    """A parsed log plus the data derived from it at load time."""

    uri: str
    data: dict[str, Any]
    results: list[LogResult] = field(default_factory=list)
    distinct: dict[str, str] = field(default_factory=dict)

    @property
    def version(self) -> str:
        return str(self.data.get("version") or "")

    def artifact_uris(self) -> list[str]:
        """Distinct result artifact uris, first-seen order."""
        seen: dict[str, None] = {}
        for result in self.results:
            if result.uri:
                seen.setdefault(result.uri, None)
        return list(seen)
