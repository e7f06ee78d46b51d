"""Load SARIF logs from disk and derive what the rebaser needs from them.

Usage::

    from sarif_rebaser.sarif.loader import LogStore, load_logs

    store = LogStore(load_logs([Path("scan.sarif")]))
    store.distinct_artifact_names   # {"app.py": "file:///ci/src/app.py", ...}
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Mapping
from urllib.parse import urlsplit

from sarif_rebaser.core.collaborators import CancellationToken
from sarif_rebaser.core.names import file_and_uri_pairs, map_distinct
from sarif_rebaser.errors import LogLoadError
from sarif_rebaser.model import ResultLevel, SupportStatus
from sarif_rebaser.model.sarif_log import LogResult, SarifLog
from sarif_rebaser.sarif.artifacts import parse_artifact_location

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = (2, 1, 0)

# As of 2023 the contents of ``sarif-2.1.0`` equal ``sarif-2.1.0-rtm.6``.
_SUPPORTED_SCHEMAS = frozenset({"", "sarif-2.1.0-rtm.6", "sarif-2.1.0-rtm.5", "sarif-2.1.0"})
_RTM5_SCHEMA = "https://schemastore.azurewebsites.net/schemas/json/sarif-2.1.0-rtm.5.json"
_MESSAGE_ARG = re.compile(r"\{(\d+)\}")


# ── version support ─────────────────────────────────────────────────


def _parse_version(version: str) -> tuple[int, ...] | None:
    try:
        return tuple(int(p) for p in version.split("-", 1)[0].split("."))
    except ValueError:
        return None


def normalize_schema(schema: str) -> str:
    """``https://…/sarif-2.1.0-rtm.5.json`` -> ``sarif-2.1.0-rtm.5``."""
    if not schema:
        return ""
    name = urlsplit(schema).path.rsplit("/", 1)[-1]
    name = name.replace("-schema", "")
    return re.sub(r"\.json$", "", name)


def detect_support(data: Mapping[str, Any]) -> SupportStatus:
    version = _parse_version(str(data.get("version") or ""))
    if version is None or version < SUPPORTED_VERSION:
        return SupportStatus.UNSUPPORTED
    if version > SUPPORTED_VERSION:
        return SupportStatus.NEWER
    if normalize_schema(str(data.get("$schema") or "")) in _SUPPORTED_SCHEMAS:
        return SupportStatus.SUPPORTED
    return SupportStatus.UNSUPPORTED


def try_fast_upgrade(data: dict[str, Any]) -> bool:
    """Upgrade a pre-rtm.5 2.1.0 log in memory.  Returns True if usable."""
    if _parse_version(str(data.get("version") or "")) != SUPPORTED_VERSION:
        return False
    schema = normalize_schema(str(data.get("$schema") or "")).removeprefix("sarif-")
    if schema in ("2.1.0-rtm.1", "2.1.0-rtm.2", "2.1.0-rtm.3", "2.1.0-rtm.4"):
        _apply_rtm5(data)
        return True
    # No impactful changes between rtm.5 and rtm.6.
    return schema == "2.1.0-rtm.6"


def _apply_rtm5(data: dict[str, Any]) -> None:
    data["$schema"] = _RTM5_SCHEMA
    for run in data.get("runs") or []:
        for result in run.get("results") or []:
            for suppression in result.get("suppressions") or []:
                if "state" in suppression:
                    suppression["status"] = suppression.pop("state")


# ── augmentation ────────────────────────────────────────────────────


def _format_message(template: str | None, args: list[str] | None) -> str | None:
    if not template:
        return None
    if not args:
        return template

    def _arg(m: re.Match) -> str:
        i = int(m.group(1))
        return str(args[i]) if i < len(args) else m.group(0)

    return _MESSAGE_ARG.sub(_arg, template)


def _find_rule(run: Mapping[str, Any], result: Mapping[str, Any]) -> Mapping[str, Any] | None:
    tool = run.get("tool") or {}
    rule_ref = result.get("rule") or {}
    component = tool.get("driver") or {}
    component_index = (rule_ref.get("toolComponent") or {}).get("index")
    extensions = tool.get("extensions") or []
    if isinstance(component_index, int) and 0 <= component_index < len(extensions):
        component = extensions[component_index]
    rules = component.get("rules") or []
    rule_index = rule_ref.get("index", result.get("ruleIndex"))
    if isinstance(rule_index, int) and 0 <= rule_index < len(rules):
        return rules[rule_index]
    rule_id = result.get("ruleId") or rule_ref.get("id")
    return next((r for r in rules if r.get("id") == rule_id), None)


def effective_level(result: Mapping[str, Any], rule: Mapping[str, Any] | None) -> ResultLevel:
    kind = result.get("kind")
    if kind in ("informational", "notApplicable", "pass"):
        return ResultLevel.NOTE
    if kind in ("open", "review"):
        return ResultLevel.WARNING
    level = result.get("level") or ((rule or {}).get("defaultConfiguration") or {}).get("level")
    try:
        return ResultLevel(level or "warning")
    except ValueError:
        return ResultLevel.WARNING


def _relative_to(uri: str, workspace_uri: str | None) -> str:
    # Empty groups more predictably than None.
    if workspace_uri and uri.startswith(workspace_uri):
        return uri[len(workspace_uri):]
    return uri


def augment_log(data: dict[str, Any], log_uri: str, workspace_uri: str | None = None) -> SarifLog:
    """Flatten every result of *data* and build the log's distinct name index."""
    log = SarifLog(uri=log_uri, data=data)
    for run_index, run in enumerate(data.get("runs") or []):
        for result_index, result in enumerate(run.get("results") or []):
            locations = result.get("locations") or [{}]
            physical = (locations[0] or {}).get("physicalLocation") or {}
            uri, uri_base, uri_contents = parse_artifact_location(
                run,
                physical.get("artifactLocation"),
                log_uri=log_uri,
                run_index=run_index,
            )
            rule = _find_rule(run, result)
            message = result.get("message") or {}
            template = ((rule or {}).get("messageStrings") or {}).get(message.get("id") or "") or {}
            text = _format_message(template.get("text") or message.get("text"), message.get("arguments"))
            suppressions = result.get("suppressions") or []
            log.results.append(
                LogResult(
                    result_id=(log_uri, run_index, result_index),
                    uri=uri or None,
                    uri_base=uri_base,
                    uri_contents=uri_contents,
                    relative_uri=_relative_to(uri or "", workspace_uri),
                    rule_id=result.get("ruleId") or (rule or {}).get("id"),
                    message=text or "—",
                    level=effective_level(result, rule),
                    baseline_state=result.get("baselineState") or "new",
                    suppressed=bool(suppressions)
                    and not all(s.get("status") == "rejected" for s in suppressions),
                    region=physical.get("region"),
                )
            )
    log.distinct = map_distinct(file_and_uri_pairs(r.uri for r in log.results if r.uri))
    return log


def override_base_uri(data: dict[str, Any], new_base_uri: str | None) -> None:
    """Point every ``originalUriBaseIds`` entry of every run at *new_base_uri*."""
    if not new_base_uri:
        return
    for run in data.get("runs") or []:
        for entry in (run.get("originalUriBaseIds") or {}).values():
            entry["uri"] = new_base_uri


# ── loading ─────────────────────────────────────────────────────────


def read_log(path: Path) -> dict[str, Any]:
    """Parse one log file.  Raises ``LogLoadError``."""
    try:
        text = path.read_text(encoding="utf-8").lstrip("\ufeff")  # BOM
        data = json.loads(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise LogLoadError(str(path), str(exc)) from exc
    if not isinstance(data, dict):
        raise LogLoadError(str(path), "top-level JSON value is not an object")
    return data


def load_logs(
    paths: Iterable[Path],
    *,
    workspace_uri: str | None = None,
    base_uri: str | None = None,
    token: CancellationToken | None = None,
) -> list[SarifLog]:
    """Read, upgrade, filter and augment logs.  Bad files are logged and skipped."""
    logs: list[SarifLog] = []
    newer = False
    for path in paths:
        if token is not None and token.is_cancellation_requested:
            logger.info("log loading cancelled")
            break
        try:
            data = read_log(path)
        except LogLoadError as exc:
            logger.error("%s", exc)
            continue
        try_fast_upgrade(data)
        status = detect_support(data)
        if status is SupportStatus.UNSUPPORTED:
            logger.warning(
                "'%s' was not loaded. Version '%s' and schema '%s' is not supported.",
                path,
                data.get("version"),
                data.get("$schema") or "",
            )
            continue
        newer = newer or status is SupportStatus.NEWER
        override_base_uri(data, base_uri)
        log = augment_log(data, path.resolve().as_uri(), workspace_uri)
        logger.info("loaded %s: %d results", path, len(log.results))
        logs.append(log)
    if newer:
        logger.warning("Some log versions are newer than this package supports.")
    return logs


class LogStore:
    """Loaded logs, unique by uri, with the merged distinct name index."""

    def __init__(self, logs: Iterable[SarifLog] = ()) -> None:
        self.logs: list[SarifLog] = []
        self.add(logs)

    def add(self, logs: Iterable[SarifLog]) -> None:
        known = {log.uri for log in self.logs}
        for log in logs:
            if log.uri not in known:
                known.add(log.uri)
                self.logs.append(log)

    @property
    def results(self) -> list[LogResult]:
        return [r for log in self.logs for r in log.results]

    @property
    def distinct_artifact_names(self) -> dict[str, str]:
        return map_distinct(pair for log in self.logs for pair in log.distinct.items())

    def artifact_uris(self) -> list[str]:
        seen: dict[str, None] = {}
        for log in self.logs:
            for uri in log.artifact_uris():
                seen.setdefault(uri, None)
        return list(seen)
