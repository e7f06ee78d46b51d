"""
sarif_rebaser.api
=================

Programmatic entrypoints for hosts that embed the rebaser.

Goals:
  - No argparse / CLI dependencies
  - Deterministic mode support (ci_mode=True)
  - JSON-friendly outputs validated against the bundled contracts

Non-goals:
  - Owning presentation (tables, editors); callers render results
  - Persisting resolutions across sessions

Usage::

    from sarif_rebaser.api import rebase_logs

    report = rebase_logs(["scan.sarif"], "/work/project", ci_mode=True)
    for entry in report["artifacts"]:
        print(entry["artifact_uri"], "->", entry["local_uri"])
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from sarif_rebaser.contracts.load import validate_instance
from sarif_rebaser.core.collaborators import (
    CancellationToken,
    DirectoryWorkspace,
    ExistenceOracle,
    FileSystemOracle,
    PromptCollaborator,
    WorkspaceEnumerator,
)
from sarif_rebaser.core.config import RebaserConfig
from sarif_rebaser.core.rebaser import UriRebaser
from sarif_rebaser.model import ResolutionState
from sarif_rebaser.sarif.loader import LogStore, load_logs

__all__ = ["build_rebaser", "rebase_logs", "rebase_logs_async", "validate_instance"]

# Fixed timestamp for deterministic mode (matches CLI contract).
_DETERMINISTIC_TIMESTAMP = "2000-01-01T00:00:00+00:00"

REPORT_SCHEMA = "resolution_report.schema.json"


def _to_path(p: str | Path) -> Path:
    return p if isinstance(p, Path) else Path(p)


def _now_iso_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_rebaser(
    store: LogStore,
    *,
    config: Optional[RebaserConfig] = None,
    workspace: Optional[WorkspaceEnumerator] = None,
    oracle: Optional[ExistenceOracle] = None,
    prompt: Optional[PromptCollaborator] = None,
) -> UriRebaser:
    """Wire a ``UriRebaser`` for the logs in *store*.

    When no *workspace* is given and the config names a ``workspace_root``,
    the files under that directory become the workspace snapshot.
    """
    cfg = config or RebaserConfig()
    if workspace is None and cfg.workspace_root is not None:
        workspace = DirectoryWorkspace(cfg.discover_config())
    return UriRebaser(
        store.distinct_artifact_names,
        oracle=oracle or FileSystemOracle(),
        prompt=prompt,
        workspace=workspace,
        policy=cfg.policy(),
        artifact_uris=store.artifact_uris(),
        uri_bases=cfg.uri_bases,
    )


async def rebase_logs_async(
    log_paths: Iterable[str | Path],
    workspace_root: str | Path | None = None,
    *,
    uri_bases: Iterable[str] = (),
    config: Optional[RebaserConfig] = None,
    oracle: Optional[ExistenceOracle] = None,
    prompt: Optional[PromptCollaborator] = None,
    token: Optional[CancellationToken] = None,
    ci_mode: bool = False,
) -> dict[str, Any]:
    """Load *log_paths* and resolve every artifact they reference.

    Resolution is interactive only when a *prompt* is supplied.

    Returns
    -------
    A ``resolution_report_v1`` dict, validated against
    ``resolution_report.schema.json``.

    Raises
    ------
    FileNotFoundError
        If *workspace_root* does not exist.
    """
    cfg = config or RebaserConfig()
    if workspace_root is not None:
        root = _to_path(workspace_root).resolve()
        if not root.exists():
            raise FileNotFoundError(f"rebase_logs: workspace does not exist: {root}")
        cfg = replace(cfg, workspace_root=root)
    extra_bases = tuple(uri_bases)
    if extra_bases:
        cfg = replace(cfg, uri_bases=cfg.uri_bases + extra_bases)

    workspace_uri = cfg.workspace_root.as_uri() + "/" if cfg.workspace_root else None
    store = LogStore(
        load_logs(
            [_to_path(p) for p in log_paths],
            workspace_uri=workspace_uri,
            token=token,
        )
    )
    rebaser = build_rebaser(store, config=cfg, oracle=oracle, prompt=prompt)

    artifact_uris = store.artifact_uris()
    resolved = await rebaser.resolve_all(
        artifact_uris, token=token, interactive=prompt is not None
    )
    counts = Counter(r.uri for r in store.results if r.uri)

    artifacts = []
    for artifact_uri in artifact_uris:
        local_uri = resolved.get(artifact_uri, "")
        artifacts.append(
            {
                "artifact_uri": artifact_uri,
                "local_uri": local_uri,
                "state": rebaser.state(artifact_uri).value,
                "result_count": counts[artifact_uri],
            }
        )
    states = Counter(a["state"] for a in artifacts)

    report: dict[str, Any] = {
        "schema_version": "resolution_report_v1",
        "created_at": _DETERMINISTIC_TIMESTAMP if ci_mode else _now_iso_utc(),
        "workspace": workspace_uri,
        "uri_bases": list(rebaser.uri_bases),
        "case_insensitive": rebaser.policy.case_insensitive,
        "logs": [log.uri for log in store.logs],
        "artifacts": artifacts,
        "summary": {
            "total": len(artifacts),
            "resolved": states[ResolutionState.RESOLVED.value],
            "unresolved": states[ResolutionState.UNRESOLVED.value],
            "declined": states[ResolutionState.DECLINED.value],
        },
    }
    validate_instance(report, REPORT_SCHEMA)
    return report


def rebase_logs(
    log_paths: Iterable[str | Path],
    workspace_root: str | Path | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """Synchronous wrapper around :func:`rebase_logs_async`."""
    return asyncio.run(rebase_logs_async(log_paths, workspace_root, **kwargs))
