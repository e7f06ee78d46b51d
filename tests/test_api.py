"""Tests for sarif_rebaser.api: programmatic entrypoints.

Validates the public API surface that hosts use without CLI coupling.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sarif_rebaser.api import build_rebaser, rebase_logs, validate_instance
from sarif_rebaser.core.collaborators import CancellationToken, SetOracle, StaticWorkspace
from sarif_rebaser.core.config import RebaserConfig
from sarif_rebaser.model import PromptChoice
from sarif_rebaser.sarif.loader import LogStore, load_logs

SENSITIVE = RebaserConfig(case_insensitive=False)


def _write_log(path: Path, *uris: str) -> Path:
    data = {
        "version": "2.1.0",
        "runs": [
            {
                "tool": {"driver": {"name": "lint"}},
                "results": [
                    {
                        "message": {"text": "m"},
                        "locations": [
                            {"physicalLocation": {"artifactLocation": {"uri": u}}}
                        ],
                    }
                    for u in uris
                ],
            }
        ],
    }
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture()
def project(tmp_path: Path) -> tuple[Path, Path]:
    ws = tmp_path / "ws"
    (ws / "src").mkdir(parents=True)
    (ws / "src" / "app.py").write_text("print(1)\n", encoding="utf-8")
    log = _write_log(
        tmp_path / "scan.sarif",
        "file:///ci/build/src/app.py",
        "file:///ci/build/src/app.py",
        "file:///ci/build/src/missing.py",
    )
    return ws, log


class ScriptedPrompt:
    def __init__(self, choice) -> None:
        self.choice = choice
        self.asked: list[str] = []

    def ask_locate_or_skip(self, artifact_uri: str):
        self.asked.append(artifact_uri)
        return self.choice

    def pick_file(self, seed_directory):
        return None


# ── rebase_logs ─────────────────────────────────────────────────────


class TestRebaseLogs:
    """rebase_logs produces a valid resolution_report_v1 dict."""

    def test_returns_v1_shape(self, project) -> None:
        ws, log = project
        report = rebase_logs([log], ws, config=SENSITIVE, ci_mode=True)
        assert report["schema_version"] == "resolution_report_v1"
        assert report["workspace"] == ws.resolve().as_uri() + "/"
        assert report["logs"] == [log.resolve().as_uri()]
        assert report["case_insensitive"] is False

    def test_resolves_by_suffix(self, project) -> None:
        ws, log = project
        report = rebase_logs([log], ws, config=SENSITIVE, ci_mode=True)
        by_uri = {a["artifact_uri"]: a for a in report["artifacts"]}
        app = by_uri["file:///ci/build/src/app.py"]
        assert app["local_uri"] == (ws / "src" / "app.py").resolve().as_uri()
        assert app["state"] == "resolved"
        assert app["result_count"] == 2
        missing = by_uri["file:///ci/build/src/missing.py"]
        assert missing["local_uri"] == ""
        assert missing["state"] == "unresolved"
        assert report["summary"] == {"total": 2, "resolved": 1, "unresolved": 1, "declined": 0}

    def test_ci_mode_fixes_timestamp(self, project) -> None:
        ws, log = project
        report = rebase_logs([log], ws, config=SENSITIVE, ci_mode=True)
        assert report["created_at"] == "2000-01-01T00:00:00+00:00"

    def test_deterministic_across_runs(self, project) -> None:
        ws, log = project
        a = rebase_logs([log], ws, config=SENSITIVE, ci_mode=True)
        b = rebase_logs([log], ws, config=SENSITIVE, ci_mode=True)
        assert a == b, "Two ci_mode reports must be identical"

    def test_validates_against_schema(self, project) -> None:
        ws, log = project
        report = rebase_logs([log], ws, config=SENSITIVE, ci_mode=True)
        validate_instance(report, "resolution_report.schema.json")

    def test_nonexistent_workspace_raises(self, project) -> None:
        _, log = project
        with pytest.raises(FileNotFoundError, match="does not exist"):
            rebase_logs([log], "/nonexistent/path/xyz")

    def test_uri_bases_are_appended_to_config(self, project) -> None:
        ws, log = project
        base = (ws / "src").resolve().as_uri()
        report = rebase_logs(
            [log],
            config=RebaserConfig(case_insensitive=False, uri_bases=("file:///elsewhere",)),
            uri_bases=[base],
            ci_mode=True,
        )
        assert report["uri_bases"] == ["file:///elsewhere", base]
        assert report["workspace"] is None
        assert report["summary"]["resolved"] == 1

    def test_prompt_makes_resolution_interactive(self, project) -> None:
        ws, log = project
        prompt = ScriptedPrompt(PromptChoice.SKIP)
        report = rebase_logs([log], ws, config=SENSITIVE, prompt=prompt, ci_mode=True)
        assert prompt.asked == ["file:///ci/build/src/missing.py"]
        assert report["summary"]["declined"] == 1

    def test_injected_oracle(self, project) -> None:
        ws, log = project
        report = rebase_logs(
            [log], config=SENSITIVE, oracle=SetOracle(["file:///ci/build/src/missing.py"]), ci_mode=True
        )
        by_uri = {a["artifact_uri"]: a["local_uri"] for a in report["artifacts"]}
        assert by_uri["file:///ci/build/src/missing.py"] == "file:///ci/build/src/missing.py"

    def test_cancelled_token_resolves_nothing(self, project) -> None:
        ws, log = project
        token = CancellationToken()
        token.cancel()
        report = rebase_logs([log], ws, config=SENSITIVE, token=token, ci_mode=True)
        assert report["artifacts"] == []
        assert report["summary"]["total"] == 0


# ── build_rebaser ───────────────────────────────────────────────────


class TestBuildRebaser:
    def test_wires_store_names_and_config(self, project) -> None:
        _, log = project
        store = LogStore(load_logs([log]))
        rebaser = build_rebaser(
            store,
            config=RebaserConfig(case_insensitive=True, uri_bases=("file:///b",)),
            workspace=StaticWorkspace([]),
            oracle=SetOracle([]),
        )
        assert rebaser.policy.case_insensitive is True
        assert rebaser.uri_bases == ["file:///b"]
