"""Tests for SARIF log loading, version support and artifact locations."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from sarif_rebaser.errors import LogLoadError
from sarif_rebaser.model import ResultLevel, SupportStatus
from sarif_rebaser.sarif.artifacts import (
    is_absolute,
    parse_artifact_location,
    resolve_uri_base_id,
)
from sarif_rebaser.sarif.loader import (
    LogStore,
    augment_log,
    detect_support,
    effective_level,
    load_logs,
    normalize_schema,
    override_base_uri,
    read_log,
    try_fast_upgrade,
)

SCHEMA_210 = "https://json.schemastore.org/sarif-2.1.0.json"
SCHEMA_RTM4 = "https://schemastore.azurewebsites.net/schemas/json/sarif-2.1.0-rtm.4.json"


def _result(uri: str, **extra) -> dict:
    result = {
        "ruleId": "R1",
        "message": {"text": "problem"},
        "locations": [{"physicalLocation": {"artifactLocation": {"uri": uri}}}],
    }
    result.update(extra)
    return result


def _log(*uris: str, version: str = "2.1.0", schema: str = SCHEMA_210) -> dict:
    return {
        "version": version,
        "$schema": schema,
        "runs": [{"tool": {"driver": {"name": "lint"}}, "results": [_result(u) for u in uris]}],
    }


def _write(path: Path, data: dict, *, bom: bool = False) -> Path:
    text = json.dumps(data)
    path.write_text(("\ufeff" if bom else "") + text, encoding="utf-8")
    return path


# ── uriBaseId resolution ────────────────────────────────────────────


class TestUriBaseIds:
    def test_is_absolute(self) -> None:
        assert is_absolute("file:///a")
        assert is_absolute("/a")
        assert not is_absolute("src/a.c")

    def test_chain_is_prepended_until_absolute(self) -> None:
        bases = {
            "SRC": {"uri": "src/", "uriBaseId": "ROOT"},
            "ROOT": {"uri": "file:///work/"},
        }
        assert resolve_uri_base_id("SRC", bases) == "file:///work/src/"

    def test_cycle_yields_none(self, caplog) -> None:
        bases = {
            "A": {"uri": "a/", "uriBaseId": "B"},
            "B": {"uri": "b/", "uriBaseId": "A"},
        }
        with caplog.at_level(logging.WARNING, logger="sarif_rebaser"):
            assert resolve_uri_base_id("A", bases) is None
        assert "cycle" in caplog.text

    def test_missing_id_yields_none(self) -> None:
        assert resolve_uri_base_id("NOPE", {}) is None

    def test_relative_location_gets_base(self) -> None:
        run = {"originalUriBaseIds": {"SRCROOT": {"uri": "file:///work/"}}}
        uri, base, contents = parse_artifact_location(
            run, {"uri": "src/a.c", "uriBaseId": "SRCROOT"}
        )
        assert uri == "file:///work/src/a.c"
        assert base == "file:///work/"
        assert contents is None

    def test_unresolvable_base_keeps_relative_uri(self) -> None:
        uri, base, _ = parse_artifact_location({}, {"uri": "src/a.c", "uriBaseId": "SRCROOT"})
        assert uri == "src/a.c"
        assert base is None

    def test_uri_from_run_artifacts_with_embedded_contents(self) -> None:
        run = {
            "artifacts": [
                {"location": {"uri": "file:///ci/a.c"}, "contents": {"text": "int x;"}}
            ]
        }
        uri, _, contents = parse_artifact_location(
            run, {"index": 0}, log_uri="file:///logs/x.sarif", run_index=2
        )
        assert uri == "file:///ci/a.c"
        assert contents is not None
        assert contents.startswith("sarif:")
        assert contents.endswith("/2/0/a.c")

    def test_missing_location(self) -> None:
        assert parse_artifact_location({}, None) == (None, None, None)


# ── version support ─────────────────────────────────────────────────


class TestVersionSupport:
    def test_normalize_schema(self) -> None:
        assert normalize_schema(SCHEMA_210) == "sarif-2.1.0"
        assert normalize_schema(SCHEMA_RTM4) == "sarif-2.1.0-rtm.4"
        assert normalize_schema("") == ""

    def test_supported(self) -> None:
        assert detect_support({"version": "2.1.0", "$schema": SCHEMA_210}) is SupportStatus.SUPPORTED
        assert detect_support({"version": "2.1.0"}) is SupportStatus.SUPPORTED

    def test_older_is_unsupported(self) -> None:
        assert detect_support({"version": "2.0.0"}) is SupportStatus.UNSUPPORTED
        assert detect_support({"version": "garbage"}) is SupportStatus.UNSUPPORTED

    def test_newer(self) -> None:
        assert detect_support({"version": "2.2.0"}) is SupportStatus.NEWER

    def test_unknown_rtm_schema_is_unsupported(self) -> None:
        data = {"version": "2.1.0", "$schema": SCHEMA_RTM4}
        assert detect_support(data) is SupportStatus.UNSUPPORTED

    def test_rtm4_upgrade_renames_suppression_state(self) -> None:
        data = _log("file:///a.c", schema=SCHEMA_RTM4)
        data["runs"][0]["results"][0]["suppressions"] = [{"kind": "inSource", "state": "accepted"}]
        assert try_fast_upgrade(data) is True
        suppression = data["runs"][0]["results"][0]["suppressions"][0]
        assert suppression == {"kind": "inSource", "status": "accepted"}
        assert detect_support(data) is SupportStatus.SUPPORTED

    def test_other_versions_are_not_upgraded(self) -> None:
        assert try_fast_upgrade({"version": "2.0.0"}) is False


# ── augmentation ────────────────────────────────────────────────────


class TestAugment:
    def test_results_and_distinct_names(self) -> None:
        data = _log("file:///ci/a.c", "file:///ci/x/b.c", "file:///ci/y/b.c")
        log = augment_log(data, "file:///logs/one.sarif", "file:///ci/")
        assert [r.relative_uri for r in log.results] == ["a.c", "x/b.c", "y/b.c"]
        assert log.results[0].result_id == ("file:///logs/one.sarif", 0, 0)
        assert log.distinct == {"a.c": "file:///ci/a.c"}
        assert log.artifact_uris() == ["file:///ci/a.c", "file:///ci/x/b.c", "file:///ci/y/b.c"]

    def test_message_strings_and_rule_default_level(self) -> None:
        data = _log()
        data["runs"][0]["tool"]["driver"]["rules"] = [
            {
                "id": "R1",
                "messageStrings": {"default": {"text": "Name {0} is unused in {1}"}},
                "defaultConfiguration": {"level": "error"},
            }
        ]
        data["runs"][0]["results"] = [
            _result("file:///a.c", message={"id": "default", "arguments": ["x", "f"]})
        ]
        (result,) = augment_log(data, "file:///l.sarif").results
        assert result.message == "Name x is unused in f"
        assert result.level is ResultLevel.ERROR
        assert result.to_dict()["suppression"] == "not suppressed"

    def test_effective_level(self) -> None:
        assert effective_level({"kind": "pass"}, None) is ResultLevel.NOTE
        assert effective_level({"kind": "review"}, None) is ResultLevel.WARNING
        assert effective_level({"level": "note"}, None) is ResultLevel.NOTE
        assert effective_level({}, None) is ResultLevel.WARNING

    def test_suppressions(self) -> None:
        data = _log()
        data["runs"][0]["results"] = [
            _result("file:///a.c", suppressions=[{"status": "accepted"}]),
            _result("file:///b.c", suppressions=[{"status": "rejected"}]),
        ]
        accepted, rejected = augment_log(data, "file:///l.sarif").results
        assert accepted.suppressed is True
        assert rejected.suppressed is False

    def test_override_base_uri(self) -> None:
        data = _log()
        data["runs"][0]["originalUriBaseIds"] = {"SRC": {"uri": "file:///old/"}}
        override_base_uri(data, "file:///new/")
        assert data["runs"][0]["originalUriBaseIds"]["SRC"]["uri"] == "file:///new/"


# ── loading ─────────────────────────────────────────────────────────


class TestLoadLogs:
    def test_read_log_strips_bom(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "bom.sarif", _log("file:///a.c"), bom=True)
        assert read_log(path)["version"] == "2.1.0"

    def test_read_log_rejects_bad_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.sarif"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LogLoadError, match="bad.sarif"):
            read_log(path)

    def test_read_log_rejects_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.sarif"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(LogLoadError, match="not an object"):
            read_log(path)

    def test_bad_and_unsupported_logs_are_skipped(self, tmp_path: Path, caplog) -> None:
        good = _write(tmp_path / "good.sarif", _log("file:///a.c"))
        bom = _write(tmp_path / "bom.sarif", _log("file:///b.c"), bom=True)
        old = _write(tmp_path / "old.sarif", _log("file:///c.c", version="1.0.0"))
        broken = tmp_path / "broken.sarif"
        broken.write_text("{", encoding="utf-8")
        missing = tmp_path / "missing.sarif"

        with caplog.at_level(logging.WARNING, logger="sarif_rebaser"):
            logs = load_logs([good, bom, old, broken, missing])

        assert [log.uri for log in logs] == [good.resolve().as_uri(), bom.resolve().as_uri()]
        assert "not supported" in caplog.text

    def test_newer_logs_load_with_warning(self, tmp_path: Path, caplog) -> None:
        newer = _write(tmp_path / "new.sarif", _log("file:///a.c", version="2.2.0"))
        with caplog.at_level(logging.WARNING, logger="sarif_rebaser"):
            logs = load_logs([newer])
        assert len(logs) == 1
        assert "newer" in caplog.text

    def test_base_uri_override_applies_before_augmenting(self, tmp_path: Path) -> None:
        data = _log()
        data["runs"][0]["originalUriBaseIds"] = {"SRC": {"uri": "file:///ci/"}}
        data["runs"][0]["results"] = [
            {
                "message": {"text": "m"},
                "locations": [
                    {"physicalLocation": {"artifactLocation": {"uri": "a.c", "uriBaseId": "SRC"}}}
                ],
            }
        ]
        path = _write(tmp_path / "x.sarif", data)
        (log,) = load_logs([path], base_uri="file:///local/")
        assert log.results[0].uri == "file:///local/a.c"


class TestLogStore:
    def test_logs_are_unique_by_uri(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "a.sarif", _log("file:///a.c"))
        store = LogStore(load_logs([path]))
        store.add(load_logs([path]))
        assert len(store.logs) == 1
        assert len(store.results) == 1

    def test_distinct_names_merge_across_logs(self, tmp_path: Path) -> None:
        one = _write(tmp_path / "one.sarif", _log("file:///x/a.c", "file:///x/b.c"))
        two = _write(tmp_path / "two.sarif", _log("file:///y/a.c", "file:///x/b.c"))
        store = LogStore(load_logs([one, two]))
        assert store.distinct_artifact_names == {"b.c": "file:///x/b.c"}
        assert store.artifact_uris() == ["file:///x/a.c", "file:///x/b.c", "file:///y/a.c"]
