"""Contract tests for the bundled JSON schemas."""

from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from sarif_rebaser.contracts.load import list_schemas, load_schema, validate_file, validate_instance


def _report(**overrides) -> dict:
    report = {
        "schema_version": "resolution_report_v1",
        "created_at": "2000-01-01T00:00:00+00:00",
        "workspace": None,
        "uri_bases": [],
        "case_insensitive": False,
        "logs": [],
        "artifacts": [
            {"artifact_uri": "file:///a.c", "local_uri": "", "state": "declined", "result_count": 1}
        ],
        "summary": {"total": 1, "resolved": 0, "unresolved": 0, "declined": 1},
    }
    report.update(overrides)
    return report


class TestSchemas:
    def test_bundled_schemas(self) -> None:
        assert list_schemas() == [
            "rebaser_config.schema.json",
            "resolution_report.schema.json",
        ]

    @pytest.mark.parametrize("name", ["rebaser_config.schema.json", "resolution_report.schema.json"])
    def test_schemas_are_valid_draft_2020_12(self, name: str) -> None:
        schema = load_schema(name)
        jsonschema.Draft202012Validator.check_schema(schema)

    def test_unknown_schema(self) -> None:
        with pytest.raises(FileNotFoundError, match="known: rebaser_config"):
            load_schema("nope.schema.json")


class TestReportContract:
    def test_valid_report(self) -> None:
        validate_instance(_report(), "resolution_report.schema.json")

    def test_schema_version_is_frozen(self) -> None:
        with pytest.raises(jsonschema.ValidationError):
            validate_instance(_report(schema_version="resolution_report_v2"), "resolution_report.schema.json")

    def test_unknown_state_is_rejected(self) -> None:
        artifacts = [{"artifact_uri": "a", "local_uri": "", "state": "resolving", "result_count": 0}]
        with pytest.raises(jsonschema.ValidationError):
            validate_instance(_report(artifacts=artifacts), "resolution_report.schema.json")


class TestConfigContract:
    def test_validate_file(self, tmp_path: Path) -> None:
        path = tmp_path / ".sarif-rebaser.json"
        path.write_text(json.dumps({"case_insensitive": None, "include_exts": [".c"]}), encoding="utf-8")
        validate_file(path, "rebaser_config.schema.json")

    def test_empty_base_is_rejected(self) -> None:
        with pytest.raises(jsonschema.ValidationError):
            validate_instance({"uri_bases": [""]}, "rebaser_config.schema.json")
