"""Load and validate JSON instances against the bundled schemas.

Two contracts ship with the package:

* ``rebaser_config.schema.json``      the ``.sarif-rebaser.json`` file
* ``resolution_report.schema.json``   the ``resolve --json`` / API report

Usage::

    from sarif_rebaser.contracts.load import validate_instance, validate_file

    validate_instance(report, "resolution_report.schema.json")
    validate_file(Path(".sarif-rebaser.json"), "rebaser_config.schema.json")
"""

from __future__ import annotations

import functools
import json
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema

SCHEMA_DIR = "data/schemas"


def _schema_dir() -> Path:
    """Directory holding the bundled schemas.

    Priority:
    1. ``src/sarif_rebaser/data/schemas/`` relative to this file
    2. pip-installed package data via importlib.resources
    """
    canonical = Path(__file__).resolve().parents[1] / SCHEMA_DIR
    if canonical.is_dir():
        return canonical
    with resources.as_file(resources.files("sarif_rebaser") / SCHEMA_DIR) as p:
        return p


def list_schemas() -> list[str]:
    return sorted(p.name for p in _schema_dir().glob("*.schema.json"))


def _schema_path(name: str) -> Path:
    path = _schema_dir() / name
    if not path.is_file():
        known = ", ".join(list_schemas())
        raise FileNotFoundError(f"unknown schema {name!r} (known: {known})")
    return path


@functools.lru_cache(maxsize=None)
def _load_schema_text(name: str) -> str:
    return _schema_path(name).read_text(encoding="utf-8")


def load_schema(name: str) -> dict[str, Any]:
    """Load a bundled JSON schema by filename.

    Raises ``FileNotFoundError`` for names that are not bundled.
    """
    return json.loads(_load_schema_text(name))


def validate_instance(instance: Any, schema_name: str) -> None:
    """Validate *instance* against the named schema.

    Raises ``jsonschema.ValidationError`` on failure.
    """
    schema = load_schema(schema_name)
    jsonschema.validate(instance=instance, schema=schema)


def validate_file(instance_path: Path, schema_name: str) -> None:
    """Load a JSON file and validate it against the named schema."""
    instance = json.loads(instance_path.read_text(encoding="utf-8"))
    validate_instance(instance, schema_name)
