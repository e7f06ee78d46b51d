"""Rebaser configuration dataclass.

Precedence (lowest to highest): defaults, JSON config file, environment
variables, explicit CLI / API arguments.

Environment variables:
    SARIF_REBASER_URI_BASES         comma-separated local base uris
    SARIF_REBASER_CASE_INSENSITIVE  1/true/yes/on or 0/false/no/off
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping

import jsonschema

from sarif_rebaser.contracts.load import validate_instance
from sarif_rebaser.core.discover import DEFAULT_IGNORE_DIRS, DiscoverConfig
from sarif_rebaser.core.paths import CasePolicy
from sarif_rebaser.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_SCHEMA = "rebaser_config.schema.json"
DEFAULT_CONFIG_NAME = ".sarif-rebaser.json"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class RebaserConfig:
    """Immutable rebaser configuration."""

    uri_bases: tuple[str, ...] = ()
    case_insensitive: bool | None = None   # None = detect from platform
    workspace_root: Path | None = None
    ignore_dirs: frozenset[str] = DEFAULT_IGNORE_DIRS
    include_exts: tuple[str, ...] = ()
    max_file_bytes: int = 50_000_000

    def policy(self) -> CasePolicy:
        if self.case_insensitive is None:
            return CasePolicy.detect()
        return CasePolicy(case_insensitive=self.case_insensitive)

    def discover_config(self) -> DiscoverConfig:
        if self.workspace_root is None:
            raise ConfigError("workspace_root is not set")
        return DiscoverConfig(
            root=self.workspace_root,
            include_exts=self.include_exts,
            ignore_dirs=self.ignore_dirs,
            max_file_bytes=self.max_file_bytes,
        )


def config_from_dict(data: Mapping, *, base_dir: Path | None = None) -> RebaserConfig:
    """Build a config from a schema-valid mapping.

    A relative ``workspace_root`` is taken relative to *base_dir*.
    """
    try:
        validate_instance(dict(data), CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc.message}") from exc

    root = data.get("workspace_root")
    workspace_root = None
    if root:
        workspace_root = Path(root)
        if not workspace_root.is_absolute() and base_dir is not None:
            workspace_root = base_dir / workspace_root
    config = RebaserConfig(
        uri_bases=tuple(data.get("uri_bases", ())),
        case_insensitive=data.get("case_insensitive"),
        workspace_root=workspace_root,
        include_exts=tuple(data.get("include_exts", ())),
    )
    if "ignore_dirs" in data:
        config = replace(config, ignore_dirs=frozenset(data["ignore_dirs"]))
    if "max_file_bytes" in data:
        config = replace(config, max_file_bytes=int(data["max_file_bytes"]))
    return config


def load_config(path: Path) -> RebaserConfig:
    """Read and validate a JSON configuration file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top-level value must be an object")
    logger.debug("loaded configuration from %s", path)
    return config_from_dict(data, base_dir=path.resolve().parent)


def config_from_env(
    base: RebaserConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> RebaserConfig:
    """Apply ``SARIF_REBASER_*`` overrides on top of *base*."""
    env = os.environ if environ is None else environ
    config = base or RebaserConfig()

    bases = env.get("SARIF_REBASER_URI_BASES")
    if bases is not None:
        config = replace(
            config, uri_bases=tuple(b.strip() for b in bases.split(",") if b.strip())
        )

    flag = env.get("SARIF_REBASER_CASE_INSENSITIVE")
    if flag is not None:
        value = flag.strip().lower()
        if value in _TRUE:
            config = replace(config, case_insensitive=True)
        elif value in _FALSE:
            config = replace(config, case_insensitive=False)
        else:
            raise ConfigError(f"SARIF_REBASER_CASE_INSENSITIVE: unrecognized value {flag!r}")
    return config
