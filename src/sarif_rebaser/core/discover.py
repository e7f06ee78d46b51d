"""Workspace discovery: enumerate local files a result may point at."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

# Directory basenames never considered part of the workspace.
DEFAULT_IGNORE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "venv",
        "__pycache__",
        "node_modules",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
    }
)

_DEFAULT_IGNORE_FILES = frozenset({".DS_Store", "Thumbs.db"})


@dataclass(frozen=True)
class DiscoverConfig:
    """Configuration for workspace enumeration.

    ``include_exts`` empty means every file qualifies: SARIF results can
    point at any file type, not only source code.
    """

    root: Path = field(default_factory=lambda: Path("."))
    include_exts: tuple[str, ...] = ()
    ignore_dirs: frozenset[str] = DEFAULT_IGNORE_DIRS
    ignore_files: frozenset[str] = _DEFAULT_IGNORE_FILES
    follow_symlinks: bool = False
    max_file_bytes: int = 50_000_000


def iter_workspace_files(cfg: DiscoverConfig) -> Iterator[Path]:
    """Yield files under *cfg.root* in a stable (sorted) order."""
    root = cfg.root
    if not root.exists():
        return
    exts = tuple(e.lower() for e in cfg.include_exts)
    for p in sorted(root.rglob("*")):
        try:
            if p.is_symlink() and not cfg.follow_symlinks:
                continue
            if not p.is_file():
                continue
            if p.name in cfg.ignore_files:
                continue
            if exts and p.suffix.lower() not in exts:
                continue
            # skip if any parent is in ignore_dirs
            if any(part in cfg.ignore_dirs for part in p.relative_to(root).parts):
                continue
            if p.stat().st_size > cfg.max_file_bytes:
                continue
            yield p.resolve()
        except OSError:
            continue


def discover_workspace_uris(cfg: DiscoverConfig) -> list[str]:
    """``file:`` uris of every workspace file, enumeration order preserved."""
    return [p.as_uri() for p in iter_workspace_files(cfg)]
