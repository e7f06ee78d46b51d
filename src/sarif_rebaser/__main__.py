"""CLI entry-point for sarif_rebaser.

Usage:
    python -m sarif_rebaser resolve <log.sarif>... [--workspace DIR] [--base URI ...]
                                    [--config FILE] [--interactive] [--json] [--ci]
    python -m sarif_rebaser names <log.sarif>... [--json]
    python -m sarif_rebaser validate <instance.json> <schema_name>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from sarif_rebaser import __version__
from sarif_rebaser.api import rebase_logs_async
from sarif_rebaser.contracts.load import list_schemas, validate_file
from sarif_rebaser.core.collaborators import ConsolePrompt
from sarif_rebaser.core.config import (
    DEFAULT_CONFIG_NAME,
    RebaserConfig,
    config_from_env,
    load_config,
)
from sarif_rebaser.errors import ConfigError, MalformedUriError
from sarif_rebaser.sarif.loader import LogStore, load_logs
from sarif_rebaser.utils.exit_codes import ExitCode, exit_code_for_summary
from sarif_rebaser.utils.json_norm import stable_json_dump

logger = logging.getLogger("sarif_rebaser")


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sarif-rebaser",
        description="Map SARIF result locations onto files in the current workspace.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug detail).",
    )
    sub = p.add_subparsers(dest="command")

    # ── resolve subcommand ──────────────────────────────────────────
    res_p = sub.add_parser(
        "resolve",
        help="Resolve every artifact of the given logs to a local file.",
    )
    res_p.add_argument("logs", nargs="+", type=Path, help="SARIF log files.")
    res_p.add_argument(
        "--workspace",
        type=Path,
        default=None,
        help="Workspace root whose files are candidates for suffix matching.",
    )
    res_p.add_argument(
        "--base",
        dest="bases",
        action="append",
        default=[],
        metavar="URI",
        help="Local base uri to try for rebasing (repeatable, tried in order).",
    )
    res_p.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"JSON configuration (default: <workspace>/{DEFAULT_CONFIG_NAME} if present).",
    )
    res_p.add_argument(
        "--case-insensitive",
        dest="case_insensitive",
        action="store_true",
        default=None,
        help="Compare path segments case-insensitively.",
    )
    res_p.add_argument(
        "--case-sensitive",
        dest="case_insensitive",
        action="store_false",
        help="Compare path segments case-sensitively.",
    )
    res_p.add_argument(
        "--interactive",
        action="store_true",
        default=False,
        help="Ask on the terminal for files that cannot be found automatically.",
    )
    res_p.add_argument(
        "--json",
        dest="json_out",
        action="store_true",
        default=False,
        help="Print the resolution report JSON to stdout.",
    )
    res_p.add_argument(
        "--ci",
        "--deterministic",
        dest="ci_mode",
        action="store_true",
        default=False,
        help="Enable deterministic output (fixed timestamp).",
    )

    # ── names subcommand ────────────────────────────────────────────
    names_p = sub.add_parser(
        "names",
        help="Show the distinct artifact name index of the given logs.",
    )
    names_p.add_argument("logs", nargs="+", type=Path, help="SARIF log files.")
    names_p.add_argument("--json", dest="json_out", action="store_true", default=False)

    # ── validate subcommand ─────────────────────────────────────────
    val_p = sub.add_parser(
        "validate",
        help="Validate a JSON instance against a bundled schema.",
    )
    val_p.add_argument("instance", type=Path, help="Path to the JSON file to validate.")
    val_p.add_argument(
        "schema_name",
        help=f"Bundled schema filename ({', '.join(list_schemas())})",
    )
    return p


def _missing(paths: list[Path]) -> list[Path]:
    return [p for p in paths if not p.is_file()]


def _resolve_config(args: argparse.Namespace) -> RebaserConfig:
    config_path: Path | None = args.config
    if config_path is None and args.workspace is not None:
        candidate = args.workspace / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            config_path = candidate
    cfg = load_config(config_path) if config_path is not None else RebaserConfig()
    cfg = config_from_env(cfg)
    if args.case_insensitive is not None:
        cfg = replace(cfg, case_insensitive=args.case_insensitive)
    return cfg


def _print_human(report: dict) -> None:
    summary = report["summary"]
    print(
        f"\n  {summary['resolved']}/{summary['total']} artifact(s) resolved"
        f" ({summary['declined']} declined, {summary['unresolved']} not found)\n",
        file=sys.stderr,
    )
    for entry in report["artifacts"]:
        if entry["local_uri"]:
            print(f"  OK    {entry['artifact_uri']}\n        -> {entry['local_uri']}")
        else:
            print(f"  {entry['state'].upper():<5} {entry['artifact_uri']}")


def _handle_resolve(args: argparse.Namespace) -> int:
    """Dispatch ``sarif-rebaser resolve``."""
    missing = _missing(args.logs)
    if missing:
        for p in missing:
            print(f"error: log does not exist: {p}", file=sys.stderr)
        return ExitCode.ERROR
    if args.workspace is not None and not args.workspace.is_dir():
        print(f"error: workspace is not a directory: {args.workspace}", file=sys.stderr)
        return ExitCode.ERROR

    try:
        cfg = _resolve_config(args)
        logger.debug("resolve with %s", cfg)
        report = asyncio.run(
            rebase_logs_async(
                args.logs,
                args.workspace,
                uri_bases=args.bases,
                config=cfg,
                prompt=ConsolePrompt() if args.interactive else None,
                ci_mode=args.ci_mode,
            )
        )
    except (ConfigError, MalformedUriError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR

    if args.json_out:
        stable_json_dump(report, sys.stdout)
    else:
        _print_human(report)

    return exit_code_for_summary(report["summary"])


def _handle_names(args: argparse.Namespace) -> int:
    """Dispatch ``sarif-rebaser names``."""
    missing = _missing(args.logs)
    if missing:
        for p in missing:
            print(f"error: log does not exist: {p}", file=sys.stderr)
        return ExitCode.ERROR
    store = LogStore(load_logs(args.logs))
    if not store.logs:
        print("error: no loadable logs", file=sys.stderr)
        return ExitCode.ERROR

    names = store.distinct_artifact_names
    if args.json_out:
        stable_json_dump(names, sys.stdout)
    else:
        for name in sorted(names):
            print(f"{name}\t{names[name]}")
    return ExitCode.SUCCESS


def _handle_validate(args: argparse.Namespace) -> int:
    """Dispatch ``sarif-rebaser validate``."""
    import jsonschema

    try:
        validate_file(args.instance, args.schema_name)
    except jsonschema.ValidationError as e:
        print(f"FAIL: {e.message}", file=sys.stderr)
        return ExitCode.VIOLATION
    except (OSError, ValueError) as e:
        # Exit code contract: 2 = runtime / schema not found / bad JSON
        print(f"ERROR: {e}", file=sys.stderr)
        return ExitCode.ERROR
    print("OK")
    return ExitCode.SUCCESS


def main(argv: list[str] | None = None) -> int:
    """Entry-point; returns an exit code (see ``utils/exit_codes.py``)."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "resolve":
        return _handle_resolve(args)
    if args.command == "names":
        return _handle_names(args)
    if args.command == "validate":
        return _handle_validate(args)

    parser.print_help(sys.stderr)
    return ExitCode.ERROR


if __name__ == "__main__":
    raise SystemExit(main())
