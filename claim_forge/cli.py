"""Command-line entry point.

Usage:
    claim-forge build [--kinds ptp,mue,aoc] [--max-age HOURS] [--verbose]
    claim-forge status
    claim-forge validate claim.json [--issues]
    claim-forge history [--limit N]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from . import config
from .errors import ClaimForgeError, RuleStoreUnavailable
from .etl.history import BuildHistory
from .etl.models import EditKind
from .etl.pipeline import parse_kinds
from .rules.engine import validate
from .rules.issues import issues_as_dicts
from .store.rule_store import TABLES, RuleStore
from .version_gate import VersionGate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAVAILABLE = 2


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _cmd_build(args: argparse.Namespace) -> int:
    try:
        kinds = parse_kinds(args.kinds)
    except ValueError as e:
        print(f"Invalid --kinds value: {e}", file=sys.stderr)
        return EXIT_FAILED

    with RuleStore(args.db) as store:
        gate = VersionGate(store)
        try:
            if args.max_age is None:
                result = gate.rebuild(force=True, kinds=kinds)
            else:
                result = gate.rebuild(kinds=kinds, max_age_hours=args.max_age)
        except ClaimForgeError as e:
            print(f"Build failed: {e}", file=sys.stderr)
            return EXIT_FAILED

    if result is None:
        print(f"Snapshot is current (built within the last {args.max_age:g} hours)")
        return EXIT_OK

    print(f"Build {result.build_id} {result.status.value}")
    for kind, outcome in result.kinds.items():
        print(f"  {kind}: {outcome.row_count:,} rows from {outcome.source_url}")
        if outcome.skipped_entries:
            print(f"    skipped: {', '.join(outcome.skipped_entries)}")
    return EXIT_OK


def _cmd_status(args: argparse.Namespace) -> int:
    with RuleStore(args.db) as store:
        gate = VersionGate(store)
        ready = gate.is_ready()
        print(f"Database: {store.db_path}")
        print(f"Ready: {'yes' if ready else 'no'}")
        if ready:
            for kind, count in store.counts().items():
                print(f"  {TABLES[EditKind(kind)].name}: {count:,} rows")
        last = gate.last_build()

    if last:
        print(f"Last build: {last['id']} {last['status']} at {last['started_at']}")
        if last.get("error_message"):
            print(f"  error: {last['error_message']}")
    return EXIT_OK if ready else EXIT_UNAVAILABLE


def _cmd_validate(args: argparse.Namespace) -> int:
    try:
        payload = json.loads(Path(args.claim).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read claim file {args.claim}: {e}", file=sys.stderr)
        return EXIT_FAILED

    with RuleStore(args.db) as store:
        try:
            VersionGate(store).require_ready()
            result = validate(payload, store)
        except RuleStoreUnavailable as e:
            print(str(e), file=sys.stderr)
            return EXIT_UNAVAILABLE
        except ValidationError as e:
            print(f"Malformed claim: {e}", file=sys.stderr)
            return EXIT_FAILED

    output = issues_as_dicts(result) if args.issues else result.to_dict()
    print(json.dumps(output, indent=2))
    return EXIT_OK if result.is_valid else EXIT_FAILED


def _cmd_history(args: argparse.Namespace) -> int:
    history = BuildHistory(args.db or config.DB_PATH)
    entries = history.get_history(limit=args.limit)
    if not entries:
        print("No builds recorded")
        return EXIT_OK

    for entry in entries:
        counts = ", ".join(f"{k}={v:,}" for k, v in entry["row_counts"].items())
        line = f"{entry['started_at']}  {entry['status']:<8} {','.join(entry['kinds'])}"
        if counts:
            line += f"  ({counts})"
        if entry.get("error_message"):
            line += f"  {entry['error_message']}"
        print(line)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claim-forge",
        description="NCCI rule snapshot builder and claim validator",
    )
    parser.add_argument("--db", help=f"SQLite database path (default: {config.DB_PATH})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Download CMS edit files and rebuild the snapshot")
    build.add_argument(
        "--kinds",
        default=",".join(k.value for k in TABLES),
        help="Comma-separated edit kinds to rebuild (default: ptp,mue,aoc)",
    )
    build.add_argument(
        "--max-age",
        type=float,
        metavar="HOURS",
        help="Only rebuild when the last successful build is older than HOURS",
    )
    build.add_argument(
        "--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Debug logging"
    )
    build.set_defaults(handler=_cmd_build)

    status = subparsers.add_parser("status", help="Show snapshot readiness and row counts")
    status.set_defaults(handler=_cmd_status)

    check = subparsers.add_parser("validate", help="Validate a claim JSON file")
    check.add_argument("claim", help="Path to a claim JSON file")
    check.add_argument("--issues", action="store_true", help="Print the flat issue list")
    check.set_defaults(handler=_cmd_validate)

    history = subparsers.add_parser("history", help="Show recent build attempts")
    history.add_argument("--limit", type=int, default=10, help="Maximum entries (default: 10)")
    history.set_defaults(handler=_cmd_history)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return args.handler(args)
    except RuleStoreUnavailable as e:
        print(str(e), file=sys.stderr)
        return EXIT_UNAVAILABLE


if __name__ == "__main__":
    sys.exit(main())
