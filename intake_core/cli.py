#!/usr/bin/env python3
"""
CLI for intake maintenance tasks.

Usage:
    python -m intake_core.cli validate <draft_json> [--step STEP]
    python -m intake_core.cli purge [--days N] [--dry-run]

Examples:
    # Check a draft downloaded from the wizard
    python -m intake_core.cli validate lvil-intake-draft.json

    # Check only the consent section of a draft
    python -m intake_core.cli validate lvil-intake-draft.json --step consent

    # See which unconverted intakes would be deleted
    python -m intake_core.cli purge --dry-run
"""

import argparse
import json
import sys
from pathlib import Path

from intake_core.intake import WizardStep, validate_intake_data, validate_step
from intake_core.submission import create_backends, purge_unconverted
from utils.config import Config
from utils.log import configure_logging


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a saved draft, in full or for one step."""
    path = Path(args.draft)
    if not path.exists():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 2

    try:
        data = json.loads(path.read_text())
    except ValueError as e:
        print(f"Error: {path} is not valid JSON: {e}", file=sys.stderr)
        return 2

    if args.step and args.step != WizardStep.REVIEW.value:
        section = data.get(args.step) if isinstance(data, dict) else None
        result = validate_step(args.step, section)
    else:
        result = validate_intake_data(data)

    if result.valid:
        print("OK: no violations")
        return 0

    print(f"{len(result.violations)} violation(s):")
    for line in result.errors:
        print(f"  - {line}")
    return 1


def cmd_purge(args: argparse.Namespace) -> int:
    """Delete unconverted intakes older than the retention window."""
    config = Config.load()
    days = args.days if args.days is not None else config.retention_days

    repository, content_store = create_backends(config)
    report = purge_unconverted(
        repository,
        content_store,
        retention_days=days,
        dry_run=args.dry_run,
    )

    verb = "Would delete" if report.dry_run else "Deleted"
    print(f"{verb} {len(report.submission_ids)} intake(s) created before {report.cutoff:%Y-%m-%d %H:%M} UTC")
    for submission_id in report.submission_ids:
        print(f"  - {submission_id}")
    if not report.dry_run:
        print(f"File rows deleted: {report.file_rows_deleted}; blobs deleted: {report.blobs_deleted}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Client intake maintenance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    validate_parser = subparsers.add_parser("validate", help="Validate a saved intake draft")
    validate_parser.add_argument("draft", help="Path to draft JSON file")
    validate_parser.add_argument(
        "--step",
        choices=[s.value for s in WizardStep],
        help="Validate a single wizard step",
    )

    purge_parser = subparsers.add_parser("purge", help="Purge unconverted intakes")
    purge_parser.add_argument("--days", type=int, default=None, help="Retention window in days")
    purge_parser.add_argument("--dry-run", action="store_true", help="Report without deleting")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level or Config.load().log_level)

    if args.command == "validate":
        return cmd_validate(args)
    if args.command == "purge":
        return cmd_purge(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
