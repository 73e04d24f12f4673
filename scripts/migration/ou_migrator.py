#!/usr/bin/env python3
"""
Organizational Unit Migrator

Exports an OU subtree (units, users, groups, computers and group
memberships) from a source directory into a JSON interchange document, and
imports such a document into a target directory.

Usage:
    ou-migrate export --ou "OU=Sales,DC=corp,DC=local" --out sales.json
    ou-migrate import --in sales.json --target-ou "OU=Sales,DC=new,DC=local" --dry-run

Connection settings come from SOURCE_LDAP_* / TARGET_LDAP_* environment
variables (a .env file is loaded first). Import exits with status 0 when the
replay ran to completion, even if individual items failed; the per-item
outcomes are logged and summarized.
"""

import argparse
import functools
import logging
import os
import sys
from typing import List, Optional

from directory.facade.migration_facade import MigrationFacade
from migration.config import MigrationConfig
from migration.exceptions import MigrationError
from migration.models.outcome import ReplayReport

logger = logging.getLogger(__name__)


def handle_keyboard_interrupt(exit_message="Migration interrupted by user"):
    """Decorator to handle KeyboardInterrupt and exit with a non-zero status."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except KeyboardInterrupt:
                logging.info(f"\n{exit_message}")
                return 130
        return wrapper
    return decorator


def setup_logging(log_dir: str, log_level: str) -> None:
    """Log to a file in log_dir and to stdout."""
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "ou_migrator.log"), encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export an OU subtree from one directory and replay it into another"
    )
    parser.add_argument("--env-file", help="Path to a .env file with connection settings")
    parser.add_argument("--log-dir", help="Directory for the log file (default: MIGRATION_LOG_DIR or ./logs)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: MIGRATION_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Capture an OU subtree to a file")
    export_parser.add_argument("--ou", required=True, help="Distinguished name of the source OU")
    export_parser.add_argument("--out", required=True, help="Interchange document to write")

    import_parser = subparsers.add_parser("import", help="Replay an interchange document")
    import_parser.add_argument("--in", dest="in_file", required=True, help="Interchange document to read")
    import_parser.add_argument("--target-ou", required=True, help="Distinguished name of the target OU")
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log intended changes without modifying the target directory",
    )
    import_parser.add_argument(
        "--preserve-hierarchy",
        action="store_true",
        help="Rebuild the captured OU nesting instead of placing everything under the target OU",
    )

    return parser


def run_export(args: argparse.Namespace) -> int:
    facade = MigrationFacade(source_config=MigrationConfig.get_source_config())
    try:
        snapshot = facade.export_ou(args.ou, args.out)
    finally:
        facade.close()

    print(f"\n📦 Export of {args.ou} written to {args.out}")
    print(f"   Units: {len(snapshot.units)}")
    print(f"   Objects: {len(snapshot.objects)}")
    print(f"   Memberships: {len(snapshot.memberships)}")
    return 0


def run_import(args: argparse.Namespace) -> int:
    facade = MigrationFacade(target_config=MigrationConfig.get_target_config())
    try:
        report = facade.import_ou(
            args.in_file,
            args.target_ou,
            dry_run=args.dry_run,
            preserve_hierarchy=args.preserve_hierarchy,
        )
    finally:
        facade.close()

    print_summary(report)
    return 0


def print_summary(report: ReplayReport) -> None:
    if report.simulate:
        print("\n🧪 DRY RUN: no changes were made to the target directory")

    print(f"\n📊 Import Summary for {report.target_path}:")
    for phase, counts in report.counts_by_phase().items():
        details = ", ".join(f"{status}: {count}" for status, count in sorted(counts.items()))
        print(f"   {phase}: {details}")

    failures = report.failures()
    print(f"   Failed items: {len(failures)}")
    for outcome in failures:
        print(f"     ├─ [{outcome.phase}] {outcome.item}: {outcome.reason}")


@handle_keyboard_interrupt()
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    MigrationConfig.load(args.env_file)
    setup_logging(
        args.log_dir or MigrationConfig.get_log_dir(),
        args.log_level or MigrationConfig.get_log_level(),
    )

    try:
        if args.command == "export":
            return run_export(args)
        return run_import(args)
    except (MigrationError, ConnectionError, ValueError) as e:
        logger.error(f"❌ {args.command} failed: {e}")
        print(f"❌ {args.command} failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"❌ Unexpected error during {args.command}: {e}")
        print(f"❌ Unexpected error during {args.command}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
