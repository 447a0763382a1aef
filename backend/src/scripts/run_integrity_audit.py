#!/usr/bin/env python3
"""
WordPress Database Sanity Check - Integrity Audit Script
Audits the core WordPress tables for orphaned rows, broken relationships
and drifted counters. Read only: nothing is ever modified.

Usage:
    python -m scripts.run_integrity_audit
    python -m scripts.run_integrity_audit --json --output audit.json
    python -m scripts.run_integrity_audit --compare audit.json
    python -m scripts.run_integrity_audit --check postmeta_orphans --check term_count_mismatches
    python -m scripts.run_integrity_audit --prefix wp_2_ --source https://blog.example.com
    python -m scripts.run_integrity_audit --workers 4 --timeout 30

Options:
    --json               Print the export document instead of the text summary
    --output FILE        Also write the export document to FILE
    --compare FILE       Compare against a previously exported report
    --check NAME         Run only this check (repeatable)
    --prefix PREFIX      WordPress table prefix (default: WP_TABLE_PREFIX)
    --source ID          Source identifier for the report (default: SITE_URL)
    --workers N          Run checks on N parallel connections (default: AUDIT_MAX_WORKERS)
    --timeout SECONDS    Per-check time budget (default: AUDIT_CHECK_TIMEOUT_SECONDS, 0 = none)
    --list               List available checks and exit
    --verbose            Show the comparison for unchanged checks too

Exit codes:
    0 = Audit completed, no violations
    1 = Audit failed (no report produced) or bad arguments
    2 = Audit completed, violations found
"""

import sys
import argparse
import json
from pathlib import Path
from typing import List, Optional

# Add src to path
backend_src = Path(__file__).parent.parent
sys.path.insert(0, str(backend_src.absolute()))

from utils.config import (
    WP_TABLE_PREFIX,
    SITE_URL,
    AUDIT_MAX_WORKERS,
    AUDIT_CHECK_TIMEOUT_SECONDS,
)
from utils.logger import logger
from database.connection import get_engine, DatabaseConnectionError
from database.audit import (
    AuditExecutionError,
    ReportFormatError,
    SqlDataSource,
    deserialize,
    diff_reports,
    format_report,
    list_checks,
    run_audit,
    select_checks,
    serialize,
)

EXIT_CLEAN = 0
EXIT_FAILED = 1
EXIT_VIOLATIONS = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Audit WordPress tables for orphaned rows and count mismatches (read only)"
    )
    parser.add_argument('--json', action='store_true', help='Output the export document as JSON')
    parser.add_argument('--output', type=str, help='Write the export document to this file')
    parser.add_argument('--compare', type=str, help='Compare against a previously exported report')
    parser.add_argument(
        '--check',
        action='append',
        dest='checks',
        metavar='NAME',
        help='Run only this check (repeatable)'
    )
    parser.add_argument('--prefix', type=str, default=WP_TABLE_PREFIX, help='WordPress table prefix')
    parser.add_argument('--source', type=str, default=SITE_URL, help='Source identifier for the report')
    parser.add_argument(
        '--workers',
        type=int,
        default=AUDIT_MAX_WORKERS,
        help='Parallel connections (1 = sequential)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=AUDIT_CHECK_TIMEOUT_SECONDS,
        help='Per-check time budget in seconds (0 = none)'
    )
    parser.add_argument('--list', action='store_true', help='List available checks and exit')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show unchanged checks in comparisons')
    return parser


def print_comparison(diff, verbose: bool = False):
    """Print a before/after table for a report comparison."""
    print()
    print("=" * 60)
    print("COMPARISON WITH PREVIOUS REPORT")
    print("=" * 60)
    print(f"Previous: {diff.before.generated_at.isoformat()}")
    print(f"Current:  {diff.after.generated_at.isoformat()}")
    print()
    for delta in diff.deltas:
        if delta.delta == 0 and delta.before is not None and delta.after is not None and not verbose:
            continue
        before = '-' if delta.before is None else delta.before
        after = '-' if delta.after is None else delta.after
        print(f"  {delta.check_name:<34} {before!s:>8} -> {after!s:>8}  ({delta.delta:+d})")

    print()
    if diff.worsened:
        print(f"WORSE - {len(diff.worsened)} checks increased since the previous report")
    elif diff.improved:
        print(f"BETTER - {len(diff.improved)} checks decreased since the previous report")
    else:
        print("UNCHANGED")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        for check in list_checks():
            print(f"{check.name:<34} [{check.severity_hint}] {check.description}")
        return EXIT_CLEAN

    try:
        checks = select_checks(args.checks) if args.checks else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    previous = None
    if args.compare:
        try:
            previous = deserialize(Path(args.compare).read_bytes())
        except (OSError, ReportFormatError) as e:
            print(f"Error: Cannot read previous report '{args.compare}': {e}", file=sys.stderr)
            return EXIT_FAILED

    timeout = args.timeout if args.timeout and args.timeout > 0 else None

    try:
        source = SqlDataSource(
            get_engine(),
            prefix=args.prefix,
            statement_timeout_ms=int(timeout * 1000) if timeout else None,
        )
        report = run_audit(
            source,
            args.source,
            checks=checks,
            max_workers=max(1, args.workers),
            timeout_seconds=timeout,
        )
    except DatabaseConnectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    except AuditExecutionError as e:
        print(f"FAILED - {e}", file=sys.stderr)
        for name, error in e.failures.items():
            print(f"  {name}: {error}", file=sys.stderr)
        print("No report was produced. A partial report would hide the failed checks.", file=sys.stderr)
        return EXIT_FAILED

    payload = serialize(report)

    if args.output:
        Path(args.output).write_bytes(payload + b"\n")
        logger.info(f"Audit report written to {args.output}")

    diff = diff_reports(previous, report) if previous is not None else None

    if args.json:
        if diff is not None:
            print(json.dumps({"report": report.to_dict(), "comparison": diff.to_dict()}, indent=2))
        else:
            print(payload.decode("utf-8"))
    else:
        print(format_report(report))
        if diff is not None:
            print_comparison(diff, verbose=args.verbose)

    return EXIT_VIOLATIONS if report.has_violations else EXIT_CLEAN


if __name__ == '__main__':
    sys.exit(main())
