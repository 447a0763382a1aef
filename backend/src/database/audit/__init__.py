"""
Database Integrity Audit Framework
==================================

Read-only audit of the core WordPress tables for rows that point at nothing
and counters that stopped matching reality. Nothing here writes.

Components:
- data_source.py: Executes fixed aggregate statements, one connection per check
- integrity_checks.py: The registry of named integrity rules
- runner.py: All-or-nothing execution of the registry into a report
- report.py: Report model, JSON export, text summary and report diffs

Usage:
    from database.audit import SqlDataSource, run_audit, serialize

    source = SqlDataSource(engine, prefix="wp_")
    report = run_audit(source, "https://example.com")
    payload = serialize(report)

How to Add an Integrity Check:
1. Add a _query_{name} builder in integrity_checks.py
2. Append an IntegrityCheck to INTEGRITY_CHECKS (order = report order)
"""

from .data_source import DataAccessError, SqlDataSource
from .integrity_checks import (
    INTEGRITY_CHECKS,
    IntegrityCheck,
    get_check,
    list_checks,
    select_checks,
)
from .report import (
    AuditReport,
    AuditResult,
    CheckDelta,
    ReportDiff,
    ReportFormatError,
    deserialize,
    diff_reports,
    format_report,
    serialize,
)
from .runner import AuditExecutionError, AuditRunner, run_audit

__all__ = [
    "DataAccessError",
    "SqlDataSource",
    "INTEGRITY_CHECKS",
    "IntegrityCheck",
    "get_check",
    "list_checks",
    "select_checks",
    "AuditReport",
    "AuditResult",
    "CheckDelta",
    "ReportDiff",
    "ReportFormatError",
    "deserialize",
    "diff_reports",
    "format_report",
    "serialize",
    "AuditExecutionError",
    "AuditRunner",
    "run_audit",
]
