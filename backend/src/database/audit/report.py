"""
Integrity Audit Report Model
============================

Typed results of one audit run, plus the JSON export format and the
comparison helpers used by the CLI and the HTTP export.

Export format (UTF-8, indent 2, keys in this order):

    {
      "generated_at": "2026-01-01T12:00:00+00:00",
      "source_identifier": "https://example.com",
      "audit": {
        "postmeta_orphans": 0,
        ...
      }
    }

`audit` preserves registry declaration order, so two exports of the same
data are byte-identical apart from `generated_at`.
"""

import json
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .integrity_checks import INTEGRITY_CHECKS


class ReportFormatError(ValueError):
    """Raised when an exported report document cannot be parsed."""
    pass


@dataclass(frozen=True)
class AuditResult:
    """Outcome of a single integrity check."""

    check_name: str
    count: int  # rows violating the rule
    severity_hint: Optional[str] = None

    @property
    def has_violations(self) -> bool:
        return self.count > 0


@dataclass
class AuditReport:
    """Aggregate result of one complete audit run."""

    generated_at: datetime
    source_identifier: str
    results: "OrderedDict[str, AuditResult]" = field(default_factory=OrderedDict)

    def counts(self) -> "OrderedDict[str, int]":
        """Check name -> violation count, in report order."""
        return OrderedDict((name, result.count) for name, result in self.results.items())

    @property
    def total_violations(self) -> int:
        return sum(result.count for result in self.results.values())

    @property
    def has_violations(self) -> bool:
        return any(result.has_violations for result in self.results.values())

    def checks_with_violations(self) -> List[AuditResult]:
        return [result for result in self.results.values() if result.has_violations]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable export document."""
        return OrderedDict([
            ("generated_at", _format_timestamp(self.generated_at)),
            ("source_identifier", self.source_identifier),
            ("audit", self.counts()),
        ])


def utc_now() -> datetime:
    """Timezone-aware current UTC time, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ReportFormatError(f"generated_at must be a string, got {type(value).__name__}")
    try:
        # fromisoformat() before 3.11 rejects a trailing 'Z'
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ReportFormatError(f"Invalid generated_at timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# EXPORT
# =============================================================================

def serialize(report: AuditReport) -> bytes:
    """Render a report as the pretty-printed JSON export document."""
    return json.dumps(report.to_dict(), indent=2).encode("utf-8")


def deserialize(data: bytes) -> AuditReport:
    """
    Rebuild a report from an export document.

    Severity hints are not part of the export; they are restored from the
    check registry for names it still knows.

    Raises:
        ReportFormatError: If the document is not a valid export
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        document = json.loads(data, object_pairs_hook=OrderedDict)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ReportFormatError(f"Report is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise ReportFormatError("Report document must be a JSON object")

    missing = [key for key in ("generated_at", "source_identifier", "audit") if key not in document]
    if missing:
        raise ReportFormatError(f"Report is missing required fields: {', '.join(missing)}")

    source_identifier = document["source_identifier"]
    if not isinstance(source_identifier, str):
        raise ReportFormatError("source_identifier must be a string")

    audit = document["audit"]
    if not isinstance(audit, dict):
        raise ReportFormatError("audit must be an object of check name to count")

    hints = {check.name: check.severity_hint for check in INTEGRITY_CHECKS}
    results = OrderedDict()
    for name, count in audit.items():
        # bool is an int subclass; true/false are not counts
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ReportFormatError(f"Count for {name} must be a non-negative integer, got {count!r}")
        results[name] = AuditResult(check_name=name, count=count, severity_hint=hints.get(name))

    return AuditReport(
        generated_at=_parse_timestamp(document["generated_at"]),
        source_identifier=source_identifier,
        results=results,
    )


# =============================================================================
# PRESENTATION HELPERS
# =============================================================================

def format_report(report: AuditReport) -> str:
    """
    Plain-text summary of a report, one line per check.

    Labels come from the check registry; unknown names fall back to the raw name.
    """
    labels = {check.name: check.label for check in INTEGRITY_CHECKS}
    width = max([len(labels.get(name, name)) for name in report.results] or [0])

    lines = [
        "=" * 60,
        "DATABASE SANITY CHECK REPORT",
        f"Source: {report.source_identifier}",
        f"Generated: {_format_timestamp(report.generated_at)}",
        "=" * 60,
        "",
    ]
    for name, result in report.results.items():
        marker = "!" if result.has_violations else " "
        hint = f"  [{result.severity_hint}]" if result.has_violations and result.severity_hint else ""
        lines.append(f"{marker} {labels.get(name, name):<{width}}  {result.count:>10}{hint}")

    lines.append("")
    if report.has_violations:
        lines.append(
            f"Overall Status: ISSUES FOUND "
            f"({len(report.checks_with_violations())} checks, {report.total_violations} rows)"
        )
        lines.append("Nothing was modified. Clean up with backups, preferably on staging.")
    else:
        lines.append("Overall Status: CLEAN")

    return "\n".join(lines)


@dataclass(frozen=True)
class CheckDelta:
    """Change in one check's count between two reports."""

    check_name: str
    before: Optional[int]  # None when the check is absent from that report
    after: Optional[int]

    @property
    def delta(self) -> int:
        return (self.after or 0) - (self.before or 0)


@dataclass
class ReportDiff:
    """Check-by-check comparison of an earlier report against a later one."""

    before: AuditReport
    after: AuditReport
    deltas: List[CheckDelta] = field(default_factory=list)

    @property
    def worsened(self) -> List[CheckDelta]:
        return [d for d in self.deltas if d.delta > 0]

    @property
    def improved(self) -> List[CheckDelta]:
        return [d for d in self.deltas if d.delta < 0]

    @property
    def changed(self) -> bool:
        return any(d.delta != 0 or d.before is None or d.after is None for d in self.deltas)

    def to_dict(self) -> Dict[str, Any]:
        return OrderedDict([
            ("before_generated_at", _format_timestamp(self.before.generated_at)),
            ("after_generated_at", _format_timestamp(self.after.generated_at)),
            ("source_identifier", self.after.source_identifier),
            ("changes", OrderedDict(
                (d.check_name, {"before": d.before, "after": d.after, "delta": d.delta})
                for d in self.deltas
            )),
        ])


def diff_reports(before: AuditReport, after: AuditReport) -> ReportDiff:
    """
    Compare two reports check by check.

    Order follows `after`, with checks only present in `before` appended.
    """
    deltas = []
    for name, result in after.results.items():
        previous = before.results.get(name)
        deltas.append(CheckDelta(
            check_name=name,
            before=previous.count if previous is not None else None,
            after=result.count,
        ))
    for name, result in before.results.items():
        if name not in after.results:
            deltas.append(CheckDelta(check_name=name, before=result.count, after=None))

    return ReportDiff(before=before, after=after, deltas=deltas)
