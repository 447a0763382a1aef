"""
Integrity Audit Runner
======================

Runs every integrity check against one data source and assembles the report.

All-or-nothing: if any check fails, the audit raises AuditExecutionError and
no report is produced. A report with a missing check would read as "zero
findings", which is worse than no report at all.

Execution modes:
- Sequential (default): one check at a time on the shared pool. With a
  timeout, checks run on a single worker thread so an overrunning check
  can be abandoned.
- Parallel (max_workers > 1): checks run on a thread pool, each on its own
  pooled connection; remaining checks are cancelled on the first failure

Usage:
    from database.audit import SqlDataSource, run_audit

    source = SqlDataSource(get_engine(), prefix="wp_")
    report = run_audit(source, "https://example.com")
"""

import time
from collections import OrderedDict
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Dict, Optional, Sequence, Tuple

from utils.logger import (
    log_audit_start,
    log_audit_complete,
    log_audit_error,
    log_check_complete,
)
from .data_source import DataAccessError
from .integrity_checks import IntegrityCheck, list_checks
from .report import AuditReport, AuditResult, utc_now


class AuditExecutionError(Exception):
    """Raised when one or more checks failed; carries every failure by check name."""

    def __init__(self, failures: Dict[str, Exception], source_identifier: Optional[str] = None):
        self.failures = failures
        self.source_identifier = source_identifier
        names = ", ".join(failures) or "unknown"
        super().__init__(f"Integrity audit failed; checks did not complete: {names}")

    @property
    def failed_checks(self):
        return list(self.failures)


class AuditRunner:
    """
    Executes a fixed set of checks and builds an AuditReport.

    Args:
        checks: Checks to run, in report order (default: full registry)
        max_workers: 1 runs sequentially; more runs checks in parallel
        timeout_seconds: Per-check budget, counted from when the check starts.
            The data source can also push it down to the database; the
            runner stops waiting on any check that overruns it and fails
            the audit with a TimeoutError for that check.
    """

    def __init__(
        self,
        checks: Optional[Sequence[IntegrityCheck]] = None,
        max_workers: int = 1,
        timeout_seconds: Optional[float] = None,
    ):
        self.checks = tuple(checks) if checks is not None else list_checks()
        if not self.checks:
            raise ValueError("AuditRunner needs at least one check")
        names = [check.name for check in self.checks]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate check names: {names}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds or None

    def run(self, data_source, source_identifier: str) -> AuditReport:
        """
        Run every check and return a fully populated report.

        Raises:
            AuditExecutionError: If any check failed or timed out
        """
        generated_at = utc_now()
        started = time.perf_counter()
        log_audit_start(source_identifier, len(self.checks), self.max_workers)

        if self.max_workers > 1 and len(self.checks) > 1:
            counts, failures = self._run_pooled(data_source, min(self.max_workers, len(self.checks)))
        elif self.timeout_seconds is not None:
            # A single worker thread keeps checks in order while the budget is enforced here
            counts, failures = self._run_pooled(data_source, 1)
        else:
            counts, failures = self._run_sequential(data_source)

        if failures:
            log_audit_error(source_identifier, list(failures))
            raise AuditExecutionError(failures, source_identifier)

        results = OrderedDict(
            (check.name, AuditResult(
                check_name=check.name,
                count=counts[check.name],
                severity_hint=check.severity_hint,
            ))
            for check in self.checks
        )
        report = AuditReport(
            generated_at=generated_at,
            source_identifier=source_identifier,
            results=results,
        )

        log_audit_complete(source_identifier, time.perf_counter() - started, report.total_violations)
        return report

    def _compute(self, check: IntegrityCheck, data_source, started_at: Optional[Dict[str, float]] = None) -> int:
        started = time.perf_counter()
        if started_at is not None:
            started_at[check.name] = started
        count = check.compute(data_source)
        log_check_complete(check.name, count, (time.perf_counter() - started) * 1000)
        return count

    def _run_sequential(self, data_source) -> Tuple[Dict[str, int], Dict[str, Exception]]:
        counts: Dict[str, int] = {}
        failures: Dict[str, Exception] = {}
        for check in self.checks:
            try:
                counts[check.name] = self._compute(check, data_source)
            except (DataAccessError, TimeoutError) as e:
                failures[check.name] = e
                break
        return counts, failures

    def _wait_budget(self, running: Dict[str, float]) -> Optional[float]:
        """Seconds until the earliest running check runs out of budget."""
        if self.timeout_seconds is None:
            return None
        if not running:
            return self.timeout_seconds
        now = time.perf_counter()
        return max(0.0, min(started + self.timeout_seconds - now for started in running.values()))

    def _run_pooled(self, data_source, workers: int) -> Tuple[Dict[str, int], Dict[str, Exception]]:
        """
        Run checks on a thread pool of `workers` threads.

        Each check's budget starts when a worker picks it up; time spent
        queued behind siblings does not count.
        """
        counts: Dict[str, int] = {}
        failures: Dict[str, Exception] = {}
        started_at: Dict[str, float] = {}
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="integrity-check")
        futures = {
            executor.submit(self._compute, check, data_source, started_at): check
            for check in self.checks
        }
        try:
            pending = set(futures)
            while pending and not failures:
                running = {
                    check.name: started_at[check.name]
                    for future, check in futures.items()
                    if future in pending and check.name in started_at
                }
                done, pending = wait(pending, timeout=self._wait_budget(running), return_when=FIRST_EXCEPTION)
                for future in done:
                    check = futures[future]
                    error = future.exception()
                    if error is None:
                        counts[check.name] = future.result()
                    elif isinstance(error, (DataAccessError, TimeoutError)):
                        failures[check.name] = error
                    else:
                        raise error
                if self.timeout_seconds is None:
                    continue
                now = time.perf_counter()
                for future, check in futures.items():
                    started = started_at.get(check.name)
                    if future in pending and started is not None and now - started >= self.timeout_seconds:
                        failures[check.name] = TimeoutError(
                            f"{check.name} did not finish within {self.timeout_seconds}s"
                        )
        finally:
            # Queued checks never start; running ones release their connection when they finish
            executor.shutdown(wait=False, cancel_futures=True)

        return counts, failures


def run_audit(
    data_source,
    source_identifier: str,
    checks: Optional[Sequence[IntegrityCheck]] = None,
    max_workers: int = 1,
    timeout_seconds: Optional[float] = None,
) -> AuditReport:
    """
    Run an integrity audit and return the report.

    Args:
        data_source: Anything with `tables` and `count(statement, check_name=...)`,
            normally a SqlDataSource
        source_identifier: Which site/dataset was audited (e.g. the site URL)
        checks: Subset of checks to run (default: full registry)
        max_workers: Parallel workers (1 = sequential)
        timeout_seconds: Per-check budget

    Raises:
        AuditExecutionError: If any check failed
    """
    runner = AuditRunner(checks=checks, max_workers=max_workers, timeout_seconds=timeout_seconds)
    return runner.run(data_source, source_identifier)
