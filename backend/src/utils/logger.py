"""
WordPress Database Sanity Check - Structured Logging
Provides JSON-formatted logging so audit runs can be queried by event type.
"""

import logging
import sys
from typing import List, Optional

from pythonjsonlogger import jsonlogger

from .config import LOG_LEVEL


def setup_logger(name: str = __name__) -> logging.Logger:
    """
    Configure structured JSON logger.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("Audit completed", extra={
        ...     "checks_run": 8,
        ...     "total_violations": 42
        ... })
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers
    if logger.hasHandlers():
        return logger

    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


# Global logger instance
logger = setup_logger('wp_sanity_check')


def log_audit_start(source_identifier: str, check_count: int, max_workers: int = 1):
    """Log the start of an integrity audit."""
    logger.info("Integrity audit started", extra={
        "event_type": "audit_start",
        "source_identifier": source_identifier,
        "check_count": check_count,
        "max_workers": max_workers
    })


def log_check_complete(check_name: str, count: int, duration_ms: float):
    """Log a single check finishing."""
    logger.debug("Integrity check completed", extra={
        "event_type": "check_complete",
        "check_name": check_name,
        "count": count,
        "duration_ms": round(duration_ms, 2)
    })


def log_audit_complete(source_identifier: str, duration_seconds: float, total_violations: int):
    """Log successful audit completion."""
    logger.info("Integrity audit completed", extra={
        "event_type": "audit_complete",
        "source_identifier": source_identifier,
        "duration_seconds": round(duration_seconds, 3),
        "total_violations": total_violations
    })


def log_audit_error(source_identifier: str, failed_checks: List[str]):
    """Log an audit that was abandoned because checks failed."""
    logger.error("Integrity audit failed", extra={
        "event_type": "audit_error",
        "source_identifier": source_identifier,
        "failed_checks": failed_checks
    })


def log_database_error(error: Exception, query_context: Optional[str] = None):
    """Log database error with context."""
    logger.error("Database error", extra={
        "event_type": "database_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "query_context": query_context
    }, exc_info=True)
