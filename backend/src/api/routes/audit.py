"""
WordPress Database Sanity Check - Audit API Routes
==================================================

Endpoints:
    GET /audit/integrity         - Run the audit and return the report
    GET /audit/integrity/export  - Run the audit and download the export document
    GET /audit/integrity/checks  - List the registered checks

Both audit endpoints run a fresh audit per request. If any check fails the
response is a 503 error; a partial report is never returned.

Authentication is the deployment's concern (reverse proxy, VPN, etc.).
"""

from flask import Blueprint, Response, jsonify, request

from database.connection import get_engine
from database.audit import (
    AuditExecutionError,
    SqlDataSource,
    list_checks,
    run_audit,
    select_checks,
    serialize,
)
from utils.config import (
    WP_TABLE_PREFIX,
    SITE_URL,
    AUDIT_MAX_WORKERS,
    AUDIT_CHECK_TIMEOUT_SECONDS,
)
from utils.logger import logger

audit_bp = Blueprint("audit", __name__)

EXPORT_FILENAME = "wp-db-sanity-check.json"


def _get_data_source() -> SqlDataSource:
    """Data source for the configured site."""
    timeout_ms = AUDIT_CHECK_TIMEOUT_SECONDS * 1000 if AUDIT_CHECK_TIMEOUT_SECONDS > 0 else None
    return SqlDataSource(get_engine(), prefix=WP_TABLE_PREFIX, statement_timeout_ms=timeout_ms)


def _requested_checks():
    """Checks named by repeated ?check=NAME filters, or None for all of them."""
    names = request.args.getlist("check")
    return select_checks(names) if names else None


def _run_requested_audit(checks):
    return run_audit(
        _get_data_source(),
        SITE_URL,
        checks=checks,
        max_workers=max(1, AUDIT_MAX_WORKERS),
        timeout_seconds=AUDIT_CHECK_TIMEOUT_SECONDS or None,
    )


def _audit_failed_response(error: AuditExecutionError):
    logger.error(f"Integrity audit request failed: {error}")
    return jsonify({
        "success": False,
        "error": "Integrity audit could not complete",
        "failed_checks": error.failed_checks,
    }), 503


@audit_bp.route("/audit/integrity", methods=["GET"])
def integrity_report():
    """
    Run the integrity audit.

    Query Parameters:
        check (str, repeatable): Run only these checks

    Returns:
        {
            "success": true,
            "report": {
                "generated_at": "...",
                "source_identifier": "...",
                "total_violations": 3,
                "results": [
                    {"check_name": "postmeta_orphans", "label": "...", "group": "posts",
                     "count": 3, "severity_hint": "cosmetic"},
                    ...
                ]
            }
        }

    Status Codes:
        200: Audit completed
        400: Unknown check name
        503: One or more checks failed; no report
    """
    try:
        checks = _requested_checks()
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        report = _run_requested_audit(checks)
    except AuditExecutionError as e:
        return _audit_failed_response(e)

    registry = {check.name: check for check in list_checks()}
    results = []
    for name, result in report.results.items():
        check = registry.get(name)
        results.append({
            "check_name": name,
            "label": check.label if check else name,
            "group": check.group if check else None,
            "count": result.count,
            "severity_hint": result.severity_hint,
        })

    return jsonify({
        "success": True,
        "report": {
            "generated_at": report.to_dict()["generated_at"],
            "source_identifier": report.source_identifier,
            "total_violations": report.total_violations,
            "results": results,
        },
    })


@audit_bp.route("/audit/integrity/export", methods=["GET"])
def integrity_export():
    """Run the audit and return the export document as a download."""
    try:
        checks = _requested_checks()
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        report = _run_requested_audit(checks)
    except AuditExecutionError as e:
        return _audit_failed_response(e)

    response = Response(serialize(report), mimetype="application/json")
    response.headers["Content-Disposition"] = f'attachment; filename="{EXPORT_FILENAME}"'
    response.headers["Cache-Control"] = "no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    return response


@audit_bp.route("/audit/integrity/checks", methods=["GET"])
def integrity_checks():
    """List the registered checks in report order."""
    return jsonify({
        "success": True,
        "checks": [
            {
                "name": check.name,
                "label": check.label,
                "description": check.description,
                "group": check.group,
                "severity_hint": check.severity_hint,
            }
            for check in list_checks()
        ],
    })
