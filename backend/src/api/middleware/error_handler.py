"""
WordPress Database Sanity Check - Error Handler Middleware

Every error leaves the API as JSON: {"error": ..., "message": ...}.
Database and audit failures map to 503 so monitoring treats them as the
service being unavailable, not as a clean (empty) report.
"""

from flask import jsonify, Flask
from werkzeug.exceptions import HTTPException

from database.audit import AuditExecutionError
from database.connection import DatabaseConnectionError
from utils.logger import logger


def _error_response(status: int, error: str, message: str, **details):
    body = {"error": error, "message": message}
    body.update(details)
    return jsonify(body), status


def register_error_handlers(app: Flask):
    """Attach JSON error handlers to the app."""

    @app.errorhandler(404)
    def not_found(error):
        return _error_response(404, "Not Found", "The requested resource was not found")

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error_response(405, "Method Not Allowed", "The audit API is read only")

    @app.errorhandler(DatabaseConnectionError)
    def database_unavailable(error):
        logger.error(f"WordPress database unavailable: {error}")
        return _error_response(503, "Service Unavailable", "WordPress database is unavailable")

    @app.errorhandler(AuditExecutionError)
    def audit_failed(error):
        logger.error(f"Integrity audit failed: {error}")
        return _error_response(
            503,
            "Service Unavailable",
            "Integrity audit could not complete",
            failed_checks=error.failed_checks,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return error

        logger.error(f"Unexpected error: {error}", exc_info=True)
        return _error_response(
            500,
            "Internal Server Error",
            "An unexpected error occurred. Please try again later."
        )
