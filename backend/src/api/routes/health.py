"""
WordPress Database Sanity Check - Health Check Endpoint
Reports whether the WordPress database is reachable and has the core tables
the integrity checks read.
"""

from datetime import datetime, timezone

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from database.connection import DatabaseConnectionError, db, test_database_connection
from database.schema import build_wordpress_tables
from utils.config import WP_TABLE_PREFIX
from utils.logger import logger

health_bp = Blueprint('health', __name__)


def _missing_core_tables():
    tables = build_wordpress_tables(WP_TABLE_PREFIX)
    return db.missing_tables([table.name for table in tables.metadata.sorted_tables])


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Health check endpoint.

    Response:
        200 OK: Database reachable and every core table present
        503 Service Unavailable: Database unreachable or tables missing
    """
    checks = {}

    database_ok = test_database_connection()
    checks["database"] = {
        "status": "healthy" if database_ok else "unhealthy",
        "message": "Database connection successful" if database_ok else "Database connection failed",
    }

    tables_ok = False
    if database_ok:
        try:
            missing = _missing_core_tables()
        except (SQLAlchemyError, DatabaseConnectionError) as e:
            logger.error(f"Could not inspect WordPress tables: {e}")
            checks["tables"] = {
                "status": "unhealthy",
                "prefix": WP_TABLE_PREFIX,
                "message": "Table inspection failed",
            }
        else:
            tables_ok = not missing
            checks["tables"] = {
                "status": "healthy" if tables_ok else "unhealthy",
                "prefix": WP_TABLE_PREFIX,
                "missing": missing,
            }
            if missing:
                logger.warning(f"WordPress tables missing for prefix {WP_TABLE_PREFIX}: {', '.join(missing)}")

    healthy = database_ok and tables_ok
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }), 200 if healthy else 503
