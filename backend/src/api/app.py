"""
WordPress Database Sanity Check - Flask API Application

Read-only HTTP surface over the integrity audit. Every route is GET; the
audit routes run a fresh audit per request.
"""

from flask import Flask, jsonify

from database.audit import list_checks
from utils.config import FLASK_ENV, FLASK_DEBUG, SECRET_KEY, WP_TABLE_PREFIX
from utils.logger import logger
from api.routes.health import health_bp
from api.routes.audit import audit_bp
from api.middleware.error_handler import register_error_handlers

API_VERSION = "1.0.0"

BLUEPRINTS = (health_bp, audit_bp)


def create_app() -> Flask:
    """Build the Flask application with all blueprints under /api."""
    app = Flask(__name__)
    app.config.update(ENV=FLASK_ENV, DEBUG=FLASK_DEBUG, SECRET_KEY=SECRET_KEY)

    # Reports list checks in declaration order; sorting keys would scramble it
    app.json.sort_keys = False

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix='/api')
    register_error_handlers(app)

    @app.route('/')
    def index():
        """Service description and entry points."""
        return jsonify({
            "name": "WordPress Database Sanity Check API",
            "version": API_VERSION,
            "table_prefix": WP_TABLE_PREFIX,
            "check_count": len(list_checks()),
            "endpoints": {
                "health": "/api/health",
                "audit": "/api/audit/integrity",
                "export": "/api/audit/integrity/export",
                "checks": "/api/audit/integrity/checks",
            },
        })

    logger.info("Flask app created", extra={
        "environment": FLASK_ENV,
        "debug": FLASK_DEBUG,
        "blueprints": [blueprint.name for blueprint in BLUEPRINTS],
    })
    return app


if __name__ == '__main__':
    create_app().run(host='127.0.0.1', port=5000, debug=FLASK_DEBUG)
