"""
WordPress Database Sanity Check - Flask App Unit Tests

Tests Flask application:
- App creation and configuration
- Blueprint registration
- Root endpoint
- Error handlers
- Health endpoint and WSGI entry point
"""

import importlib.util
from pathlib import Path

import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError

from api.app import create_app
from database.audit import AuditExecutionError, DataAccessError
from database.connection import DatabaseConnectionError, db


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return app.test_client()


class TestCreateApp:
    """Test Flask app creation and configuration."""

    def test_create_app_returns_flask_instance(self, app):
        assert app.name == 'api.app'

    def test_create_app_configures_environment(self, app):
        assert 'ENV' in app.config
        assert 'DEBUG' in app.config
        assert 'SECRET_KEY' in app.config

    def test_create_app_disables_json_sort_keys(self, app):
        assert app.json.sort_keys is False

    def test_create_app_registers_blueprints(self, app):
        assert 'health' in app.blueprints
        assert 'audit' in app.blueprints


class TestRootEndpoint:
    """Test root endpoint /."""

    def test_root_endpoint_returns_api_info(self, client):
        response = client.get('/')

        assert response.status_code == 200
        assert response.content_type == 'application/json'
        data = response.get_json()
        assert data['name'] == 'WordPress Database Sanity Check API'
        assert data['endpoints']['export'] == '/api/audit/integrity/export'
        assert data['check_count'] == 8


class TestErrorHandlers:
    """Test registered error handlers."""

    def test_404_returns_json(self, client):
        response = client.get('/api/nonexistent')

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Not Found'

    def test_405_for_write_methods(self, client):
        response = client.post('/api/audit/integrity')

        assert response.status_code == 405
        assert response.get_json()['error'] == 'Method Not Allowed'

    def test_escaped_audit_error_is_503(self, app):
        @app.route('/boom-audit')
        def boom_audit():
            raise AuditExecutionError({"postmeta_orphans": DataAccessError("gone")})

        response = app.test_client().get('/boom-audit')

        assert response.status_code == 503
        assert response.get_json()['failed_checks'] == ['postmeta_orphans']

    def test_unexpected_error_is_500(self, app):
        @app.route('/boom')
        def boom():
            raise RuntimeError("unexpected")

        response = app.test_client().get('/boom')

        assert response.status_code == 500
        assert response.get_json()['error'] == 'Internal Server Error'


class TestHealthEndpoint:
    """GET /api/health."""

    def test_healthy_when_database_and_tables_present(self, client):
        with patch('api.routes.health.test_database_connection', return_value=True), \
             patch('api.routes.health._missing_core_tables', return_value=[]):
            response = client.get('/api/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['checks']['tables']['missing'] == []

    def test_unhealthy_when_tables_missing(self, client):
        with patch('api.routes.health.test_database_connection', return_value=True), \
             patch('api.routes.health._missing_core_tables', return_value=['wp_commentmeta']):
            response = client.get('/api/health')

        assert response.status_code == 503
        assert response.get_json()['checks']['tables']['missing'] == ['wp_commentmeta']

    def test_unhealthy_when_database_unreachable(self, client):
        with patch('api.routes.health.test_database_connection', return_value=False), \
             patch('api.routes.health._missing_core_tables') as mock_missing:
            response = client.get('/api/health')

        assert response.status_code == 503
        data = response.get_json()
        assert data['status'] == 'unhealthy'
        assert data['checks']['database']['status'] == 'unhealthy'
        mock_missing.assert_not_called()

    @pytest.mark.parametrize('error', [
        OperationalError("SHOW TABLES", {}, Exception("Lost connection to MySQL server")),
        DatabaseConnectionError("pool gone"),
    ])
    def test_unhealthy_when_table_inspection_fails(self, client, error):
        with patch('api.routes.health.test_database_connection', return_value=True), \
             patch('api.routes.health._missing_core_tables', side_effect=error):
            response = client.get('/api/health')

        assert response.status_code == 503
        data = response.get_json()
        assert data['checks']['database']['status'] == 'healthy'
        assert data['checks']['tables']['status'] == 'unhealthy'

    def test_missing_tables_lookup_uses_prefix(self, client, wp_db):
        wp_db.tables.commentmeta.drop(wp_db.engine)

        with patch('api.routes.health.test_database_connection', return_value=True), \
             patch('api.routes.health.WP_TABLE_PREFIX', 'wp_'), \
             patch.object(db, '_engine', wp_db.engine):
            response = client.get('/api/health')

        assert response.status_code == 503
        assert response.get_json()['checks']['tables']['missing'] == ['wp_commentmeta']


class TestWsgiEntryPoint:
    """backend/wsgi.py exposes the app for gunicorn."""

    def test_module_builds_application(self):
        wsgi_path = Path(__file__).resolve().parents[2] / 'wsgi.py'
        spec = importlib.util.spec_from_file_location('wsgi', wsgi_path)
        module = importlib.util.module_from_spec(spec)

        with patch('dotenv.load_dotenv'):
            spec.loader.exec_module(module)

        assert module.application.name == 'api.app'
        assert 'audit' in module.application.blueprints
