"""
WordPress Database Sanity Check - Configuration Management

Settings are resolved in this order:
1. AWS SSM Parameter Store (ENVIRONMENT=production) or the process
   environment / .env file (any other ENVIRONMENT)
2. wp-config.php, when WP_CONFIG_PATH points at one
3. Built-in defaults

wp-config.php is only ever read, never executed: the DB_* constants and
$table_prefix are picked out with regular expressions.
"""

import os
import re
from typing import Dict, Optional
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()

_DEFINE_PATTERN = re.compile(
    r"""define\s*\(\s*['"](DB_NAME|DB_USER|DB_PASSWORD|DB_HOST)['"]\s*,\s*(['"])(.*?)\2\s*\)""",
    re.IGNORECASE,
)
_TABLE_PREFIX_PATTERN = re.compile(r"""\$table_prefix\s*=\s*(['"])(.*?)\1\s*;""")


class ConfigurationError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


def read_wp_config(path: str) -> Dict[str, str]:
    """
    Extract database settings from a wp-config.php file.

    Returns a mapping using this project's setting names (DB_NAME, DB_USER,
    DB_PASSWORD, DB_HOST, DB_PORT, WP_TABLE_PREFIX). A "host:port" DB_HOST
    is split into DB_HOST and DB_PORT.

    Raises:
        ConfigurationError: If the file cannot be read
    """
    try:
        with open(path, encoding="utf-8") as handle:
            source = handle.read()
    except OSError as e:
        raise ConfigurationError(f"Cannot read wp-config.php at '{path}': {e}") from e

    settings = {name.upper(): value for name, _, value in _DEFINE_PATTERN.findall(source)}

    host = settings.get('DB_HOST')
    if host and ':' in host and not host.startswith('/'):
        host, _, port = host.partition(':')
        settings['DB_HOST'] = host
        if port.isdigit():
            settings['DB_PORT'] = port

    prefix = _TABLE_PREFIX_PATTERN.search(source)
    if prefix:
        settings['WP_TABLE_PREFIX'] = prefix.group(2)

    return settings


class Config:
    """
    Configuration manager.

    - Local: environment variables (python-dotenv loads .env)
    - Production: AWS SSM Parameter Store under AWS_SSM_PREFIX
    - Either mode falls back to wp-config.php values when WP_CONFIG_PATH is set
    """

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'local')
        self._ssm_client = None
        self._wp_config: Optional[Dict[str, str]] = None

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    @property
    def is_local(self) -> bool:
        return self.environment == 'local'

    @property
    def wp_config(self) -> Dict[str, str]:
        """Settings read from WP_CONFIG_PATH (empty when unset)."""
        if self._wp_config is None:
            path = os.getenv('WP_CONFIG_PATH')
            self._wp_config = read_wp_config(path) if path else {}
        return self._wp_config

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Look up a setting.

        Args:
            key: Setting name, e.g. DB_HOST
            default: Returned when no source has the setting

        Raises:
            ConfigurationError: In production, if SSM fails and there is
                no fallback value
        """
        fallback = self.wp_config.get(key, default)
        if self.is_production:
            return self._get_from_ssm(key, fallback)
        return os.getenv(key, fallback)

    def _get_from_ssm(self, key: str, default: Optional[str] = None) -> Optional[str]:
        parameter_name = f"{os.getenv('AWS_SSM_PREFIX', '/wp-sanity-check')}/{key}"

        try:
            if self._ssm_client is None:
                import boto3
                self._ssm_client = boto3.client('ssm', region_name=os.getenv('AWS_REGION', 'us-east-1'))
            response = self._ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
            return response['Parameter']['Value']

        except Exception as e:
            error_type = type(e).__name__
            if default is not None:
                if error_type != 'ParameterNotFound':
                    import logging
                    logging.warning(
                        f"Failed to fetch SSM parameter '{parameter_name}' ({error_type}: {e}); using fallback"
                    )
                return default

            if error_type == 'ParameterNotFound':
                raise ConfigurationError(
                    f"Required parameter '{key}' not found in SSM at path '{parameter_name}'. "
                    f"Create it or set WP_CONFIG_PATH."
                ) from e
            raise ConfigurationError(
                f"Failed to fetch parameter '{key}' from SSM: {error_type}: {e}. "
                f"Check AWS credentials, IAM permissions, and network connectivity."
            ) from e

    def get_int(self, key: str, default: int) -> int:
        """Integer setting; a malformed value logs a warning and yields default."""
        value = self.get(key, str(default))
        try:
            return int(value)
        except (ValueError, TypeError):
            import logging
            logging.warning(f"Invalid integer for config key '{key}': '{value}'. Using default={default}")
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        """Boolean setting: true/1/yes/on (any case) is True, anything else False."""
        value = self.get(key, str(default))
        if value is None:
            return default
        return value.strip().lower() in ('true', '1', 'yes', 'on')


# Global configuration instance
config = Config()


# Database
DB_DRIVER = config.get('DB_DRIVER', 'mysql+pymysql')
DB_HOST = config.get('DB_HOST', 'localhost')
DB_PORT = config.get_int('DB_PORT', 3306)
DB_NAME = config.get('DB_NAME', 'wordpress')
DB_USER = config.get('DB_USER', 'root')
DB_PASSWORD = config.get('DB_PASSWORD', '')

# $table_prefix from wp-config.php; multisite sub-sites use e.g. wp_2_
WP_TABLE_PREFIX = config.get('WP_TABLE_PREFIX', 'wp_')

# Identifies the audited site in reports and exports
SITE_URL = config.get('SITE_URL', 'http://localhost')

# Audit execution
AUDIT_MAX_WORKERS = config.get_int('AUDIT_MAX_WORKERS', 1)  # 1 = sequential
AUDIT_CHECK_TIMEOUT_SECONDS = config.get_int('AUDIT_CHECK_TIMEOUT_SECONDS', 0)  # 0 = no limit

# Flask
FLASK_ENV = config.get('FLASK_ENV', 'development')
FLASK_DEBUG = config.get_bool('FLASK_DEBUG', False)
SECRET_KEY = config.get('SECRET_KEY', 'dev-secret-key-change-in-production')

LOG_LEVEL = config.get('LOG_LEVEL', 'INFO')

# Connection pool; parallel audits hold one connection per worker
DB_POOL_SIZE = max(AUDIT_MAX_WORKERS, 2)
DB_POOL_MAX_OVERFLOW = 2
DB_POOL_RECYCLE = 3600
DB_POOL_PRE_PING = True
