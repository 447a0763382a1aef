#!/usr/bin/env python3
"""
Gunicorn entry point for the WordPress Database Sanity Check API.

    gunicorn --bind 127.0.0.1:5001 --workers 2 wsgi:application

Settings come from backend/.env (or the process environment), with
WP_CONFIG_PATH as a fallback for the database credentials. The API only
reads from WordPress and does no authentication of its own, so bind it to
localhost or put it behind the same access controls as wp-admin.
"""

import os
import sys

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(BACKEND_DIR, 'src'))

from dotenv import load_dotenv

# Must run before utils.config is imported
load_dotenv(os.path.join(BACKEND_DIR, '.env'))

from api.app import create_app
from utils.config import SITE_URL, WP_TABLE_PREFIX, AUDIT_MAX_WORKERS
from utils.logger import logger

application = create_app()

logger.info("Sanity check API loaded", extra={
    "site_url": SITE_URL,
    "table_prefix": WP_TABLE_PREFIX,
    "max_workers": AUDIT_MAX_WORKERS,
})
