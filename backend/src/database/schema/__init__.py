"""
WordPress Database Sanity Check - SQLAlchemy Table Definitions
==============================================================

Table objects for the core WordPress tables the integrity checks read.

Usage:
    from database.schema import build_wordpress_tables

    tables = build_wordpress_tables("wp_")
    stmt = select(func.count()).select_from(tables.postmeta)

How to Add a New Table:
1. Add the Table definition to build_wordpress_tables() in wordpress_tables.py
2. Add a field for it on WordPressTables
"""

from .metadata import new_metadata
from .wordpress_tables import WordPressTables, build_wordpress_tables

__all__ = [
    "new_metadata",
    "WordPressTables",
    "build_wordpress_tables",
]
