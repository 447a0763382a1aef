"""
SQLAlchemy MetaData Factory
===========================

WordPress installs choose their own table prefix, so table definitions are
built per prefix. Each prefix gets its own MetaData instance; two audits of
differently prefixed sites never share table objects.
"""

from sqlalchemy import MetaData

# Naming convention for constraints (only used when tests create the tables)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}


def new_metadata() -> MetaData:
    """Create an empty MetaData carrying the shared naming convention."""
    return MetaData(naming_convention=convention)
