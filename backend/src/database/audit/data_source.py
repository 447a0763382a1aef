"""
Read-Only Data Source
=====================

The integrity checks never talk to an Engine directly. They hand a fixed
aggregate statement to a data source and get one integer back.

SqlDataSource runs every statement on its own pooled connection and rolls
back immediately afterwards, so no lock or transaction outlives a single
check. That also makes one data source safe to share between worker threads.
"""

from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Select

from database.schema import WordPressTables, build_wordpress_tables
from utils.logger import log_database_error


class DataAccessError(Exception):
    """Raised when an aggregate query cannot execute (connectivity, permissions, missing table)."""

    def __init__(self, message: str, check_name: Optional[str] = None):
        super().__init__(message)
        self.check_name = check_name


class SqlDataSource:
    """
    SQLAlchemy-backed data source for one WordPress install.

    Args:
        engine: Pooled SQLAlchemy engine (see database.connection.get_engine)
        tables: Table definitions; built from `prefix` when omitted
        prefix: WordPress table prefix
        statement_timeout_ms: Per-statement budget pushed down to MySQL as a
            MAX_EXECUTION_TIME optimizer hint (ignored by other dialects)
    """

    def __init__(
        self,
        engine: Engine,
        tables: Optional[WordPressTables] = None,
        prefix: str = "wp_",
        statement_timeout_ms: Optional[int] = None,
    ):
        self.engine = engine
        self.tables = tables if tables is not None else build_wordpress_tables(prefix)
        self.statement_timeout_ms = statement_timeout_ms

    def count(self, statement: Select, check_name: Optional[str] = None) -> int:
        """
        Execute a single-value aggregate statement and return it as an int.

        Raises:
            DataAccessError: If the statement fails or returns no usable value
        """
        if self.statement_timeout_ms:
            statement = statement.prefix_with(
                f"/*+ MAX_EXECUTION_TIME({int(self.statement_timeout_ms)}) */",
                dialect="mysql",
            )

        try:
            with self.engine.connect() as conn:
                try:
                    value = conn.execute(statement).scalar()
                finally:
                    conn.rollback()
        except SQLAlchemyError as e:
            log_database_error(e, f"integrity check {check_name}")
            raise DataAccessError(
                f"Query for {check_name or 'aggregate'} failed: {type(e).__name__}: {e}",
                check_name=check_name,
            ) from e

        if value is None:
            raise DataAccessError(
                f"Query for {check_name or 'aggregate'} returned no value",
                check_name=check_name,
            )
        return int(value)
