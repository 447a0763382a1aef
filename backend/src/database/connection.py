"""
WordPress Database Sanity Check - Database Connection Management

One pooled SQLAlchemy engine per process, pointed at the WordPress MySQL
database. Connections handed out here are read-only by convention: they are
rolled back on exit and never committed.
"""

from contextlib import contextmanager
from typing import Generator, List, Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.engine import Engine, Connection, URL

from utils.config import (
    DB_DRIVER, DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD,
    DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_PRE_PING,
    config
)
from utils.logger import logger, log_database_error


class DatabaseConnectionError(Exception):
    """Raised when the engine cannot be created."""
    pass


def build_url() -> URL:
    """Connection URL for the configured WordPress database (utf8mb4, like WordPress itself)."""
    return URL.create(
        drivername=DB_DRIVER,
        username=DB_USER,
        password=DB_PASSWORD,
        host=DB_HOST,
        port=DB_PORT,
        database=DB_NAME,
        query={"charset": "utf8mb4"},
    )


class DatabaseConnection:
    """
    Lazily created engine plus read-only connection helpers.

    The pool is sized from AUDIT_MAX_WORKERS so a parallel audit can hold one
    connection per worker. pool_pre_ping drops connections MySQL has closed
    (wait_timeout) before an audit uses them.
    """

    def __init__(self):
        self._engine: Optional[Engine] = None

    def get_engine(self) -> Engine:
        """
        Return the shared engine, creating it on first use.

        Raises:
            DatabaseConnectionError: If the engine cannot be created
        """
        if self._engine is not None:
            return self._engine

        try:
            self._engine = create_engine(
                build_url(),
                poolclass=QueuePool,
                pool_size=DB_POOL_SIZE,
                max_overflow=DB_POOL_MAX_OVERFLOW,
                pool_recycle=DB_POOL_RECYCLE,
                pool_pre_ping=DB_POOL_PRE_PING,
                echo=False,
                hide_parameters=True,  # keep row values out of error messages and logs
            )
        except Exception as e:
            log_database_error(e, "Failed to create database engine")
            raise DatabaseConnectionError(f"Failed to create database engine: {e}") from e

        logger.info("WordPress database pool ready", extra={
            "host": DB_HOST,
            "database": DB_NAME,
            "pool_size": DB_POOL_SIZE,
            "environment": config.environment
        })
        return self._engine

    @contextmanager
    def get_connection(self) -> Generator[Connection, None, None]:
        """
        Read-only connection; whatever happens inside is rolled back.

        Example:
            >>> with db.get_connection() as conn:
            ...     conn.execute(text("SELECT COUNT(*) FROM wp_posts")).scalar()
        """
        connection = self.get_engine().connect()
        try:
            yield connection
        except Exception as e:
            log_database_error(e, "Read-only query failed")
            raise
        finally:
            connection.rollback()
            connection.close()

    def test_connection(self) -> bool:
        """True when a trivial query succeeds."""
        try:
            with self.get_connection() as conn:
                conn.execute(text("SELECT 1")).fetchone()
        except Exception as e:
            logger.error("Database connection test failed", extra={"error": str(e)})
            return False
        return True

    def missing_tables(self, table_names: List[str]) -> List[str]:
        """
        Names from `table_names` that do not exist in the database.

        Raises:
            DatabaseConnectionError: If the engine cannot be created
        """
        inspector = inspect(self.get_engine())
        return [name for name in table_names if not inspector.has_table(name)]

    def close(self):
        """Dispose of the pool; the next get_engine() builds a new one."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.info("WordPress database pool closed")


# Global database connection instance
db = DatabaseConnection()


def get_engine() -> Engine:
    """Return the shared pooled engine."""
    return db.get_engine()


def test_database_connection() -> bool:
    """Test database connectivity."""
    return db.test_connection()
