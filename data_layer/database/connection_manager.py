"""
Database connection manager for PostgreSQL.
"""

import os
import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2 import pool

from ..exceptions import DatabaseConnectionError


class DatabaseConnectionManager:
    """
    Manages a thread-safe pool of PostgreSQL connections.

    Refresh workers run on several threads, so the pool is a
    ThreadedConnectionPool created lazily on first use.
    """

    def __init__(self,
                 connection_string: Optional[str] = None,
                 min_connections: int = 1,
                 max_connections: int = 10):
        """
        Initialize the database connection manager.

        Args:
            connection_string: PostgreSQL connection string. If None, reads from DATABASE_URL env var.
            min_connections: Minimum number of connections in the pool.
            max_connections: Maximum number of connections in the pool.
        """
        self.logger = logging.getLogger(__name__)

        self.connection_string = connection_string or os.getenv('DATABASE_URL')
        if not self.connection_string:
            raise DatabaseConnectionError(
                "No database connection string provided. Set DATABASE_URL environment variable "
                "or pass connection_string parameter."
            )

        if min_connections < 1 or max_connections < min_connections:
            raise DatabaseConnectionError(
                f"Invalid pool bounds: min={min_connections}, max={max_connections}"
            )

        self.min_connections = min_connections
        self.max_connections = max_connections
        self._connection_pool: Optional[pool.ThreadedConnectionPool] = None

    def _create_pool(self):
        """Create the connection pool."""
        try:
            self._connection_pool = pool.ThreadedConnectionPool(
                self.min_connections,
                self.max_connections,
                self.connection_string
            )
            self.logger.info(f"Created connection pool with {self.min_connections}-{self.max_connections} connections")
        except psycopg2.Error as e:
            raise DatabaseConnectionError(f"Failed to create connection pool: {e}")

    def get_connection(self):
        """
        Get a connection from the pool.

        Returns:
            psycopg2.extensions.connection: Database connection
        """
        if self._connection_pool is None:
            self._create_pool()

        try:
            return self._connection_pool.getconn()
        except pool.PoolError as e:
            raise DatabaseConnectionError(f"No connection available in pool: {e}")
        except psycopg2.Error as e:
            raise DatabaseConnectionError(f"Failed to get connection from pool: {e}")

    def return_connection(self, conn):
        """
        Return a connection to the pool.

        Args:
            conn: Database connection to return
        """
        if self._connection_pool and conn:
            try:
                self._connection_pool.putconn(conn)
            except pool.PoolError as e:
                self.logger.error(f"Failed to return connection to pool: {e}")

    @contextmanager
    def get_cursor_context(self, commit: bool = True):
        """
        Context manager for a cursor on a pooled connection.

        The transaction is committed on success when ``commit`` is set and
        rolled back on any error; the connection always goes back to the pool.

        Args:
            commit: Whether to commit the transaction automatically

        Yields:
            psycopg2.extensions.cursor: Database cursor
        """
        conn = self.get_connection()
        cursor = None
        try:
            cursor = conn.cursor()
            yield cursor
            if commit:
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if cursor:
                cursor.close()
            self.return_connection(conn)

    def test_connection(self) -> bool:
        """
        Test the database connection.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            with self.get_cursor_context(commit=False) as cursor:
                cursor.execute("SELECT 1")
                result = cursor.fetchone()
                return result is not None and result[0] == 1
        except (DatabaseConnectionError, psycopg2.Error) as e:
            self.logger.error(f"Database connection test failed: {e}")
            return False

    def close_all_connections(self):
        """Close all connections in the pool."""
        if self._connection_pool:
            try:
                self._connection_pool.closeall()
                self._connection_pool = None
                self.logger.info("Closed all database connections")
            except pool.PoolError as e:
                self.logger.error(f"Error closing connections: {e}")
