"""
PostgreSQL connection pool for the TimescaleDB store.

One connection per concurrent worker; connections are handed out per
bulk write and returned afterwards.
"""
import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2 import pool

logger = logging.getLogger(__name__)


class PostgresConnectionPool:
    """
    Thread-safe PostgreSQL connection pool.

    ThreadedConnectionPool does not block when exhausted, so max_conn must
    be at least the number of threads that write concurrently.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        min_conn: int = 1,
        max_conn: int = 12,
        connect_timeout: int = 10,
    ):
        """
        Args:
            host: Database host (default: localhost)
            port: Database port (default: 5432)
            database: Database name (default: trading)
            user: Database user (default: postgres)
            password: Database password
            min_conn: Connections opened up front
            max_conn: Upper bound, sized to the worker count
            connect_timeout: Seconds before a connection attempt fails
        """
        if max_conn < min_conn:
            raise ValueError(f"max_conn {max_conn} is below min_conn {min_conn}")
        self.host = host or 'localhost'
        self.port = port or 5432
        self.database = database or 'trading'
        self.user = user or 'postgres'
        self.max_conn = max_conn

        try:
            self.pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=min_conn,
                maxconn=max_conn,
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=password,
                connect_timeout=connect_timeout,
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to {self.host}:{self.port}/{self.database}: {e}")
            raise
        logger.info(f"Connection pool created: {self.host}:{self.port}/{self.database} (max={max_conn})")

    @classmethod
    def from_config(cls, db_config, max_conn: int = 12) -> 'PostgresConnectionPool':
        """Build a pool from a DatabaseConfig."""
        return cls(
            host=db_config.host,
            port=db_config.port,
            database=db_config.database,
            user=db_config.user,
            password=db_config.password,
            max_conn=max_conn,
        )

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection; commit on success, roll back on error.

        Example:
            with pool.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        """
        conn = self.pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if getattr(self, 'pool', None) is not None and not self.pool.closed:
            self.pool.closeall()
            logger.info("Connection pool closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
