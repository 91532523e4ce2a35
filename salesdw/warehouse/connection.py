"""
PostgreSQL connection pool for the conformed store (psycopg3 + psycopg_pool)

Connection settings fall back to the DB_* environment variables, which the CLI
loads from .env and the tests point at a testcontainers instance.
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from salesdw.core.errors import ConfigurationError, StoreError
from salesdw.observability.logger import get_logger

logger = get_logger(__name__)

APPLICATION_NAME = "salesdw-conformance"


class DatabaseConnectionPool:
    """
    Small psycopg3 pool shared by one conformance run or CLI command.

    Rows come back as dictionaries. Work done inside transaction() is
    committed as one unit, so a snapshot swap is all or nothing.

    Usage:
        with DatabaseConnectionPool(password="...") as pool:
            with pool.transaction() as conn:
                conn.execute(...)
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            host: Database host (defaults to env var DB_HOST)
            port: Database port (defaults to env var DB_PORT)
            database: Database name (defaults to env var DB_NAME)
            user: Database user (defaults to env var DB_USER)
            password: Database password (defaults to env var DB_PASSWORD)
            min_size: Connections kept open
            max_size: Upper bound on open connections
            timeout: Seconds to wait for a connection

        Raises:
            ConfigurationError: If no password is configured
        """
        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", "datawarehouse")
        self.user = user or os.getenv("DB_USER", "salesdw")
        password = password or os.getenv("DB_PASSWORD")

        if not password:
            raise ConfigurationError(
                "No database password configured: set DB_PASSWORD or pass --db-password"
            )

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.conninfo = make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=password,
            connect_timeout=int(self.timeout),
            application_name=APPLICATION_NAME,
        )
        self._pool: ConnectionPool | None = None

    def __repr__(self) -> str:
        return f"DatabaseConnectionPool({self.user}@{self.host}:{self.port}/{self.database})"

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the database comes up.

        The delay doubles after every failed attempt.

        Raises:
            StoreError: If the database is still unreachable after max_retries
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            check=ConnectionPool.check_connection,
            open=False,
        )

        delay = retry_delay
        for attempt in range(1, max_retries + 1):
            try:
                pool.open(wait=True, timeout=self.timeout)
            except (OperationalError, TimeoutError) as e:
                if attempt == max_retries:
                    pool.close()
                    raise StoreError(f"{self!r} unreachable after {max_retries} attempts: {e}") from e
                logger.warning(
                    f"Connection attempt {attempt}/{max_retries} failed, retrying in {delay:.0f}s",
                    extra={"attempt": attempt, "error": str(e)},
                )
                time.sleep(delay)
                delay *= 2
            else:
                self._pool = pool
                logger.debug(f"Opened {self!r}")
                return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection from the pool.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError(f"{self!r} is not open; call open() first")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self):
        """
        Borrow a connection and commit its work as one unit.

        Any exception rolls the whole unit back and propagates.
        """
        with self.get_connection() as conn:
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()

    def fetch_all(self, query, params: tuple | None = None) -> list[dict]:
        """
        Run a read query and return every row.

        Args:
            query: SQL string or psycopg.sql.Composable
            params: Query parameters

        Returns:
            One dictionary per row
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
