"""PostgreSQL connector built on a psycopg2 connection pool."""

import contextlib
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg2
import psycopg2.errors
from psycopg2.extensions import connection as Connection
from psycopg2.extensions import cursor as Cursor
from psycopg2.pool import ThreadedConnectionPool

from configstore.database.base import BackendType, ConnectionConfig
from configstore.database.relational import RelationalConnector
from configstore.errors import BackendConnectionError, NotConnected
from configstore.logger.types import Category, param
from configstore.operations.translator import POSTGRES


class PostgresConnector(RelationalConnector):
    """PostgreSQL connector with connection pooling."""

    dialect = POSTGRES
    category = Category.POSTGRES

    def __init__(self, config: ConnectionConfig, min_conn: int = 1) -> None:
        """
        Initialize PostgreSQL connector.

        Args:
            config: Connection descriptor with type postgresql
            min_conn: Connections opened eagerly by the pool
        """
        super().__init__(config)
        self.min_conn = min_conn
        self.pool: ThreadedConnectionPool | None = None
        self._born: dict[int, float] = {}
        self._lock = threading.Lock()

    @property
    def backend_type(self) -> BackendType:
        return BackendType.POSTGRESQL

    @property
    def driver_error(self) -> type[Exception]:
        return psycopg2.Error

    def connect_kwargs(self) -> dict[str, Any]:
        """psycopg2 connect kwargs; the statement timeout carries the deadline."""
        timeout_ms = int(self.config.timeout * 1000)
        return {
            "host": self.config.host,
            "port": self.config.port,
            "user": self.config.username,
            "password": self.config.password or "",
            "dbname": self.config.database,
            "sslmode": self.config.ssl_mode or "disable",
            "connect_timeout": max(1, int(round(self.config.timeout))),
            "options": f"-c statement_timeout={timeout_ms}",
        }

    def connect(self) -> None:
        """Create the connection pool and verify it with a ping."""
        try:
            self.pool = ThreadedConnectionPool(
                minconn=self.min_conn,
                maxconn=self.config.max_pool_size,
                **self.connect_kwargs(),
            )
            self._probe()
        except psycopg2.Error as e:
            self.logger.error(
                "Failed to connect to PostgreSQL",
                e,
                param("host", self.config.host),
                param("port", self.config.port),
            )
            self.close()
            raise BackendConnectionError(f"failed to create connection pool: {e}") from e

        self.logger.info(
            "Connected to PostgreSQL",
            param("host", self.config.host),
            param("port", self.config.port),
            param("database", self.config.database),
        )

    def close(self) -> None:
        """Close the connection pool."""
        if self.pool:
            self.pool.closeall()
            self.pool = None
            self._born.clear()
            self.logger.debug("PostgreSQL pool closed")

    def ping(self, timeout: float | None = None) -> None:
        if not self.pool:
            raise BackendConnectionError("PostgreSQL connection not established")
        try:
            self._probe(timeout)
        except psycopg2.Error as e:
            raise BackendConnectionError(f"failed to ping PostgreSQL: {e}") from e

    def _probe(self, timeout: float | None = None) -> None:
        with self.cursor() as cur:
            if timeout is not None:
                # Lasts only until the probe transaction ends
                cur.execute("SET LOCAL statement_timeout = %s", (int(timeout * 1000),))
            cur.execute("SELECT 1")
            cur.fetchone()

    def get_connection(self) -> Connection:
        """Get connection from pool."""
        if not self.pool:
            raise NotConnected("PostgreSQL")
        conn = self.pool.getconn()
        with self._lock:
            self._born.setdefault(id(conn), time.monotonic())
        return conn  # type: ignore[no-any-return]

    def put_connection(self, conn: Connection) -> None:
        """Return connection to pool, retiring it past max lifetime."""
        if not self.pool:
            return
        with self._lock:
            born = self._born.get(id(conn), time.monotonic())
            expired = conn.closed or time.monotonic() - born > self.config.max_lifetime
            if expired:
                self._born.pop(id(conn), None)
        self.pool.putconn(conn, close=bool(expired))

    @contextmanager
    def cursor(self) -> Generator[Cursor, None, None]:
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except Exception:
            with contextlib.suppress(psycopg2.Error):
                conn.rollback()
            raise
        finally:
            self.put_connection(conn)

    def _is_timeout(self, err: Exception) -> bool:
        if isinstance(err, psycopg2.errors.QueryCanceled):
            return True
        return isinstance(err, psycopg2.OperationalError) and "timeout" in str(err).lower()
