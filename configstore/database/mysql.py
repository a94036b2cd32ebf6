"""MySQL connector built on PyMySQL."""

import contextlib
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import pymysql
from pymysql.connections import Connection
from pymysql.cursors import Cursor

from configstore.database.base import BackendType, ConnectionConfig
from configstore.database.relational import RelationalConnector
from configstore.errors import BackendConnectionError, NotConnected
from configstore.logger.types import Category, param
from configstore.operations.translator import MYSQL

# Server error codes raised when a query is cut off by a deadline
TIMEOUT_ERROR_CODES = frozenset({2013, 1317, 3024})


class MySQLConnector(RelationalConnector):
    """MySQL connector.

    PyMySQL has no pool of its own, so the connector keeps one connection
    behind a lock, pings it with reconnect before use and replaces it once
    it outlives max_lifetime.
    """

    dialect = MYSQL
    category = Category.MYSQL

    def __init__(self, config: ConnectionConfig) -> None:
        """
        Initialize MySQL connector.

        Args:
            config: Connection descriptor with type mysql
        """
        super().__init__(config)
        self._connection: Connection | None = None
        self._connected_at = 0.0
        self._lock = threading.RLock()

    @property
    def backend_type(self) -> BackendType:
        return BackendType.MYSQL

    @property
    def driver_error(self) -> type[Exception]:
        return pymysql.Error

    def connect_kwargs(self) -> dict[str, Any]:
        """PyMySQL connection kwargs."""
        timeout = max(1, int(round(self.config.timeout)))
        return {
            "host": self.config.host,
            "port": self.config.port,
            "database": self.config.database,
            "user": self.config.username,
            "password": self.config.password or "",
            "charset": "utf8mb4",
            "connect_timeout": timeout,
            "read_timeout": timeout,
            "write_timeout": timeout,
            "cursorclass": Cursor,
            "autocommit": False,
        }

    def connect(self) -> None:
        """Connect to MySQL."""
        with self._lock:
            try:
                self._connection = self._open()
            except pymysql.Error as e:
                self.logger.error(
                    "Failed to connect to MySQL",
                    e,
                    param("host", self.config.host),
                    param("port", self.config.port),
                )
                raise BackendConnectionError(f"failed to connect to MySQL: {e}") from e

        self.logger.info(
            "Connected to MySQL",
            param("host", self.config.host),
            param("port", self.config.port),
            param("database", self.config.database),
        )

    def _open(self) -> Connection:
        connection = pymysql.connect(**self.connect_kwargs())
        self._connected_at = time.monotonic()
        return connection

    def close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            # may already be closed by the server
            with contextlib.suppress(pymysql.Error):
                self._connection.close()
            self._connection = None
            self.logger.debug("MySQL connection closed")

    def ping(self, timeout: float | None = None) -> None:
        with self._lock:
            if self._connection is None:
                raise BackendConnectionError("MySQL connection not established")
            try:
                self._connection.ping(reconnect=False)
            except pymysql.Error as e:
                raise BackendConnectionError(f"failed to ping MySQL: {e}") from e

    def _ensure_connected(self) -> Connection:
        """Live connection, reconnecting if it was dropped or is too old."""
        if self._connection is None:
            raise NotConnected("MySQL")

        if time.monotonic() - self._connected_at > self.config.max_lifetime:
            self.logger.debug("MySQL connection exceeded max lifetime, reopening")
            with contextlib.suppress(pymysql.Error):
                self._connection.close()
            self._connection = self._open()
            return self._connection

        try:
            self._connection.ping(reconnect=True)
        except pymysql.Error as e:
            self.logger.warn(
                "MySQL connection lost, reconnecting...",
                param("error", str(e)),
            )
            self._connection = self._open()

        return self._connection

    @contextmanager
    def cursor(self) -> Generator[Cursor, None, None]:
        with self._lock:
            conn = self._ensure_connected()
            cur = conn.cursor()
            try:
                yield cur
                conn.commit()
            except Exception:
                with contextlib.suppress(pymysql.Error):
                    conn.rollback()
                raise
            finally:
                cur.close()

    def _is_timeout(self, err: Exception) -> bool:
        return (
            isinstance(err, pymysql.err.OperationalError)
            and bool(err.args)
            and err.args[0] in TIMEOUT_ERROR_CODES
        )
