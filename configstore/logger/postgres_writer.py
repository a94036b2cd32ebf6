"""Batched sink for log entries in the PostgreSQL ``logs`` table."""

import json
import sys
import threading
from typing import Any

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as Connection

from configstore.logger.types import LogEntry

# Column order of the logs table; row tuples follow it
LOG_COLUMNS = (
    "timestamp",
    "service_name",
    "instance_id",
    "node_name",
    "environment",
    "level",
    "category",
    "trace_id",
    "span_id",
    "request_id",
    "function_name",
    "file_path",
    "line_number",
    "message",
    "error_message",
    "stack_trace",
    "context",
    "duration_ms",
    "ingestion_time",
)


def _report(problem: str) -> None:
    print(f"[LOGGER ERROR] {problem}", file=sys.stderr)


def entry_row(entry: LogEntry) -> tuple[Any, ...]:
    """One entry as a tuple in LOG_COLUMNS order."""
    values = dict(vars(entry))
    values["level"] = entry.level.value
    values["category"] = entry.category.value if entry.category else None
    if entry.context is not None:
        values["context"] = json.dumps(entry.context, default=str)
    return tuple(values[column] for column in LOG_COLUMNS)


def format_entry(entry: LogEntry) -> str:
    """Render an entry as one JSON line."""
    data: dict[str, Any] = {
        "timestamp": entry.timestamp.isoformat(),
        "level": entry.level.value,
        "category": entry.category.value if entry.category else None,
        "message": entry.message,
        "service_name": entry.service_name,
        "environment": entry.environment,
    }
    optional = {
        "request_id": entry.request_id,
        "error": entry.error_message,
        "context": entry.context,
    }
    data.update((key, value) for key, value in optional.items() if value)
    return json.dumps(data, default=str)


class PostgresWriter:
    """
    Collects entries and inserts them in batches.

    A batch is flushed once ``batch_size`` entries are buffered and on close.
    Entries that cannot reach PostgreSQL are printed to stderr instead, so a
    missing logs table never breaks the calling operation.
    """

    INSERT_QUERY = f"INSERT INTO logs ({', '.join(LOG_COLUMNS)}) VALUES %s"

    def __init__(self, dsn: str, batch_size: int = 100) -> None:
        self.dsn = dsn
        self.batch_size = batch_size
        self.buffer: list[LogEntry] = []
        self._lock = threading.Lock()
        self._conn: Connection | None = None
        self._closed = False

    def connect(self) -> None:
        try:
            conn = psycopg2.connect(self.dsn)
            conn.set_session(autocommit=False)
        except psycopg2.Error as e:
            _report(f"Failed to connect to PostgreSQL: {e}")
            raise
        self._conn = conn

    def write(self, entry: LogEntry) -> None:
        if self._closed:
            return
        with self._lock:
            self.buffer.append(entry)
            if len(self.buffer) >= self.batch_size:
                self._drain()

    def flush(self) -> None:
        with self._lock:
            self._drain()

    def close(self) -> None:
        """Flush what is left and close the connection."""
        self.flush()
        self._closed = True
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    def _drain(self) -> None:
        # Caller holds the lock
        pending, self.buffer = self.buffer, []
        if not pending:
            return
        if self._conn is None:
            self._print(pending)
            return
        try:
            self._insert(self._conn, pending)
        except psycopg2.Error as e:
            _report(f"Failed to insert logs into PostgreSQL: {e}")
            self._conn.rollback()
            self._print(pending)

    def _insert(self, conn: Connection, entries: list[LogEntry]) -> None:
        with conn.cursor() as cursor:
            psycopg2.extras.execute_values(
                cursor,
                self.INSERT_QUERY,
                [entry_row(entry) for entry in entries],
                page_size=self.batch_size,
            )
        conn.commit()

    @staticmethod
    def _print(entries: list[LogEntry]) -> None:
        for entry in entries:
            print(format_entry(entry), file=sys.stderr)
