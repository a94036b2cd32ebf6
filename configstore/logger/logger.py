"""Structured logger.

Entries are built from the bound context of a Logger plus the fields of a
single call, then handed to a PostgresWriter. Without a writer every entry is
printed to stderr as one JSON line.
"""

import os
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from configstore.logger.postgres_writer import PostgresWriter, format_entry
from configstore.logger.types import Category, Field, Level, LogEntry

PACKAGE_DIR = "configstore"

# Context keys whose values never reach a log sink
SECRET_MARKERS = ("password", "secret", "dsn", "token")

REDACTED = "***"


def is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SECRET_MARKERS)


def redact(context: dict[str, Any]) -> dict[str, Any]:
    """Mask secret-looking keys, descending into nested dicts."""
    masked: dict[str, Any] = {}
    for key, value in context.items():
        if is_secret_key(key) and value is not None:
            masked[key] = REDACTED
        elif isinstance(value, dict):
            masked[key] = redact(value)
        else:
            masked[key] = value
    return masked


def resolve_instance_id() -> str:
    return os.getenv("HOSTNAME") or os.getenv("CONTAINER_ID") or str(uuid.uuid4())


def relative_source_path(file_path: str) -> str:
    parts = Path(file_path).parts
    if PACKAGE_DIR in parts:
        return str(Path(*parts[parts.index(PACKAGE_DIR):]))
    return Path(file_path).name


class Logger:
    """Structured logger that hands entries to a PostgresWriter or stderr."""

    def __init__(
        self,
        service_name: str,
        environment: str,
        writer: PostgresWriter | None = None,
        level: Level = Level.INFO,
    ) -> None:
        """
        Args:
            service_name: Service name
            environment: Environment (dev, stage, prod)
            writer: PostgresWriter for log persistence
            level: Minimum level that gets recorded
        """
        self.service_name = service_name
        self.environment = environment
        self.writer = writer
        self.level = level
        self.instance_id = resolve_instance_id()
        self.node_name = os.getenv("NODE_NAME")

        self._fields: dict[str, Any] = {}
        self._category: Category | None = None

    def trace(self, msg: str, *fields: Field) -> None:
        self._log(Level.TRACE, msg, None, fields)

    def debug(self, msg: str, *fields: Field) -> None:
        self._log(Level.DEBUG, msg, None, fields)

    def info(self, msg: str, *fields: Field) -> None:
        self._log(Level.INFO, msg, None, fields)

    def warn(self, msg: str, *fields: Field) -> None:
        self._log(Level.WARN, msg, None, fields)

    def error(self, msg: str, err: Exception | None = None, *fields: Field) -> None:
        self._log(Level.ERROR, msg, err, fields)

    def is_enabled(self, level: Level) -> bool:
        return level.severity >= self.level.severity

    def with_category(self, category: Category) -> "Logger":
        """Return a new logger bound to the given category."""
        bound = self._clone()
        bound._category = category
        return bound

    def with_fields(self, *fields: Field) -> "Logger":
        """Return a new logger carrying extra context fields."""
        bound = self._clone()
        bound._fields.update((field.key, field.value) for field in fields)
        return bound

    def _clone(self) -> "Logger":
        clone = Logger(self.service_name, self.environment, self.writer, self.level)
        clone.instance_id = self.instance_id
        clone.node_name = self.node_name
        clone._fields = dict(self._fields)
        clone._category = self._category
        return clone

    def _log(
        self,
        level: Level,
        msg: str,
        err: Exception | None,
        fields: tuple[Field, ...],
    ) -> None:
        if not self.is_enabled(level):
            return
        entry = self._build_entry(level, msg, fields)
        if err is not None:
            self._attach_error(entry, err)
        self._emit(entry)

    def _build_entry(self, level: Level, msg: str, fields: tuple[Field, ...]) -> LogEntry:
        context = dict(self._fields)
        entry_category = self._category
        for field in fields:
            if field.key == "_category":
                if isinstance(field.value, Category):
                    entry_category = field.value
            else:
                context[field.key] = field.value

        elapsed = context.pop("duration_ms", None)
        function_name, file_path, line_number = self._caller()

        return LogEntry(
            timestamp=datetime.now(timezone.utc),
            service_name=self.service_name,
            instance_id=self.instance_id,
            node_name=self.node_name,
            environment=self.environment,
            level=level,
            category=entry_category,
            function_name=function_name,
            file_path=file_path,
            line_number=line_number,
            message=msg,
            context=redact(context) or None,
            duration_ms=int(elapsed) if elapsed is not None else None,
        )

    @staticmethod
    def _caller() -> tuple[str | None, str | None, int | None]:
        # _caller <- _build_entry <- _log <- level method <- call site
        try:
            frame = sys._getframe(4)
        except ValueError:
            return None, None, None
        return frame.f_code.co_name, relative_source_path(frame.f_code.co_filename), frame.f_lineno

    @staticmethod
    def _attach_error(entry: LogEntry, err: Exception) -> None:
        entry.error_message = str(err)
        if entry.level.severity >= Level.ERROR.severity:
            entry.stack_trace = "".join(
                traceback.format_exception(type(err), err, err.__traceback__)
            )

    def _emit(self, entry: LogEntry) -> None:
        if self.writer is None:
            print(format_entry(entry), file=sys.stderr)
            return
        try:
            self.writer.write(entry)
        except Exception as write_err:
            print(f"[LOGGER ERROR] Failed to write log: {write_err}", file=sys.stderr)


_global_logger: Logger | None = None


def get_logger() -> Logger:
    """Return the global logger instance."""
    if _global_logger is None:
        raise RuntimeError("Logger not initialized. Call init_logger() first.")
    return _global_logger


def init_logger(
    service_name: str,
    environment: str,
    writer: PostgresWriter | None = None,
    level: Level | str = Level.INFO,
) -> Logger:
    """
    Initialize the global logger.

    Args:
        service_name: Service name
        environment: Environment (dev, stage, prod)
        writer: PostgresWriter for log persistence, stderr when None
        level: Minimum level that gets recorded, by name or Level

    Returns:
        Logger instance
    """
    global _global_logger
    _global_logger = Logger(service_name, environment, writer, Level.parse(level))
    return _global_logger
