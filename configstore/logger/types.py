"""Types and constants for structured logging."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Level(str, Enum):
    """Log level, ordered from most to least verbose."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"
    PANIC = "panic"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value: "str | Level") -> "Level":
        """Parse a level name; 'warning' is accepted as an alias of 'warn'."""
        if isinstance(value, Level):
            return value
        name = value.strip().lower()
        if name == "warning":
            name = "warn"
        return cls(name)


_SEVERITY = {level: idx for idx, level in enumerate(Level)}


class Category(str, Enum):
    """Event category used to group log entries."""

    DATABASE = "database"  # Generic backend plumbing
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"
    CONFIG = "config"  # Config entry reads and direct writes
    APPROVAL = "approval"  # Maker-checker workflow
    SERVICE = "service"  # Operation dispatch
    SECURITY = "security"


@dataclass
class LogEntry:
    """One log record, as written to the logs table."""

    timestamp: datetime
    service_name: str
    instance_id: str
    environment: str
    level: Level
    message: str
    ingestion_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    node_name: str | None = None
    category: Category | None = None
    trace_id: str | None = None
    span_id: str | None = None
    request_id: str | None = None
    function_name: str | None = None
    file_path: str | None = None
    line_number: int | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    context: dict[str, Any] | None = None
    duration_ms: int | None = None


@dataclass
class Field:
    """Structured key/value attached to a log entry."""

    key: str
    value: Any


def category(cat: Category) -> Field:
    """Field overriding the logger category for one entry."""
    return Field(key="_category", value=cat)


def param(key: str, value: Any) -> Field:
    return Field(key=key, value=value)


def duration_ms(value: int) -> Field:
    return Field(key="duration_ms", value=value)
