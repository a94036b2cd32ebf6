"""Uniform result variants returned by every backend."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

Mapping = dict[str, Any]


@dataclass
class Rows:
    """Ordered sequence of key -> value mappings."""

    rows: list[Mapping] = field(default_factory=list)

    def first(self) -> Mapping | None:
        return self.rows[0] if self.rows else None


@dataclass
class Document:
    """Single mapping (findOne hit)."""

    document: Mapping


@dataclass
class Count:
    value: int


@dataclass
class Ack:
    """Write acknowledgement. Fields a backend does not report stay None."""

    affected: int | None = None
    inserted_id: Any = None
    inserted_ids: list[Any] | None = None
    matched: int | None = None
    modified: int | None = None
    upserted_id: Any = None


@dataclass
class Empty:
    """Explicit "no result" marker for single-row lookups."""


Result = Rows | Document | Count | Ack | Empty


def decode_value(value: Any) -> Any:
    """Binary column values become text."""
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def rows_from_cursor(cursor: Any) -> Rows:
    """
    Convert a DB-API cursor into Rows.

    Column names come from cursor.description. Works for plain tuple
    cursors and dict cursors alike.
    """
    if cursor.description is None:
        return Rows()

    columns = [col[0] for col in cursor.description]
    rows: list[Mapping] = []
    for raw in cursor.fetchall():
        values = raw.values() if isinstance(raw, dict) else raw
        rows.append({col: decode_value(val) for col, val in zip(columns, values)})
    return Rows(rows)


def single(rows: Rows) -> Document | Empty:
    """First row as a Document, or Empty."""
    row = rows.first()
    return Document(row) if row is not None else Empty()


def as_rows(result: Result) -> list[Mapping]:
    """Rows/Document/Empty -> list of mappings."""
    match result:
        case Rows(rows=rows):
            return rows
        case Document(document=document):
            return [document]
        case Empty():
            return []
    raise TypeError(f"expected a row result, got {type(result).__name__}")


def as_document(result: Result) -> Mapping | None:
    match result:
        case Document(document=document):
            return document
        case Rows(rows=rows):
            return rows[0] if rows else None
        case Empty():
            return None
    raise TypeError(f"expected a single-row result, got {type(result).__name__}")


def as_count(result: Result) -> int:
    """Count, or COUNT(*) from a one-row, one-column result."""
    match result:
        case Count(value=value):
            return value
        case Rows(rows=[row]) if len(row) == 1:
            return int(next(iter(row.values())) or 0)
        case Rows(rows=[]) | Empty():
            return 0
    raise TypeError(f"expected a count result, got {type(result).__name__}")


def affected_rows(result: Result) -> int:
    """Rows touched by a write: affected for SQL, matched/deleted for documents."""
    match result:
        case Ack(affected=int(affected)):
            return affected
        case Ack(matched=int(matched)):
            return matched
        case Ack(inserted_id=inserted_id) if inserted_id is not None:
            return 1
    return 0


def to_plain(value: Any) -> Any:
    """Render a result (or anything nested in one) as JSON-friendly data."""
    match value:
        case Rows(rows=rows):
            return [to_plain(row) for row in rows]
        case Document(document=document):
            return to_plain(document)
        case Count(value=count):
            return count
        case Empty():
            return None
        case Ack():
            return {
                key: to_plain(val)
                for key, val in vars(value).items()
                if val is not None
            }
        case dict():
            return {str(key): to_plain(val) for key, val in value.items()}
        case list() | tuple():
            return [to_plain(item) for item in value]
        case datetime() | date():
            return value.isoformat()
        case Decimal():
            return str(value)
        case str() | int() | float() | bool() | None:
            return value
    if hasattr(value, "to_dict"):
        return to_plain(value.to_dict())
    return str(value)
