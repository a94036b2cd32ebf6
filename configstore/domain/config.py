"""Configuration domain models."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from configstore.errors import ValidationError


class EntryStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


@dataclass
class ConfigEntry:
    """Single configuration entry."""

    key: str
    value: Any
    description: str | None = None
    status: EntryStatus | None = EntryStatus.APPROVED
    maker_id: str | None = None
    checker_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    approved_at: datetime | None = None
    approval_comment: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.status == EntryStatus.APPROVED

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ConfigEntry":
        """
        Create ConfigEntry from a table row or document.

        Rows written before the status column existed have no status.
        """
        status = row.get("status")
        return cls(
            key=row["config_key"],
            value=row.get("config_value"),
            description=row.get("description"),
            status=EntryStatus(status) if status else None,
            maker_id=row.get("maker_id"),
            checker_id=row.get("checker_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            approved_at=row.get("approved_at"),
            approval_comment=row.get("approval_comment"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "maker_id": self.maker_id,
            "checker_id": self.checker_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "approved_at": self.approved_at,
            "approval_comment": self.approval_comment,
        }


@dataclass
class ConfigItem:
    """Input item for batch operations."""

    key: str
    value: Any = None
    description: str | None = None
    maker_id: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConfigItem":
        if not isinstance(data, Mapping):
            raise ValidationError(f"config item must be an object, got {type(data).__name__}")
        return cls(
            key=data.get("key") or "",
            value=data.get("value"),
            description=data.get("description"),
            maker_id=data.get("maker_id"),
        )


@dataclass
class BatchResult:
    """Summary of a batch; results keep input order."""

    total_items: int = 0
    success_count: int = 0
    failure_count: int = 0
    results: dict[str, dict[str, Any]] = field(default_factory=dict)

    def record_success(self, key: str, result: Any) -> None:
        self.total_items += 1
        self.success_count += 1
        self.results[key] = {"success": True, "result": result}

    def record_failure(self, key: str, error: Exception) -> None:
        self.total_items += 1
        self.failure_count += 1
        self.results[key] = {"error": str(error)}

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_items": self.total_items,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "results": self.results,
        }


def encode_value(value: Any) -> str | None:
    """
    Render a value for a TEXT column.

    Strings are stored verbatim, everything else as JSON.
    """
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, default=str)
