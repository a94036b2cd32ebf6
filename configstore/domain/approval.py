"""Maker-checker approval request model."""

import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class ChangeOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def generate_request_id() -> str:
    """Hex encoding of 16 cryptographically random bytes."""
    return secrets.token_hex(16)


@dataclass
class ApprovalRequest:
    """
    Proposed change to a config entry and its resolution.

    Starts pending and moves exactly once to approved or rejected. Never
    deleted, so the requests table doubles as the audit trail.
    """

    config_key: str
    operation: ChangeOperation
    maker_id: str
    config_value: Any = None
    description: str | None = None
    request_id: str = field(default_factory=generate_request_id)
    status: RequestStatus = RequestStatus.PENDING
    checker_id: str | None = None
    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: datetime | None = None
    approval_comment: str | None = None
    previous_value: Any = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ApprovalRequest":
        """Create ApprovalRequest from a table row or document."""
        return cls(
            request_id=row["request_id"],
            config_key=row["config_key"],
            config_value=row.get("config_value"),
            description=row.get("description"),
            operation=ChangeOperation(row["operation"]),
            maker_id=row.get("maker_id") or "",
            checker_id=row.get("checker_id"),
            status=RequestStatus(row.get("status") or RequestStatus.PENDING.value),
            requested_at=row.get("requested_at"),  # type: ignore[arg-type]
            processed_at=row.get("processed_at"),
            approval_comment=row.get("approval_comment"),
            previous_value=row.get("previous_value"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "config_key": self.config_key,
            "config_value": self.config_value,
            "description": self.description,
            "operation": self.operation.value,
            "maker_id": self.maker_id,
            "checker_id": self.checker_id,
            "status": self.status.value,
            "requested_at": self.requested_at,
            "processed_at": self.processed_at,
            "approval_comment": self.approval_comment,
            "previous_value": self.previous_value,
        }
