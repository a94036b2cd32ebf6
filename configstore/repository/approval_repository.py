"""Maker-checker approval workflow."""

from datetime import datetime, timezone
from typing import Any

from configstore.domain.approval import ApprovalRequest, ChangeOperation, RequestStatus
from configstore.errors import ConfigStoreError, NotFound, ValidationError
from configstore.logger.logger import get_logger
from configstore.logger.types import Category, param
from configstore.operations.results import Result, affected_rows, as_document, as_rows
from configstore.repository.config_repository import ConfigRepository, page_bounds
from configstore.repository.statements import Statement


class ApprovalRepository:
    """
    Approval requests for one config table.

    A request is written as pending by submit() and resolved exactly once by
    approve() or reject(). Both resolutions are conditional updates on the
    pending status, so two checkers racing on one request cannot both win.
    Entries only change when an approved request is applied.
    """

    def __init__(self, config_repository: ConfigRepository) -> None:
        """
        Initialize ApprovalRepository.

        Args:
            config_repository: Repository of the entries table the requests govern
        """
        self.configs = config_repository
        self.statements = config_repository.statements
        self.logger = get_logger().with_category(Category.APPROVAL)

    def _run(self, statement: Statement) -> Result:
        return self.configs.run(statement)

    def submit(
        self,
        operation: ChangeOperation | str,
        key: str,
        value: Any = None,
        description: str | None = None,
        maker_id: str = "",
    ) -> ApprovalRequest:
        """
        Record a proposed change as a pending request.

        Args:
            operation: create, update or delete
            key: Config key the change targets
            value: Proposed value (ignored for delete)
            description: Proposed description
            maker_id: Who proposes the change

        Returns:
            The stored ApprovalRequest
        """
        try:
            operation = ChangeOperation(operation)
        except ValueError as e:
            raise ValidationError(f"invalid operation: {operation}") from e
        if not key or not maker_id:
            raise ValidationError(
                f"config key and maker_id are required for submit_{operation.value} operation"
            )

        previous_value = None
        if operation is not ChangeOperation.CREATE:
            current = self.configs.read(key, admin=True)
            previous_value = current.value if current else None

        request = ApprovalRequest(
            config_key=key,
            config_value=None if operation is ChangeOperation.DELETE else value,
            description=description,
            operation=operation,
            maker_id=maker_id,
            previous_value=previous_value,
        )
        self._run(self.statements.insert_request(request))

        self.logger.info(
            f"Change submitted for approval: {operation.value}",
            param("request_id", request.request_id),
            param("key", key),
            param("maker_id", maker_id),
        )
        return request

    def _load(self, request_id: str, status: RequestStatus | None = None) -> ApprovalRequest | None:
        row = as_document(self._run(self.statements.select_request(request_id, status)))
        return ApprovalRequest.from_row(row) if row else None

    def _pending(self, request_id: str) -> ApprovalRequest:
        request = self._load(request_id, RequestStatus.PENDING)
        if request is None:
            raise NotFound(f"pending request not found: {request_id}")
        return request

    def _transition(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        checker_id: str | None,
        comment: str | None,
    ) -> bool:
        processed_at = None if to_status is RequestStatus.PENDING else datetime.now(timezone.utc)
        statement = self.statements.transition_request(
            request_id, from_status, to_status, checker_id, comment, processed_at
        )
        return affected_rows(self._run(statement)) > 0

    @staticmethod
    def _check_ids(request_id: str, checker_id: str, operation: str) -> None:
        if not request_id or not checker_id:
            raise ValidationError(
                f"request_id and checker_id are required for {operation} operation"
            )

    def approve(
        self, request_id: str, checker_id: str, comment: str | None = None
    ) -> dict[str, Any]:
        """
        Approve a pending request and apply its change.

        The request is claimed first, then applied through the direct-write
        path with the original maker. If applying fails the claim is
        reverted, so the request stays pending, and the error is re-raised.

        Raises:
            NotFound: request unknown or no longer pending
        """
        self._check_ids(request_id, checker_id, "approve_request")
        request = self._pending(request_id)

        if not self._transition(
            request_id, RequestStatus.PENDING, RequestStatus.APPROVED, checker_id, comment
        ):
            raise NotFound(f"pending request not found: {request_id}")

        try:
            result = self._apply(request, checker_id, comment)
        except ConfigStoreError as e:
            self.logger.error(
                "Failed to apply approved change, request returned to pending",
                e,
                param("request_id", request_id),
                param("key", request.config_key),
            )
            try:
                self._transition(
                    request_id, RequestStatus.APPROVED, RequestStatus.PENDING, None, None
                )
            except ConfigStoreError as revert_error:
                self.logger.error(
                    "Failed to return request to pending",
                    revert_error,
                    param("request_id", request_id),
                )
            raise

        self.logger.info(
            f"Request approved: {request.operation.value}",
            param("request_id", request_id),
            param("key", request.config_key),
            param("maker_id", request.maker_id),
            param("checker_id", checker_id),
        )
        return {
            "request_id": request_id,
            "status": RequestStatus.APPROVED.value,
            "operation": request.operation.value,
            "config_key": request.config_key,
            "result": result,
        }

    def _apply(self, request: ApprovalRequest, checker_id: str, comment: str | None) -> Result:
        match request.operation:
            case ChangeOperation.CREATE:
                return self.configs.create_direct(
                    request.config_key,
                    request.config_value,
                    request.description,
                    request.maker_id,
                    checker_id,
                    comment,
                )
            case ChangeOperation.UPDATE:
                return self.configs.update_direct(
                    request.config_key,
                    request.config_value,
                    request.description,
                    request.maker_id,
                    checker_id,
                    comment,
                )
            case ChangeOperation.DELETE:
                return self.configs.delete_direct(request.config_key)
        raise ValidationError(f"invalid operation: {request.operation}")

    def reject(
        self, request_id: str, checker_id: str, comment: str | None = None
    ) -> dict[str, Any]:
        """
        Reject a pending request. Entries are not touched.

        Raises:
            NotFound: request unknown or no longer pending
        """
        self._check_ids(request_id, checker_id, "reject_request")
        if not self._transition(
            request_id, RequestStatus.PENDING, RequestStatus.REJECTED, checker_id, comment
        ):
            raise NotFound(f"pending request not found: {request_id}")

        self.logger.info(
            "Request rejected",
            param("request_id", request_id),
            param("checker_id", checker_id),
        )
        return {
            "request_id": request_id,
            "status": RequestStatus.REJECTED.value,
            "checker_id": checker_id,
            "approval_comment": comment,
        }

    def get(self, request_id: str) -> ApprovalRequest | None:
        """Request in any status."""
        if not request_id:
            raise ValidationError("request_id is required")
        return self._load(request_id)

    def _list(self, **criteria: Any) -> list[ApprovalRequest]:
        limit, offset = page_bounds(criteria.pop("limit"), criteria.pop("offset"))
        statement = self.statements.select_requests(limit=limit, offset=offset, **criteria)
        return [ApprovalRequest.from_row(row) for row in as_rows(self._run(statement))]

    def list_pending(self, limit: int = 0, offset: int = 0) -> list[ApprovalRequest]:
        """Pending requests, oldest first."""
        return self._list(status=RequestStatus.PENDING, limit=limit, offset=offset)

    def list_mine(self, maker_id: str, limit: int = 0, offset: int = 0) -> list[ApprovalRequest]:
        """Requests of one maker in any status, newest first."""
        if not maker_id:
            raise ValidationError("maker_id is required for get_my_requests operation")
        return self._list(maker_id=maker_id, descending=True, limit=limit, offset=offset)

    def list_history(self, limit: int = 0, offset: int = 0) -> list[ApprovalRequest]:
        """Resolved requests, most recently processed first."""
        return self._list(
            resolved=True,
            order_by="processed_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
