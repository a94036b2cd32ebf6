"""
Operation dispatch for the config store.

Every call builds its own connector from a connection descriptor, connects
with the deadline of the operation, runs it and closes the connector.
"""

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from functools import partial
from typing import Any

from configstore.config.settings import Settings
from configstore.database.base import Backend, ConnectionConfig
from configstore.database.factory import create_connector
from configstore.domain.approval import ChangeOperation
from configstore.errors import UnsupportedOperation, ValidationError
from configstore.logger.logger import get_logger
from configstore.logger.types import Category, category, param
from configstore.operations.results import to_plain
from configstore.repository.approval_repository import ApprovalRepository
from configstore.repository.config_repository import ConfigRepository
from configstore.repository.statements import validate_identifier

ConnectorFactory = Callable[[ConnectionConfig], Backend]
Handler = Callable[[Mapping[str, Any], ConfigRepository, ApprovalRepository], Any]

ALIASES = {
    "create": "direct_create",
    "set_config": "direct_create",
    "create_batch": "direct_create_batch",
    "set_multiple": "direct_create_batch",
    "get_config": "read",
    "get_all": "read_all",
    "update": "direct_update",
    "update_batch": "direct_update_batch",
    "delete": "direct_delete",
    "delete_config": "direct_delete",
    "delete_batch": "direct_delete_batch",
    "delete_all": "direct_delete_all",
}

READ_ONLY_OPERATIONS = frozenset(
    {
        "get_pending_approvals",
        "get_my_requests",
        "get_approval_history",
        "read",
        "read_all",
        "search",
        "filter",
        "read_all_admin",
        "search_admin",
        "count",
        "count_admin",
        "exists",
    }
)

DIRECT_WRITE_OPERATIONS = frozenset(
    {
        "direct_create",
        "direct_create_batch",
        "direct_update",
        "direct_update_batch",
        "direct_delete",
        "direct_delete_batch",
        "direct_delete_all",
    }
)

REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "submit_create": ("key", "maker_id"),
    "submit_update": ("key", "maker_id"),
    "submit_delete": ("key", "maker_id"),
    "approve_request": ("request_id", "checker_id"),
    "reject_request": ("request_id", "checker_id"),
    "get_my_requests": ("maker_id",),
    "direct_create": ("key",),
    "read": ("key",),
    "search": ("search_term",),
    "search_admin": ("search_term",),
    "filter": ("filter",),
    "direct_update": ("key",),
    "direct_update_batch": ("config_items",),
    "direct_delete": ("key",),
    "direct_delete_batch": ("config_items",),
    "exists": ("key",),
}

# Expected shape of request fields, checked whenever the field is present
STRING = ((str,), "a string")
OBJECT = ((Mapping,), "an object")
LIST = ((list, tuple), "a list")

FIELD_TYPES: dict[str, tuple[tuple[type, ...], str]] = {
    "key": STRING,
    "maker_id": STRING,
    "checker_id": STRING,
    "request_id": STRING,
    "search_term": STRING,
    "filter": OBJECT,
    "configs": OBJECT,
    "config_items": LIST,
}


class ConfigService:
    """
    Entry point for connection tests, generic backend calls and config operations.

    Routes config operations by name to handler methods.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        connector_factory: ConnectorFactory | None = None,
    ) -> None:
        """
        Initialize ConfigService.

        Args:
            settings: Service settings, read from the environment when None
            connector_factory: Builds an unconnected connector from a descriptor
        """
        self.settings = settings or Settings()
        self.connector_factory = connector_factory or create_connector
        self.logger = get_logger().with_category(Category.SERVICE)

        # operation -> handler method
        self._handlers: dict[str, Handler] = {
            "create_table": self._create_table,
            "drop_table": self._drop_table,
            "submit_create": partial(self._submit, ChangeOperation.CREATE),
            "submit_update": partial(self._submit, ChangeOperation.UPDATE),
            "submit_delete": partial(self._submit, ChangeOperation.DELETE),
            "approve_request": self._approve,
            "reject_request": self._reject,
            "get_pending_approvals": self._pending,
            "get_my_requests": self._mine,
            "get_approval_history": self._history,
            "direct_create": self._create,
            "direct_create_batch": self._create_batch,
            "read": self._read,
            "read_all": partial(self._read_all, False),
            "read_all_admin": partial(self._read_all, True),
            "search": partial(self._search, False),
            "search_admin": partial(self._search, True),
            "filter": self._filter,
            "direct_update": self._update,
            "direct_update_batch": self._update_batch,
            "direct_delete": self._delete,
            "direct_delete_batch": self._delete_batch,
            "direct_delete_all": self._delete_all,
            "count": partial(self._count, False),
            "count_admin": partial(self._count, True),
            "exists": self._exists,
        }

    @property
    def operations(self) -> list[str]:
        return sorted([*self._handlers, *ALIASES])

    # connection handling

    def descriptor(self, request: Mapping[str, Any]) -> ConnectionConfig:
        """
        Connection descriptor of a request.

        A request either carries the descriptor fields itself or names a
        preconfigured backend in "connection".
        """
        name = request.get("connection")
        if name is not None and not isinstance(name, str):
            raise ValidationError("connection must be a string")
        if name:
            config = self.settings.databases.get(name)
            if config is None:
                raise ValidationError(f"unknown connection: {name}")
        else:
            if not request.get("type"):
                raise ValidationError("database type is required")
            config = ConnectionConfig.from_dict(request)
        config.validate()
        return config

    @contextmanager
    def _connected(self, config: ConnectionConfig, timeout: float) -> Iterator[Backend]:
        with self.connector_factory(config.with_timeout(timeout)) as connector:
            yield connector

    # generic calls

    def test_connection(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Connect, ping and close."""
        config = self.descriptor(request)
        with self._connected(config, self.settings.read_timeout) as connector:
            connected = connector.is_connected()

        self.logger.info(
            "Connection tested",
            param("database_type", config.type.value),
            param("host", config.host),
            param("connected", connected),
        )
        return {
            "connection_status": "success",
            "database_type": config.type.value,
            "connected": connected,
        }

    def execute_operation(
        self,
        request: Mapping[str, Any],
        operation: str,
        query: str | None = None,
        args: list[Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Run a generic verb on the backend.

        Relational backends take query and args, MongoDB takes params.
        """
        if not operation:
            raise ValidationError("operation is required")
        config = self.descriptor(request)
        call: dict[str, Any] = dict(params or {})
        if query is not None:
            call["query"] = query
        if args is not None:
            call["args"] = args

        with self._connected(config, self.settings.write_timeout) as connector:
            result = connector.execute(operation, call)

        self.logger.info(
            f"Operation executed: {operation}",
            param("database_type", config.type.value),
            param("operation", operation),
        )
        return to_plain(result)

    def inspect_table(self, request: Mapping[str, Any], table_name: str | None = None) -> Any:
        """Table existence, structure and size, or the DDL to create it."""
        config = self.descriptor(request)
        table = validate_identifier(table_name or self.settings.table_name)
        with self._connected(config, self.settings.read_timeout) as connector:
            report = ConfigRepository(connector, table).inspect(config.database)
        return to_plain(report)

    # config operations

    def run(self, request: Mapping[str, Any]) -> Any:
        """
        Run one config operation.

        Args:
            request: Descriptor fields plus operation, table_name, key, value,
                description, maker_id, checker_id, request_id,
                approval_comment, limit, offset, search_term, filter,
                config_items, configs

        Returns:
            Result as JSON-friendly data
        """
        operation = request.get("operation") or ""
        if not operation:
            raise ValidationError("operation is required")
        name = ALIASES.get(operation, operation)
        handler = self._handlers.get(name)
        if handler is None:
            raise UnsupportedOperation(operation)

        self._check_required(name, operation, request)
        config = self.descriptor(request)
        table = validate_identifier(request.get("table_name") or self.settings.table_name)
        timeout = (
            self.settings.read_timeout
            if name in READ_ONLY_OPERATIONS
            else self.settings.write_timeout
        )

        logger = self.logger.with_fields(
            param("operation", operation),
            param("database_type", config.type.value),
            param("table", table),
        )
        if name in DIRECT_WRITE_OPERATIONS:
            logger.warn(
                f"Direct write bypasses approval: {operation}",
                category(Category.SECURITY),
                param("maker_id", request.get("maker_id")),
                param("key", request.get("key")),
            )

        try:
            with self._connected(config, timeout) as connector:
                configs = ConfigRepository(connector, table)
                result = handler(request, configs, ApprovalRepository(configs))
        except Exception as e:
            logger.error(f"Config operation failed: {operation}", e)
            raise

        logger.info(f"Config operation completed: {operation}")
        return to_plain(result)

    @staticmethod
    def _check_required(name: str, operation: str, request: Mapping[str, Any]) -> None:
        if name == "direct_create_batch":
            if not request.get("config_items") and not request.get("configs"):
                raise ValidationError(
                    "config_items or configs are required for batch create operation"
                )
        for field_name in REQUIRED_FIELDS.get(name, ()):
            if not request.get(field_name):
                raise ValidationError(f"{field_name} is required for {operation} operation")
        for field_name, (types, expected) in FIELD_TYPES.items():
            value = request.get(field_name)
            if value is not None and not isinstance(value, types):
                raise ValidationError(
                    f"{field_name} must be {expected}, got {type(value).__name__}"
                )

    # handlers

    def _create_table(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.create_table_if_missing()

    def _drop_table(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.drop_table()

    def _submit(
        self,
        operation: ChangeOperation,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return approvals.submit(
            operation,
            request["key"],
            request.get("value"),
            request.get("description"),
            request["maker_id"],
        )

    def _approve(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return approvals.approve(
            request["request_id"], request["checker_id"], request.get("approval_comment")
        )

    def _reject(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return approvals.reject(
            request["request_id"], request["checker_id"], request.get("approval_comment")
        )

    def _pending(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return approvals.list_pending(request.get("limit"), request.get("offset"))

    def _mine(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return approvals.list_mine(request["maker_id"], request.get("limit"), request.get("offset"))

    def _history(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return approvals.list_history(request.get("limit"), request.get("offset"))

    def _create(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.create_direct(
            request["key"],
            request.get("value"),
            request.get("description"),
            request.get("maker_id"),
        )

    def _create_batch(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        if request.get("config_items"):
            return configs.create_batch(request["config_items"])
        return configs.set_multiple(request["configs"])

    def _read(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.read(request["key"])

    def _read_all(
        self,
        admin: bool,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.read_all(request.get("limit"), request.get("offset"), admin=admin)

    def _search(
        self,
        admin: bool,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.search(
            request["search_term"], request.get("limit"), request.get("offset"), admin=admin
        )

    def _filter(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.filter(request["filter"], request.get("limit"), request.get("offset"))

    def _update(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.update_direct(
            request["key"],
            request.get("value"),
            request.get("description"),
            request.get("maker_id"),
        )

    def _update_batch(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.update_batch(request["config_items"])

    def _delete(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.delete_direct(request["key"])

    def _delete_batch(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.delete_batch(request["config_items"])

    def _delete_all(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return configs.delete_all()

    def _count(
        self,
        admin: bool,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return {"count": configs.count(admin=admin)}

    def _exists(
        self,
        request: Mapping[str, Any],
        configs: ConfigRepository,
        approvals: ApprovalRepository,
    ) -> Any:
        return {"key": request["key"], "exists": configs.exists(request["key"])}
