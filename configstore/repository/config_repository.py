"""Configuration repository over any backend connector."""

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from configstore.database.base import Backend
from configstore.domain.config import BatchResult, ConfigEntry, ConfigItem
from configstore.errors import BackendExecutionError, ConfigStoreError, ValidationError
from configstore.logger.logger import get_logger
from configstore.logger.types import Category, param
from configstore.operations.results import Result, as_count, as_document, as_rows, to_plain
from configstore.operations.translator import normalize_int
from configstore.repository.statements import EntryWrite, Statement, statements_for

DEFAULT_TABLE = "allconfig"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def page_bounds(limit: Any, offset: Any) -> tuple[int, int]:
    """Normalize paging inputs. Zero or negative means "not set"."""
    bounds = []
    for name, value in (("limit", limit), ("offset", offset)):
        if isinstance(value, int) and not isinstance(value, bool) and value < 0:
            value = 0
        bounds.append(normalize_int(name, value or 0))
    return bounds[0], bounds[1]


def _item(raw: ConfigItem | Mapping[str, Any]) -> ConfigItem:
    return raw if isinstance(raw, ConfigItem) else ConfigItem.from_dict(raw)


def _label(raw: Any, index: int) -> str:
    """Result key of a batch item: its key, or its position when it has none."""
    if isinstance(raw, ConfigItem):
        key = raw.key
    elif isinstance(raw, Mapping):
        key = raw.get("key")
    else:
        key = None
    return key if isinstance(key, str) and key else f"#{index}"


class ConfigRepository:
    """
    Config entries in one table (or collection) of a connected backend.

    Default reads only see approved entries; pass admin=True to see every
    status. Direct writes bypass the approval workflow and are approved
    immediately.
    """

    def __init__(self, connector: Backend, table_name: str = DEFAULT_TABLE) -> None:
        """
        Initialize ConfigRepository.

        Args:
            connector: Connected backend connector
            table_name: Entries table; requests live in <table_name>_approval_requests
        """
        self.connector = connector
        self.statements = statements_for(connector, table_name or DEFAULT_TABLE)
        self.table_name = self.statements.table
        self.logger = get_logger().with_category(Category.CONFIG)

    def run(self, statement: Statement) -> Result:
        return self.connector.execute(statement.verb, statement.params)

    # direct writes

    def _write(
        self,
        key: str,
        value: Any,
        description: str | None,
        maker_id: str | None,
        checker_id: str | None,
        comment: str | None,
    ) -> EntryWrite:
        if not key:
            raise ValidationError("config key is required")
        return EntryWrite(
            key=key,
            value=value,
            description=description,
            maker_id=maker_id,
            checker_id=checker_id,
            comment=comment,
            now=_now(),
        )

    def create_direct(
        self,
        key: str,
        value: Any,
        description: str | None = None,
        maker_id: str | None = None,
        checker_id: str | None = None,
        comment: str | None = None,
    ) -> Result:
        """
        Insert an approved entry.

        A duplicate key surfaces as the backend's uniqueness error.
        """
        write = self._write(key, value, description, maker_id, checker_id, comment)
        result = self.run(self.statements.insert_entry(write))
        self.logger.info(
            "Config created",
            param("key", key),
            param("table", self.table_name),
            param("maker_id", maker_id),
        )
        return result

    def update_direct(
        self,
        key: str,
        value: Any,
        description: str | None = None,
        maker_id: str | None = None,
        checker_id: str | None = None,
        comment: str | None = None,
    ) -> Result:
        """Upsert an approved entry, keeping created_at of an existing one."""
        write = self._write(key, value, description, maker_id, checker_id, comment)
        result = self.run(self.statements.upsert_entry(write))
        self.logger.info(
            "Config updated",
            param("key", key),
            param("table", self.table_name),
            param("maker_id", maker_id),
        )
        return result

    def delete_direct(self, key: str) -> Result:
        """Delete an entry. Deleting a missing key is not an error."""
        if not key:
            raise ValidationError("config key is required")
        result = self.run(self.statements.delete_entry(key))
        self.logger.info("Config deleted", param("key", key), param("table", self.table_name))
        return result

    def delete_all(self) -> Result:
        result = self.run(self.statements.delete_all_entries())
        self.logger.warn("All configs deleted", param("table", self.table_name))
        return result

    def drop_table(self) -> dict[str, Any]:
        """Drop the entries and requests tables."""
        for statement in self.statements.drop_tables():
            self.run(statement)
        self.logger.warn("Config tables dropped", param("table", self.table_name))
        return {"dropped": self.statements.table_names}

    # reads

    def _entries(self, statement: Statement) -> list[ConfigEntry]:
        return [ConfigEntry.from_row(row) for row in as_rows(self.run(statement))]

    def read(self, key: str, admin: bool = False) -> ConfigEntry | None:
        """
        Get entry by key.

        Args:
            key: Config key
            admin: Also return pending and rejected entries

        Returns:
            ConfigEntry or None if not found (or not approved)
        """
        if not key:
            raise ValidationError("config key is required")
        row = as_document(self.run(self.statements.select_entry(key, admin)))
        return ConfigEntry.from_row(row) if row else None

    def read_all(self, limit: int = 0, offset: int = 0, admin: bool = False) -> list[ConfigEntry]:
        """Entries ordered by key. limit <= 0 means no limit."""
        limit, offset = page_bounds(limit, offset)
        return self._entries(self.statements.select_entries(admin, limit, offset))

    def search(
        self, term: str, limit: int = 0, offset: int = 0, admin: bool = False
    ) -> list[ConfigEntry]:
        """Case-insensitive substring match on key, value or description."""
        if not term:
            raise ValidationError("search_term is required")
        limit, offset = page_bounds(limit, offset)
        return self._entries(self.statements.search_entries(term, admin, limit, offset))

    def filter(
        self,
        criteria: Mapping[str, Any],
        limit: int = 0,
        offset: int = 0,
        admin: bool = False,
    ) -> list[ConfigEntry]:
        """Exact match on every given field. key and value are accepted as aliases."""
        if not criteria:
            raise ValidationError("filter criteria is required")
        limit, offset = page_bounds(limit, offset)
        return self._entries(self.statements.filter_entries(criteria, admin, limit, offset))

    def count(self, admin: bool = False) -> int:
        return as_count(self.run(self.statements.count_entries(admin)))

    def exists(self, key: str, admin: bool = False) -> bool:
        if not key:
            raise ValidationError("config key is required")
        return as_count(self.run(self.statements.count_entries(admin, key))) > 0

    # batches

    def _batch(
        self,
        items: Iterable[ConfigItem | Mapping[str, Any]],
        apply: Callable[[ConfigItem], Result],
    ) -> BatchResult:
        batch = BatchResult()
        for index, raw in enumerate(items):
            label = _label(raw, index)
            try:
                batch.record_success(label, to_plain(apply(_item(raw))))
            except ConfigStoreError as e:
                batch.record_failure(label, e)

        self.logger.info(
            "Config batch completed",
            param("table", self.table_name),
            param("total_items", batch.total_items),
            param("success_count", batch.success_count),
            param("failure_count", batch.failure_count),
        )
        return batch

    def create_batch(self, items: Iterable[ConfigItem | Mapping[str, Any]]) -> BatchResult:
        """Create entries one by one; a failed item never stops the batch."""
        return self._batch(
            items,
            lambda item: self.create_direct(item.key, item.value, item.description, item.maker_id),
        )

    def update_batch(self, items: Iterable[ConfigItem | Mapping[str, Any]]) -> BatchResult:
        return self._batch(
            items,
            lambda item: self.update_direct(item.key, item.value, item.description, item.maker_id),
        )

    def delete_batch(self, items: Iterable[ConfigItem | Mapping[str, Any]]) -> BatchResult:
        return self._batch(items, lambda item: self.delete_direct(item.key))

    def set_multiple(self, configs: Mapping[str, Any]) -> BatchResult:
        """Upsert a key -> value mapping."""
        items = [ConfigItem(key=key, value=value) for key, value in configs.items()]
        return self.update_batch(items)

    # schema

    def _schema(self, database_name: str | None) -> str | None:
        statement = self.statements.schema_lookup(database_name)
        if statement is None:
            return self.statements.default_schema(database_name or self.connector.config.database)
        try:
            found = as_count(self.run(statement)) > 0
        except BackendExecutionError as e:
            self.logger.warn(
                "Schema lookup failed, using default schema",
                param("schema", database_name),
                param("error", str(e)),
            )
            found = False
        return database_name if found else self.statements.default_schema(database_name)

    def table_exists(self, database_name: str | None = None) -> bool:
        schema = self._schema(database_name)
        return self.statements.table_found(self.run(self.statements.table_exists(schema)))

    def table_structure(self, database_name: str | None = None) -> list[dict[str, Any]]:
        """Column descriptions, or one sample document for MongoDB."""
        schema = self._schema(database_name)
        return as_rows(self.run(self.statements.table_structure(schema)))

    def create_table_sql(self) -> str:
        return self.statements.create_table_sql()

    def create_table_if_missing(self) -> dict[str, Any]:
        """
        Create the entries and requests tables.

        Safe to run repeatedly: relational DDL uses IF NOT EXISTS and the
        MongoDB sentinel document is only inserted once.
        """
        statements = self.statements.bootstrap(_now())
        for statement in statements:
            self.run(statement)

        self.logger.info(
            "Config tables ready",
            param("table", self.table_name),
            param("statements", len(statements)),
        )
        return {
            "table_name": self.table_name,
            "tables": self.statements.table_names,
            "statements_executed": len(statements),
        }

    def inspect(self, database_name: str | None = None) -> dict[str, Any]:
        """
        Describe the entries table.

        Structure and count are reported when the table exists, the
        bootstrap DDL when it does not. Failures reading either are
        reported as a warning.
        """
        exists = self.table_exists(database_name)
        report: dict[str, Any] = {
            "table_name": self.table_name,
            "table_exists": exists,
            "database_type": self.connector.backend_type.value,
        }
        if not exists:
            report["create_table_sql"] = self.create_table_sql()
            return report

        try:
            report["table_structure"] = self.table_structure(database_name)
        except BackendExecutionError as e:
            report["warning"] = f"Table exists but couldn't get structure: {e}"
        try:
            report["config_count"] = self.count(admin=True)
        except BackendExecutionError as e:
            report["warning"] = f"Table exists but couldn't count records: {e}"
        return report

