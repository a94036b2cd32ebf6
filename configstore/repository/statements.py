"""
Generic operation calls for config entries and approval requests.

A builder renders every repository operation as a Statement (verb plus
params) for connector.execute(). One builder exists per backend family and
is selected once when a repository is constructed.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from configstore.database.base import Backend, BackendType
from configstore.domain.approval import ApprovalRequest, RequestStatus
from configstore.domain.config import EntryStatus, encode_value
from configstore.errors import ValidationError
from configstore.operations.results import Result, as_count, as_rows
from configstore.operations.translator import MYSQL, POSTGRES, SQLDialect, contains_pattern

ENTRY_COLUMNS = (
    "config_key",
    "config_value",
    "description",
    "status",
    "maker_id",
    "checker_id",
    "created_at",
    "updated_at",
    "approved_at",
    "approval_comment",
)

REQUEST_COLUMNS = (
    "request_id",
    "config_key",
    "config_value",
    "description",
    "operation",
    "maker_id",
    "checker_id",
    "status",
    "requested_at",
    "processed_at",
    "approval_comment",
    "previous_value",
)

FIELD_ALIASES = {"key": "config_key", "value": "config_value"}

SENTINEL_KEY = "_init"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def validate_identifier(name: str, what: str = "table name") -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValidationError(f"invalid {what}: {name!r}")
    return name


def resolve_criteria(criteria: Mapping[str, Any]) -> dict[str, Any]:
    """Map filter field names onto stored columns."""
    if not isinstance(criteria, Mapping):
        raise ValidationError(f"filter must be an object, got {type(criteria).__name__}")
    resolved: dict[str, Any] = {}
    for name, value in criteria.items():
        column = FIELD_ALIASES.get(name, name)
        if column not in ENTRY_COLUMNS:
            raise ValidationError(f"unknown filter field: {name}")
        resolved[column] = value
    return resolved


@dataclass
class Statement:
    """One connector.execute() call."""

    verb: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class EntryWrite:
    """Column values of a direct write."""

    key: str
    value: Any
    description: str | None
    maker_id: str | None
    checker_id: str | None
    comment: str | None
    now: datetime


class Statements:
    """Interface shared by the builders."""

    backend: BackendType

    def __init__(self, table_name: str) -> None:
        self.table = validate_identifier(table_name)
        self.requests_table = f"{self.table}_approval_requests"

    @property
    def table_names(self) -> list[str]:
        return [self.table, self.requests_table]

    # entries

    def insert_entry(self, write: EntryWrite) -> Statement:
        raise NotImplementedError

    def upsert_entry(self, write: EntryWrite) -> Statement:
        raise NotImplementedError

    def delete_entry(self, key: str) -> Statement:
        raise NotImplementedError

    def delete_all_entries(self) -> Statement:
        raise NotImplementedError

    def select_entry(self, key: str, admin: bool) -> Statement:
        raise NotImplementedError

    def select_entries(self, admin: bool, limit: int, offset: int) -> Statement:
        raise NotImplementedError

    def search_entries(self, term: str, admin: bool, limit: int, offset: int) -> Statement:
        raise NotImplementedError

    def filter_entries(
        self, criteria: Mapping[str, Any], admin: bool, limit: int, offset: int
    ) -> Statement:
        raise NotImplementedError

    def count_entries(self, admin: bool, key: str | None = None) -> Statement:
        raise NotImplementedError

    # approval requests

    def insert_request(self, request: ApprovalRequest) -> Statement:
        raise NotImplementedError

    def select_request(self, request_id: str, status: RequestStatus | None = None) -> Statement:
        raise NotImplementedError

    def transition_request(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        checker_id: str | None,
        comment: str | None,
        processed_at: datetime | None,
    ) -> Statement:
        raise NotImplementedError

    def select_requests(
        self,
        *,
        status: RequestStatus | None = None,
        resolved: bool = False,
        maker_id: str | None = None,
        order_by: str = "requested_at",
        descending: bool = False,
        limit: int = 0,
        offset: int = 0,
    ) -> Statement:
        raise NotImplementedError

    # schema

    def drop_tables(self) -> list[Statement]:
        raise NotImplementedError

    def schema_lookup(self, database_name: str | None) -> Statement | None:
        """Statement resolving which schema holds the tables, if the backend needs one."""
        return None

    def default_schema(self, database_name: str | None) -> str | None:
        return database_name

    def table_exists(self, schema: str | None) -> Statement:
        raise NotImplementedError

    def table_found(self, result: Result) -> bool:
        return as_count(result) > 0

    def table_structure(self, schema: str | None) -> Statement:
        raise NotImplementedError

    def create_table_sql(self) -> str:
        raise NotImplementedError

    def bootstrap(self, now: datetime | None = None) -> list[Statement]:
        raise NotImplementedError


class _Args:
    """Collects driver args and hands out placeholders in order."""

    def __init__(self, dialect: SQLDialect) -> None:
        self.dialect = dialect
        self.values: list[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return self.dialect.placeholder(len(self.values))


class RelationalStatements(Statements):
    """SQL statements with the dialect's own placeholders."""

    dialect: SQLDialect

    def _statement(self, verb: str, sql: str, args: _Args | None = None) -> Statement:
        params: dict[str, Any] = {"query": sql}
        if args is not None and args.values:
            params["args"] = args.values
        return Statement(verb, params)

    def _entry_values(self, write: EntryWrite, args: _Args) -> str:
        values = (
            write.key,
            encode_value(write.value),
            write.description,
            EntryStatus.APPROVED.value,
            write.maker_id,
            write.checker_id,
            write.now,
            write.now,
            write.now,
            write.comment,
        )
        return ", ".join(args.add(value) for value in values)

    def _paging(self, limit: int, offset: int) -> str:
        clause = ""
        if limit > 0:
            clause += f" LIMIT {limit}"
        if offset > 0:
            clause += f" OFFSET {offset}"
        return clause

    def _where(self, conditions: list[str]) -> str:
        return f" WHERE {' AND '.join(conditions)}" if conditions else ""

    def _approved(self, conditions: list[str], args: _Args, admin: bool) -> list[str]:
        if not admin:
            conditions.append(f"status = {args.add(EntryStatus.APPROVED.value)}")
        return conditions

    def upsert_clause(self) -> str:
        raise NotImplementedError

    def insert_entry(self, write: EntryWrite) -> Statement:
        args = _Args(self.dialect)
        sql = (
            f"INSERT INTO {self.table} ({', '.join(ENTRY_COLUMNS)}) "
            f"VALUES ({self._entry_values(write, args)})"
        )
        return self._statement("insert", sql, args)

    def upsert_entry(self, write: EntryWrite) -> Statement:
        args = _Args(self.dialect)
        sql = (
            f"INSERT INTO {self.table} ({', '.join(ENTRY_COLUMNS)}) "
            f"VALUES ({self._entry_values(write, args)}) "
            f"{self.upsert_clause()}"
        )
        return self._statement("insert", sql, args)

    def delete_entry(self, key: str) -> Statement:
        args = _Args(self.dialect)
        sql = f"DELETE FROM {self.table} WHERE config_key = {args.add(key)}"
        return self._statement("delete", sql, args)

    def delete_all_entries(self) -> Statement:
        return self._statement("delete", f"DELETE FROM {self.table}")

    def select_entry(self, key: str, admin: bool) -> Statement:
        args = _Args(self.dialect)
        conditions = self._approved([f"config_key = {args.add(key)}"], args, admin)
        sql = f"SELECT {', '.join(ENTRY_COLUMNS)} FROM {self.table}{self._where(conditions)}"
        return self._statement("select", sql, args)

    def select_entries(self, admin: bool, limit: int, offset: int) -> Statement:
        args = _Args(self.dialect)
        conditions = self._approved([], args, admin)
        sql = (
            f"SELECT {', '.join(ENTRY_COLUMNS)} FROM {self.table}{self._where(conditions)}"
            f" ORDER BY config_key{self._paging(limit, offset)}"
        )
        return self._statement("select", sql, args)

    def search_entries(self, term: str, admin: bool, limit: int, offset: int) -> Statement:
        args = _Args(self.dialect)
        pattern = contains_pattern(term)
        matches = " OR ".join(
            self.dialect.case_insensitive_like(column, args.add(pattern))
            for column in ("config_key", "config_value", "description")
        )
        conditions = self._approved([f"({matches})"], args, admin)
        sql = (
            f"SELECT {', '.join(ENTRY_COLUMNS)} FROM {self.table}{self._where(conditions)}"
            f" ORDER BY config_key{self._paging(limit, offset)}"
        )
        return self._statement("select", sql, args)

    def filter_entries(
        self, criteria: Mapping[str, Any], admin: bool, limit: int, offset: int
    ) -> Statement:
        args = _Args(self.dialect)
        conditions = []
        for column, value in resolve_criteria(criteria).items():
            if column == "config_value":
                value = encode_value(value)
            if value is None:
                conditions.append(f"{column} IS NULL")
            else:
                conditions.append(f"{column} = {args.add(value)}")
        conditions = self._approved(conditions, args, admin)
        sql = (
            f"SELECT {', '.join(ENTRY_COLUMNS)} FROM {self.table}{self._where(conditions)}"
            f" ORDER BY config_key{self._paging(limit, offset)}"
        )
        return self._statement("select", sql, args)

    def count_entries(self, admin: bool, key: str | None = None) -> Statement:
        args = _Args(self.dialect)
        conditions = [f"config_key = {args.add(key)}"] if key is not None else []
        conditions = self._approved(conditions, args, admin)
        sql = f"SELECT COUNT(*) AS count FROM {self.table}{self._where(conditions)}"
        return self._statement("select", sql, args)

    def insert_request(self, request: ApprovalRequest) -> Statement:
        args = _Args(self.dialect)
        values = (
            request.request_id,
            request.config_key,
            encode_value(request.config_value),
            request.description,
            request.operation.value,
            request.maker_id,
            request.checker_id,
            request.status.value,
            request.requested_at,
            request.processed_at,
            request.approval_comment,
            encode_value(request.previous_value),
        )
        placeholders = ", ".join(args.add(value) for value in values)
        sql = (
            f"INSERT INTO {self.requests_table} ({', '.join(REQUEST_COLUMNS)}) "
            f"VALUES ({placeholders})"
        )
        return self._statement("insert", sql, args)

    def select_request(self, request_id: str, status: RequestStatus | None = None) -> Statement:
        args = _Args(self.dialect)
        conditions = [f"request_id = {args.add(request_id)}"]
        if status is not None:
            conditions.append(f"status = {args.add(status.value)}")
        sql = (
            f"SELECT {', '.join(REQUEST_COLUMNS)} FROM {self.requests_table}"
            f"{self._where(conditions)}"
        )
        return self._statement("select", sql, args)

    def transition_request(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        checker_id: str | None,
        comment: str | None,
        processed_at: datetime | None,
    ) -> Statement:
        args = _Args(self.dialect)
        sql = (
            f"UPDATE {self.requests_table} SET "
            f"status = {args.add(to_status.value)}, "
            f"checker_id = {args.add(checker_id)}, "
            f"approval_comment = {args.add(comment)}, "
            f"processed_at = {args.add(processed_at)} "
            f"WHERE request_id = {args.add(request_id)} "
            f"AND status = {args.add(from_status.value)}"
        )
        return self._statement("update", sql, args)

    def select_requests(
        self,
        *,
        status: RequestStatus | None = None,
        resolved: bool = False,
        maker_id: str | None = None,
        order_by: str = "requested_at",
        descending: bool = False,
        limit: int = 0,
        offset: int = 0,
    ) -> Statement:
        args = _Args(self.dialect)
        conditions = []
        if status is not None:
            conditions.append(f"status = {args.add(status.value)}")
        if resolved:
            conditions.append(f"status <> {args.add(RequestStatus.PENDING.value)}")
        if maker_id is not None:
            conditions.append(f"maker_id = {args.add(maker_id)}")
        direction = "DESC" if descending else "ASC"
        sql = (
            f"SELECT {', '.join(REQUEST_COLUMNS)} FROM {self.requests_table}"
            f"{self._where(conditions)}"
            f" ORDER BY {validate_identifier(order_by, 'column')} {direction}"
            f"{self._paging(limit, offset)}"
        )
        return self._statement("select", sql, args)

    def drop_tables(self) -> list[Statement]:
        return [
            self._statement("execute", f"DROP TABLE IF EXISTS {self.requests_table}"),
            self._statement("execute", f"DROP TABLE IF EXISTS {self.table}"),
        ]

    def ddl(self) -> list[str]:
        raise NotImplementedError

    def create_table_sql(self) -> str:
        return ";\n\n".join(self.ddl()) + ";"

    def bootstrap(self, now: datetime | None = None) -> list[Statement]:
        return [self._statement("execute", sql) for sql in self.ddl()]


class MySQLStatements(RelationalStatements):
    backend = BackendType.MYSQL
    dialect = MYSQL

    # MySQL only accepts OFFSET after a LIMIT
    MAX_LIMIT = 18446744073709551615

    def _paging(self, limit: int, offset: int) -> str:
        if limit <= 0 and offset > 0:
            limit = self.MAX_LIMIT
        return super()._paging(limit, offset)

    def upsert_clause(self) -> str:
        return (
            "ON DUPLICATE KEY UPDATE "
            "config_value = VALUES(config_value), "
            "description = COALESCE(VALUES(description), description), "
            "status = VALUES(status), "
            "maker_id = VALUES(maker_id), "
            "checker_id = VALUES(checker_id), "
            "updated_at = VALUES(updated_at), "
            "approved_at = VALUES(approved_at), "
            "approval_comment = VALUES(approval_comment)"
        )

    def table_exists(self, schema: str | None) -> Statement:
        args = _Args(self.dialect)
        sql = (
            "SELECT COUNT(*) AS count FROM information_schema.tables "
            f"WHERE table_schema = {args.add(schema)} AND table_name = {args.add(self.table)}"
        )
        return self._statement("select", sql, args)

    def table_structure(self, schema: str | None) -> Statement:
        target = self.table
        if schema:
            target = f"{validate_identifier(schema, 'database name')}.{self.table}"
        return self._statement("select", f"DESCRIBE {target}")

    def ddl(self) -> list[str]:
        return [
            f"""CREATE TABLE IF NOT EXISTS {self.table} (
    id INT AUTO_INCREMENT PRIMARY KEY,
    config_key VARCHAR(255) NOT NULL UNIQUE,
    config_value TEXT,
    description TEXT,
    status ENUM('approved', 'pending', 'rejected') DEFAULT 'approved',
    maker_id VARCHAR(255),
    checker_id VARCHAR(255),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
    approved_at TIMESTAMP NULL,
    approval_comment TEXT,
    INDEX idx_status (status),
    INDEX idx_maker_id (maker_id)
)""",
            f"""CREATE TABLE IF NOT EXISTS {self.requests_table} (
    request_id VARCHAR(36) PRIMARY KEY,
    config_key VARCHAR(255) NOT NULL,
    config_value TEXT,
    description TEXT,
    operation ENUM('create', 'update', 'delete') NOT NULL,
    maker_id VARCHAR(255) NOT NULL,
    checker_id VARCHAR(255),
    status ENUM('pending', 'approved', 'rejected') DEFAULT 'pending',
    requested_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    processed_at TIMESTAMP NULL,
    approval_comment TEXT,
    previous_value TEXT,
    INDEX idx_status (status),
    INDEX idx_maker_id (maker_id),
    INDEX idx_checker_id (checker_id),
    INDEX idx_config_key (config_key)
)""",
        ]


class PostgresStatements(RelationalStatements):
    backend = BackendType.POSTGRESQL
    dialect = POSTGRES

    def upsert_clause(self) -> str:
        return (
            "ON CONFLICT (config_key) DO UPDATE SET "
            "config_value = EXCLUDED.config_value, "
            f"description = COALESCE(EXCLUDED.description, {self.table}.description), "
            "status = EXCLUDED.status, "
            "maker_id = EXCLUDED.maker_id, "
            "checker_id = EXCLUDED.checker_id, "
            "updated_at = EXCLUDED.updated_at, "
            "approved_at = EXCLUDED.approved_at, "
            "approval_comment = EXCLUDED.approval_comment"
        )

    def schema_lookup(self, database_name: str | None) -> Statement | None:
        if not database_name:
            return None
        args = _Args(self.dialect)
        sql = (
            "SELECT COUNT(*) AS count FROM information_schema.schemata "
            f"WHERE schema_name = {args.add(database_name)}"
        )
        return self._statement("select", sql, args)

    def default_schema(self, database_name: str | None) -> str | None:
        return "public"

    def table_exists(self, schema: str | None) -> Statement:
        args = _Args(self.dialect)
        sql = (
            "SELECT COUNT(*) AS count FROM information_schema.tables "
            f"WHERE table_schema = {args.add(schema or 'public')} "
            f"AND table_name = {args.add(self.table)}"
        )
        return self._statement("select", sql, args)

    def table_structure(self, schema: str | None) -> Statement:
        args = _Args(self.dialect)
        sql = (
            "SELECT column_name, data_type, is_nullable, column_default "
            "FROM information_schema.columns "
            f"WHERE table_schema = {args.add(schema or 'public')} "
            f"AND table_name = {args.add(self.table)} "
            "ORDER BY ordinal_position"
        )
        return self._statement("select", sql, args)

    def ddl(self) -> list[str]:
        t, r = self.table, self.requests_table
        return [
            f"""CREATE TABLE IF NOT EXISTS {t} (
    id SERIAL PRIMARY KEY,
    config_key VARCHAR(255) NOT NULL UNIQUE,
    config_value TEXT,
    description TEXT,
    status VARCHAR(20) DEFAULT 'approved' CHECK (status IN ('approved', 'pending', 'rejected')),
    maker_id VARCHAR(255),
    checker_id VARCHAR(255),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    approved_at TIMESTAMP,
    approval_comment TEXT
)""",
            f"""CREATE TABLE IF NOT EXISTS {r} (
    request_id VARCHAR(36) PRIMARY KEY,
    config_key VARCHAR(255) NOT NULL,
    config_value TEXT,
    description TEXT,
    operation VARCHAR(20) NOT NULL CHECK (operation IN ('create', 'update', 'delete')),
    maker_id VARCHAR(255) NOT NULL,
    checker_id VARCHAR(255),
    status VARCHAR(20) DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')),
    requested_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    processed_at TIMESTAMP,
    approval_comment TEXT,
    previous_value TEXT
)""",
            f"CREATE INDEX IF NOT EXISTS idx_{t}_status ON {t} (status)",
            f"CREATE INDEX IF NOT EXISTS idx_{t}_maker_id ON {t} (maker_id)",
            f"CREATE INDEX IF NOT EXISTS idx_{t}_approval_status ON {r} (status)",
            f"CREATE INDEX IF NOT EXISTS idx_{t}_approval_maker ON {r} (maker_id)",
            f"CREATE INDEX IF NOT EXISTS idx_{t}_approval_checker ON {r} (checker_id)",
        ]


class DocumentStatements(Statements):
    """MongoDB collection calls. Values are stored natively."""

    backend = BackendType.MONGODB

    def _call(self, verb: str, collection: str | None = None, **params: Any) -> Statement:
        if collection is not None:
            params["collection"] = collection
        return Statement(verb, params)

    @staticmethod
    def _approved(flt: dict[str, Any], admin: bool) -> dict[str, Any]:
        if admin:
            return flt
        if not flt:
            return {"status": EntryStatus.APPROVED.value}
        return {"$and": [flt, {"status": EntryStatus.APPROVED.value}]}

    @staticmethod
    def _paging(params: dict[str, Any], limit: int, offset: int) -> dict[str, Any]:
        if limit > 0:
            params["limit"] = limit
        if offset > 0:
            params["skip"] = offset
        return params

    def _find_entries(self, flt: dict[str, Any], limit: int, offset: int) -> Statement:
        params = self._paging({"filter": flt, "sort": [("config_key", 1)]}, limit, offset)
        return self._call("find", self.table, **params)

    def insert_entry(self, write: EntryWrite) -> Statement:
        document = {
            "config_key": write.key,
            "config_value": write.value,
            "description": write.description,
            "status": EntryStatus.APPROVED.value,
            "maker_id": write.maker_id,
            "checker_id": write.checker_id,
            "created_at": write.now,
            "updated_at": write.now,
            "approved_at": write.now,
            "approval_comment": write.comment,
        }
        return self._call("insert", self.table, document=document)

    def upsert_entry(self, write: EntryWrite) -> Statement:
        fields = {
            "config_value": write.value,
            "status": EntryStatus.APPROVED.value,
            "maker_id": write.maker_id,
            "checker_id": write.checker_id,
            "updated_at": write.now,
            "approved_at": write.now,
            "approval_comment": write.comment,
        }
        if write.description is not None:
            fields["description"] = write.description
        update = {"$set": fields, "$setOnInsert": {"created_at": write.now}}
        return self._call("upsert", self.table, filter={"config_key": write.key}, update=update)

    def delete_entry(self, key: str) -> Statement:
        return self._call("delete", self.table, filter={"config_key": key})

    def delete_all_entries(self) -> Statement:
        return self._call("deleteMany", self.table, filter={})

    def select_entry(self, key: str, admin: bool) -> Statement:
        return self._call("findOne", self.table, filter=self._approved({"config_key": key}, admin))

    def select_entries(self, admin: bool, limit: int, offset: int) -> Statement:
        return self._find_entries(self._approved({}, admin), limit, offset)

    def search_entries(self, term: str, admin: bool, limit: int, offset: int) -> Statement:
        pattern = {"$regex": re.escape(term), "$options": "i"}
        flt = {
            "$or": [
                {"config_key": pattern},
                {"config_value": pattern},
                {"description": pattern},
            ]
        }
        return self._find_entries(self._approved(flt, admin), limit, offset)

    def filter_entries(
        self, criteria: Mapping[str, Any], admin: bool, limit: int, offset: int
    ) -> Statement:
        return self._find_entries(self._approved(resolve_criteria(criteria), admin), limit, offset)

    def count_entries(self, admin: bool, key: str | None = None) -> Statement:
        flt = {"config_key": key} if key is not None else {}
        return self._call("count", self.table, filter=self._approved(flt, admin))

    def insert_request(self, request: ApprovalRequest) -> Statement:
        return self._call("insert", self.requests_table, document=request.to_dict())

    def select_request(self, request_id: str, status: RequestStatus | None = None) -> Statement:
        flt: dict[str, Any] = {"request_id": request_id}
        if status is not None:
            flt["status"] = status.value
        return self._call("findOne", self.requests_table, filter=flt)

    def transition_request(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        checker_id: str | None,
        comment: str | None,
        processed_at: datetime | None,
    ) -> Statement:
        update = {
            "$set": {
                "status": to_status.value,
                "checker_id": checker_id,
                "approval_comment": comment,
                "processed_at": processed_at,
            }
        }
        flt = {"request_id": request_id, "status": from_status.value}
        return self._call("update", self.requests_table, filter=flt, update=update)

    def select_requests(
        self,
        *,
        status: RequestStatus | None = None,
        resolved: bool = False,
        maker_id: str | None = None,
        order_by: str = "requested_at",
        descending: bool = False,
        limit: int = 0,
        offset: int = 0,
    ) -> Statement:
        flt: dict[str, Any] = {}
        if status is not None:
            flt["status"] = status.value
        if resolved:
            flt["status"] = {"$ne": RequestStatus.PENDING.value}
        if maker_id is not None:
            flt["maker_id"] = maker_id
        sort = [(validate_identifier(order_by, "field"), -1 if descending else 1)]
        params = self._paging({"filter": flt, "sort": sort}, limit, offset)
        return self._call("find", self.requests_table, **params)

    def drop_tables(self) -> list[Statement]:
        return [self._call("drop", self.requests_table), self._call("drop", self.table)]

    def table_exists(self, schema: str | None) -> Statement:
        params: dict[str, Any] = {"filter": {"name": self.table}}
        if schema:
            params["database"] = schema
        return self._call("listCollections", **params)

    def table_found(self, result: Result) -> bool:
        return len(as_rows(result)) > 0

    def table_structure(self, schema: str | None) -> Statement:
        params: dict[str, Any] = {"filter": {}, "limit": 1}
        if schema:
            params["database"] = schema
        return self._call("find", self.table, **params)

    def create_table_sql(self) -> str:
        t, r = self.table, self.requests_table
        return f"""// MongoDB collection '{t}' with sample document:
{{
    "_id": ObjectId(),
    "config_key": "unique_key_name",
    "config_value": "configuration_value",
    "description": "Description of the configuration",
    "status": "approved",
    "maker_id": "user123",
    "checker_id": "admin456",
    "created_at": new Date(),
    "updated_at": new Date(),
    "approved_at": new Date(),
    "approval_comment": "Approved by checker"
}}

// MongoDB collection '{r}' with sample document:
{{
    "_id": ObjectId(),
    "request_id": "32-hex-characters",
    "config_key": "configuration_key",
    "config_value": "new_value",
    "description": "Description",
    "operation": "create",
    "maker_id": "user123",
    "checker_id": "admin456",
    "status": "pending",
    "requested_at": new Date(),
    "processed_at": new Date(),
    "approval_comment": "Looks good",
    "previous_value": "old_value"
}}

// Create indexes:
db.{t}.createIndex({{"config_key": 1}}, {{"unique": true}});
db.{t}.createIndex({{"status": 1}});
db.{t}.createIndex({{"maker_id": 1}});
db.{r}.createIndex({{"request_id": 1}}, {{"unique": true}});
db.{r}.createIndex({{"status": 1}});
db.{r}.createIndex({{"maker_id": 1}});"""

    def bootstrap(self, now: datetime | None = None) -> list[Statement]:
        sentinel = {
            "config_key": SENTINEL_KEY,
            "config_value": "collection_created",
            "description": "Initial document to create collection",
            "created_at": now,
            "updated_at": now,
        }
        return [
            self._call(
                "upsert",
                self.table,
                filter={"config_key": SENTINEL_KEY},
                update={"$setOnInsert": sentinel},
            ),
            self._call(
                "createIndex",
                self.table,
                index={"config_key": 1},
                options={"unique": True},
            ),
            self._call("createIndex", self.table, index={"status": 1}),
            self._call("createIndex", self.table, index={"maker_id": 1}),
            self._call(
                "createIndex",
                self.requests_table,
                index={"request_id": 1},
                options={"unique": True},
            ),
            self._call("createIndex", self.requests_table, index={"status": 1}),
            self._call("createIndex", self.requests_table, index={"maker_id": 1}),
        ]


def statements_for(connector: Backend, table_name: str) -> Statements:
    """Pick the builder for the connector's backend."""
    match connector.backend_type:
        case BackendType.MYSQL:
            return MySQLStatements(table_name)
        case BackendType.POSTGRESQL:
            return PostgresStatements(table_name)
        case BackendType.MONGODB:
            return DocumentStatements(table_name)
    raise ValidationError(f"unsupported database type: {connector.backend_type}")
