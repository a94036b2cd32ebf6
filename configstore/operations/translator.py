"""
Operation translators.

A translator turns an abstract verb plus a parameter mapping into the call a
driver understands. One translator exists per backend variant and is picked
when the connector is built, so operations never branch on backend type.
"""

import operator
import re
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from typing import Any

from configstore.errors import UnsupportedOperation, ValidationError


# LIKE escape character read the same way by MySQL and PostgreSQL
LIKE_ESCAPE = "!"


def contains_pattern(term: str) -> str:
    """LIKE pattern matching term as a literal substring."""
    escaped = "".join(
        LIKE_ESCAPE + char if char in (LIKE_ESCAPE, "%", "_") else char for char in term
    )
    return f"%{escaped}%"


@dataclass(frozen=True)
class SQLDialect:
    """Placeholder and quoting rules of one relational backend."""

    name: str
    style: str  # "qmark" (?) or "numbered" ($1, $2, ...)
    identifier_quote: str

    def placeholder(self, position: int) -> str:
        """Placeholder for the 1-based argument position."""
        return "?" if self.style == "qmark" else f"${position}"

    def quote_identifier(self, name: str) -> str:
        q = self.identifier_quote
        return f"{q}{name.replace(q, q + q)}{q}"

    def case_insensitive_like(self, column: str, placeholder: str) -> str:
        """Pattern match for terms built with contains_pattern."""
        if self.style == "numbered":
            return f"{column} ILIKE {placeholder} ESCAPE '{LIKE_ESCAPE}'"
        return f"LOWER({column}) LIKE LOWER({placeholder}) ESCAPE '{LIKE_ESCAPE}'"


MYSQL = SQLDialect(name="mysql", style="qmark", identifier_quote="`")
POSTGRES = SQLDialect(name="postgresql", style="numbered", identifier_quote='"')


@dataclass
class SQLCall:
    """Native relational call: driver-style SQL plus ordered args."""

    sql: str
    args: tuple[Any, ...] | None
    fetch: bool


# Single-quoted literals are matched first so placeholders inside them are left alone.
_QMARK = re.compile(r"'(?:[^']|'')*'|\?|%")
_NUMBERED = re.compile(r"'(?:[^']|'')*'|\$(\d+)|%")

# Method name and arguments of a pymongo call
NativeCall = tuple[str, tuple[Any, ...], dict[str, Any]]


class SQLTranslator:
    """Maps select/query/insert/update/delete/execute onto parameterized SQL."""

    READ_VERBS = frozenset({"select", "query"})
    WRITE_VERBS = frozenset({"insert", "update", "delete", "execute"})

    def __init__(self, dialect: SQLDialect) -> None:
        self.dialect = dialect

    def translate(self, verb: str, params: MappingABC[str, Any]) -> SQLCall:
        if verb not in self.READ_VERBS and verb not in self.WRITE_VERBS:
            raise UnsupportedOperation(verb, self.dialect.name)

        query = params.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValidationError(f"query parameter required for operation: {verb}")

        args = params.get("args")
        if args is not None and not isinstance(args, (list, tuple)):
            raise ValidationError("args must be a list of values")

        sql, driver_args = self.render(query, list(args or []))
        return SQLCall(sql=sql, args=driver_args, fetch=verb in self.READ_VERBS)

    def render(self, query: str, args: list[Any]) -> tuple[str, tuple[Any, ...] | None]:
        """
        Rewrite caller placeholders into the driver's %s style.

        Without args the query is passed through untouched, since neither
        driver interpolates when no parameters are given.
        """
        if not args:
            return query, None

        if self.dialect.style == "qmark":
            return self._render_qmark(query, args)
        return self._render_numbered(query, args)

    def _render_qmark(self, query: str, args: list[Any]) -> tuple[str, tuple[Any, ...]]:
        count = 0

        def replace(match: re.Match[str]) -> str:
            nonlocal count
            token = match.group(0)
            if token == "?":
                count += 1
                return "%s"
            if token == "%":
                return "%%"
            return token.replace("%", "%%")

        sql = _QMARK.sub(replace, query)
        if count != len(args):
            raise ValidationError(
                f"query has {count} placeholders but {len(args)} args were given"
            )
        return sql, tuple(args)

    def _render_numbered(self, query: str, args: list[Any]) -> tuple[str, tuple[Any, ...]]:
        ordered: list[Any] = []

        def replace(match: re.Match[str]) -> str:
            token = match.group(0)
            if match.group(1) is not None:
                position = int(match.group(1))
                if position < 1 or position > len(args):
                    raise ValidationError(
                        f"placeholder ${position} has no matching argument"
                    )
                ordered.append(args[position - 1])
                return "%s"
            if token == "%":
                return "%%"
            return token.replace("%", "%%")

        sql = _NUMBERED.sub(replace, query)
        return sql, tuple(ordered)


def normalize_int(name: str, value: Any) -> int:
    """
    Normalize limit/skip values to a plain int.

    Accepts any integral type (int, numpy integers, anything implementing
    __index__). Rejects bools, floats, strings and negatives.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got bool")
    try:
        result = operator.index(value)
    except TypeError as e:
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}") from e
    if result < 0:
        raise ValidationError(f"{name} must not be negative")
    return int(result)


def normalize_sort(value: Any) -> list[tuple[str, int]]:
    """Sort order as a mapping or list of pairs -> list of (field, direction)."""
    if isinstance(value, MappingABC):
        pairs = list(value.items())
    elif isinstance(value, (list, tuple)):
        pairs = [tuple(pair) for pair in value]
    else:
        raise ValidationError("sort must be a mapping or a list of (field, direction) pairs")

    result: list[tuple[str, int]] = []
    for pair in pairs:
        if len(pair) != 2:
            raise ValidationError("sort entries must be (field, direction) pairs")
        field_name, direction = pair
        direction = normalize_direction(direction)
        result.append((str(field_name), direction))
    return result


def normalize_direction(direction: Any) -> int:
    if isinstance(direction, str):
        lowered = direction.lower()
        if lowered in ("asc", "ascending", "1"):
            return 1
        if lowered in ("desc", "descending", "-1"):
            return -1
        raise ValidationError(f"invalid sort direction: {direction}")
    try:
        value = operator.index(direction)
    except TypeError as e:
        raise ValidationError(f"invalid sort direction: {direction!r}") from e
    if value not in (1, -1):
        raise ValidationError(f"invalid sort direction: {direction!r}")
    return value


@dataclass
class DocumentCall:
    """
    Native document call.

    `method` is the pymongo method name. `collection` is None for
    database-level calls.
    """

    verb: str
    method: str
    collection: str | None
    database: str | None
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class DocumentTranslator:
    """Maps document verbs onto pymongo collection and database methods."""

    DATABASE_VERBS = frozenset({"listCollections"})
    COLLECTION_VERBS = frozenset(
        {
            "find",
            "findOne",
            "insert",
            "insertMany",
            "update",
            "updateMany",
            "upsert",
            "delete",
            "deleteMany",
            "count",
            "createIndex",
            "drop",
        }
    )

    def __init__(self, backend: str = "mongodb") -> None:
        self.backend = backend

    def translate(self, verb: str, params: MappingABC[str, Any]) -> DocumentCall:
        database = params.get("database") or None

        if verb in self.DATABASE_VERBS:
            return DocumentCall(
                verb=verb,
                method="list_collection_names",
                collection=None,
                database=database,
                kwargs={"filter": dict(params.get("filter") or {})},
            )

        if verb not in self.COLLECTION_VERBS:
            raise UnsupportedOperation(verb, self.backend)

        collection = params.get("collection")
        if not isinstance(collection, str) or not collection:
            raise ValidationError(
                "collection parameter required for MongoDB collection operations"
            )

        method, args, kwargs = getattr(self, f"_{verb}")(params)
        return DocumentCall(
            verb=verb,
            method=method,
            collection=collection,
            database=database,
            args=args,
            kwargs=kwargs,
        )

    @staticmethod
    def _required(params: MappingABC[str, Any], *names: str, verb: str) -> list[Any]:
        values = [params.get(name) for name in names]
        if any(value is None for value in values):
            joined = " and ".join(names)
            raise ValidationError(f"{joined} parameter required for {verb} operation")
        return values

    @staticmethod
    def _filter(params: MappingABC[str, Any]) -> dict[str, Any]:
        return dict(params.get("filter") or {})

    def _find(self, params: MappingABC[str, Any]) -> NativeCall:
        kwargs: dict[str, Any] = {}
        if params.get("limit") is not None:
            kwargs["limit"] = normalize_int("limit", params["limit"])
        if params.get("skip") is not None:
            kwargs["skip"] = normalize_int("skip", params["skip"])
        if params.get("sort") is not None:
            kwargs["sort"] = normalize_sort(params["sort"])
        if params.get("projection") is not None:
            kwargs["projection"] = params["projection"]
        return "find", (self._filter(params),), kwargs

    def _findOne(self, params: MappingABC[str, Any]) -> NativeCall:  # noqa: N802
        kwargs: dict[str, Any] = {}
        if params.get("sort") is not None:
            kwargs["sort"] = normalize_sort(params["sort"])
        return "find_one", (self._filter(params),), kwargs

    def _insert(self, params: MappingABC[str, Any]) -> NativeCall:
        (document,) = self._required(params, "document", verb="insert")
        # pymongo adds _id to the mapping it is given
        return "insert_one", (dict(document),), {}

    def _insertMany(self, params: MappingABC[str, Any]) -> NativeCall:  # noqa: N802
        documents = params.get("documents")
        if not isinstance(documents, (list, tuple)) or not documents:
            raise ValidationError("documents parameter required for insertMany operation")
        return "insert_many", ([dict(doc) for doc in documents],), {}

    def _update(self, params: MappingABC[str, Any]) -> NativeCall:
        flt, update = self._required(params, "filter", "update", verb="update")
        return "update_one", (dict(flt), update), {}

    def _updateMany(self, params: MappingABC[str, Any]) -> NativeCall:  # noqa: N802
        flt, update = self._required(params, "filter", "update", verb="updateMany")
        return "update_many", (dict(flt), update), {}

    def _upsert(self, params: MappingABC[str, Any]) -> NativeCall:
        flt, update = self._required(params, "filter", "update", verb="upsert")
        return "update_one", (dict(flt), update), {"upsert": True}

    def _delete(self, params: MappingABC[str, Any]) -> NativeCall:
        (flt,) = self._required(params, "filter", verb="delete")
        return "delete_one", (dict(flt),), {}

    def _deleteMany(self, params: MappingABC[str, Any]) -> NativeCall:  # noqa: N802
        (flt,) = self._required(params, "filter", verb="deleteMany")
        return "delete_many", (dict(flt),), {}

    def _count(self, params: MappingABC[str, Any]) -> NativeCall:
        return "count_documents", (self._filter(params),), {}

    def _createIndex(self, params: MappingABC[str, Any]) -> NativeCall:  # noqa: N802
        (index,) = self._required(params, "index", verb="createIndex")
        options = dict(params.get("options") or {})
        return "create_index", (normalize_sort(index),), options

    def _drop(self, params: MappingABC[str, Any]) -> NativeCall:
        return "drop", (), {}
