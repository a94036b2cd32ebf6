"""Shared execution path for the relational connectors."""

import time
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any, ContextManager

from configstore.database.base import Backend, ConnectionConfig
from configstore.errors import BackendExecutionError, OperationTimeout
from configstore.logger.types import duration_ms, param
from configstore.operations.results import Ack, Result, Rows, rows_from_cursor
from configstore.operations.translator import SQLCall, SQLDialect, SQLTranslator


class RelationalConnector(Backend):
    """
    Base for DB-API backends.

    Subclasses provide the dialect, a cursor context manager and the list
    of driver exceptions that mean "deadline exceeded".
    """

    dialect: SQLDialect

    def __init__(self, config: ConnectionConfig) -> None:
        super().__init__(config)
        self.translator = SQLTranslator(self.dialect)

    @property
    @abstractmethod
    def driver_error(self) -> type[Exception] | tuple[type[Exception], ...]:
        """Base exception class(es) raised by the driver."""

    @abstractmethod
    def _is_timeout(self, err: Exception) -> bool:
        """True if the driver error is a timeout or statement cancel."""

    @abstractmethod
    def cursor(self) -> ContextManager[Any]:
        """Cursor on a live connection; commits on success, rolls back on error."""

    def execute(self, verb: str, params: Mapping[str, Any]) -> Result:
        call = self.translator.translate(verb, params)
        return self._run(verb, call)

    def query(self, sql: str, args: list[Any] | tuple[Any, ...] | None = None) -> Rows:
        call = self.translator.translate("select", {"query": sql, "args": list(args or [])})
        result = self._run("select", call)
        if not isinstance(result, Rows):
            raise BackendExecutionError(
                "select", self.backend_type.value, "query returned no rows"
            )
        return result

    def _run(self, verb: str, call: SQLCall) -> Result:
        started = time.monotonic()
        try:
            with self.cursor() as cur:
                cur.execute(call.sql, call.args)
                if call.fetch:
                    result: Result = rows_from_cursor(cur)
                else:
                    result = Ack(affected=cur.rowcount, inserted_id=cur.lastrowid or None)
        except self.driver_error as e:
            self.logger.warn(
                f"{self.backend_type.value} {verb} failed",
                param("error", str(e)),
                param("sql", call.sql),
            )
            if self._is_timeout(e):
                raise OperationTimeout(verb, self.backend_type.value, e) from e
            raise BackendExecutionError(verb, self.backend_type.value, e) from e

        self.logger.trace(
            f"{self.backend_type.value} {verb} executed",
            param("sql", call.sql),
            duration_ms(int((time.monotonic() - started) * 1000)),
        )
        return result
