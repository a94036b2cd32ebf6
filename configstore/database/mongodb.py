"""MongoDB connector built on pymongo."""

import contextlib
from collections.abc import Callable, Mapping
from typing import Any

import pymongo
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ExecutionTimeout, NetworkTimeout, PyMongoError
from pymongo.errors import ServerSelectionTimeoutError

from configstore.database.base import Backend, BackendType, ConnectionConfig
from configstore.errors import BackendConnectionError, BackendExecutionError
from configstore.errors import NotConnected, OperationTimeout
from configstore.logger.types import Category, param
from configstore.operations.results import Ack, Count, Document, Empty, Result, Rows
from configstore.operations.translator import DocumentCall, DocumentTranslator

ClientFactory = Callable[..., Any]

TIMEOUT_ERRORS = (ExecutionTimeout, NetworkTimeout, ServerSelectionTimeoutError)


class MongoConnector(Backend):
    """MongoDB connector. Username and password are optional."""

    category = Category.MONGODB

    def __init__(
        self,
        config: ConnectionConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """
        Initialize MongoDB connector.

        Args:
            config: Connection descriptor with type mongodb
            client_factory: Callable(uri, **options) returning a client,
                pymongo.MongoClient by default
        """
        super().__init__(config)
        self.client_factory = client_factory or pymongo.MongoClient
        self.translator = DocumentTranslator(BackendType.MONGODB.value)
        self.client: Any = None
        self.db: Database | None = None

    @property
    def backend_type(self) -> BackendType:
        return BackendType.MONGODB

    def client_options(self) -> dict[str, Any]:
        timeout_ms = int(self.config.timeout * 1000)
        return {
            "maxPoolSize": self.config.max_pool_size,
            "maxIdleTimeMS": int(self.config.max_lifetime * 1000),
            "serverSelectionTimeoutMS": timeout_ms,
            "connectTimeoutMS": timeout_ms,
            "socketTimeoutMS": timeout_ms,
        }

    def connect(self) -> None:
        """Connect to MongoDB and ping the primary."""
        try:
            self.client = self.client_factory(
                self.config.connection_string(),
                **self.client_options(),
            )
            self.client.admin.command("ping")
        except PyMongoError as e:
            self.logger.error(
                "Failed to connect to MongoDB",
                e,
                param("host", self.config.host),
                param("port", self.config.port),
            )
            self.close()
            raise BackendConnectionError(f"failed to connect to MongoDB: {e}") from e

        self.db = self.client[self.config.database]
        self.logger.info(
            "Connected to MongoDB",
            param("host", self.config.host),
            param("port", self.config.port),
            param("database", self.config.database),
        )

    def close(self) -> None:
        if self.client is not None:
            with contextlib.suppress(PyMongoError):
                self.client.close()
            self.client = None
            self.db = None
            self.logger.debug("MongoDB client closed")

    def ping(self, timeout: float | None = None) -> None:
        if self.client is None:
            raise BackendConnectionError("MongoDB connection not established")
        try:
            if timeout is None:
                self.client.admin.command("ping")
            else:
                with pymongo.timeout(timeout):
                    self.client.admin.command("ping")
        except PyMongoError as e:
            raise BackendConnectionError(f"failed to ping MongoDB: {e}") from e

    def _database(self, name: str | None) -> Database:
        if self.client is None or self.db is None:
            raise NotConnected("MongoDB")
        return self.client[name] if name else self.db

    def collection(self, name: str, database: str | None = None) -> Collection:
        return self._database(database)[name]

    def execute(self, verb: str, params: Mapping[str, Any]) -> Result:
        call = self.translator.translate(verb, params)
        database = self._database(call.database)

        try:
            if call.collection is None:
                names = getattr(database, call.method)(*call.args, **call.kwargs)
                return Rows([{"name": name, "type": "collection"} for name in names])

            target = database[call.collection]
            native = getattr(target, call.method)(*call.args, **call.kwargs)
            return self._normalize(call, native)
        except PyMongoError as e:
            self.logger.warn(
                f"mongodb {verb} failed",
                param("collection", call.collection),
                param("error", str(e)),
            )
            if isinstance(e, TIMEOUT_ERRORS):
                raise OperationTimeout(verb, self.backend_type.value, e) from e
            raise BackendExecutionError(verb, self.backend_type.value, e) from e

    @staticmethod
    def _normalize(call: DocumentCall, native: Any) -> Result:
        """pymongo return value -> result variant."""
        match call.method:
            case "find":
                return Rows(list(native))
            case "find_one":
                return Document(native) if native is not None else Empty()
            case "count_documents":
                return Count(int(native))
            case "insert_one":
                return Ack(affected=1, inserted_id=native.inserted_id)
            case "insert_many":
                ids = list(native.inserted_ids)
                return Ack(affected=len(ids), inserted_ids=ids)
            case "update_one" | "update_many":
                return Ack(
                    matched=native.matched_count,
                    modified=native.modified_count,
                    upserted_id=native.upserted_id,
                )
            case "delete_one" | "delete_many":
                return Ack(affected=native.deleted_count)
            case "create_index":
                return Document({"index": native})
        return Ack()
