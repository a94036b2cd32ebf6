"""Backend connector contract and connection configuration."""

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any
from urllib.parse import quote

from configstore.errors import UnsupportedOperation, ValidationError
from configstore.logger.logger import get_logger
from configstore.logger.types import Category
from configstore.operations.results import Result, Rows

LIVENESS_TIMEOUT = 2.0
DEFAULT_POOL_SIZE = 25
DEFAULT_MAX_LIFETIME = 300.0


class BackendType(str, Enum):
    """Supported storage engines."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    MONGODB = "mongodb"

    @property
    def is_relational(self) -> bool:
        return self is not BackendType.MONGODB

    @classmethod
    def parse(cls, value: "str | BackendType") -> "BackendType":
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f"unsupported database type: {value}") from e


@dataclass
class ConnectionConfig:
    """Connection descriptor for one backend instance."""

    type: BackendType
    host: str
    port: int
    database: str
    username: str | None = None
    password: str | None = None
    ssl_mode: str | None = None
    timeout: float = 10.0
    max_pool_size: int = DEFAULT_POOL_SIZE
    max_lifetime: float = DEFAULT_MAX_LIFETIME

    def __post_init__(self) -> None:
        self.type = BackendType.parse(self.type)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConnectionConfig":
        """
        Build a config from a request-style mapping.

        Accepts both ssl_mode and sslMode spellings.
        """
        port = data.get("port")
        try:
            port = int(port) if port is not None else 0
        except (TypeError, ValueError) as e:
            raise ValidationError("valid port is required") from e

        config = cls(
            type=data.get("type") or "",
            host=data.get("host") or "",
            port=port,
            database=data.get("database") or "",
            username=data.get("username") or None,
            password=data.get("password") or None,
            ssl_mode=data.get("ssl_mode") or data.get("sslMode") or None,
        )
        if data.get("timeout") is not None:
            try:
                config.timeout = float(data["timeout"])
            except (TypeError, ValueError) as e:
                raise ValidationError("timeout must be a number of seconds") from e
        return config

    def validate(self) -> None:
        """Raise ValidationError when the descriptor is unusable."""
        if not self.host:
            raise ValidationError("host is required")
        if self.port <= 0 or self.port > 65535:
            raise ValidationError("port must be between 1 and 65535")
        if not self.database:
            raise ValidationError("database name is required")
        if self.type.is_relational and not self.username:
            raise ValidationError(f"username is required for {self.type.value}")

    def connection_string(self) -> str:
        """
        Connection string for this backend.

        Pure and deterministic: the same fields always yield the same string.
        """
        if self.type is BackendType.MYSQL:
            return (
                f"{self.username or ''}:{self.password or ''}"
                f"@tcp({self.host}:{self.port})/{self.database}"
            )
        if self.type is BackendType.POSTGRESQL:
            return (
                f"host={self.host} "
                f"port={self.port} "
                f"user={self.username or ''} "
                f"password={self.password or ''} "
                f"dbname={self.database} "
                f"sslmode={self.ssl_mode or 'disable'}"
            )
        if self.username and self.password:
            auth = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}@"
        elif self.username:
            auth = f"{quote(self.username, safe='')}@"
        else:
            auth = ""
        return f"mongodb://{auth}{self.host}:{self.port}/{self.database}"

    def with_timeout(self, timeout: float) -> "ConnectionConfig":
        """Copy of this config with a different deadline."""
        return ConnectionConfig(
            type=self.type,
            host=self.host,
            port=self.port,
            database=self.database,
            username=self.username,
            password=self.password,
            ssl_mode=self.ssl_mode,
            timeout=timeout,
            max_pool_size=self.max_pool_size,
            max_lifetime=self.max_lifetime,
        )

    def redacted(self) -> dict[str, Any]:
        """Loggable view without the password."""
        return {
            "type": self.type.value,
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "username": self.username,
        }


class Backend(ABC):
    """
    Connector for one backend instance.

    Subclasses own the driver connection or pool. execute() and query()
    raise NotConnected until connect() succeeds; close() may be called any
    number of times.
    """

    category = Category.DATABASE

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self.logger = get_logger().with_category(self.category)

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        """Which engine this connector talks to."""

    @abstractmethod
    def connect(self) -> None:
        """Open the connection/pool and verify it with a ping."""

    @abstractmethod
    def ping(self, timeout: float | None = None) -> None:
        """Round-trip to the server. Raises BackendConnectionError on failure."""

    @abstractmethod
    def close(self) -> None:
        """Release pooled resources."""

    @abstractmethod
    def execute(self, verb: str, params: Mapping[str, Any]) -> Result:
        """Run an abstract verb against the backend."""

    def query(self, sql: str, args: list[Any] | tuple[Any, ...] | None = None) -> Rows:
        """Run a row-returning statement. Relational backends only."""
        raise UnsupportedOperation("query", self.backend_type.value)

    def is_connected(self) -> bool:
        """Live liveness probe bounded by a short timeout."""
        result: list[bool] = []

        def probe() -> None:
            try:
                self.ping(LIVENESS_TIMEOUT)
                result.append(True)
            except Exception:
                result.append(False)

        worker = threading.Thread(target=probe, daemon=True)
        worker.start()
        worker.join(LIVENESS_TIMEOUT)
        return bool(result and result[0])

    def __enter__(self) -> "Backend":
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
