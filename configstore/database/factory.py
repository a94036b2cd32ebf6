"""Connector construction and the caller-owned connector registry."""

from typing import Any

from configstore.database.base import Backend, BackendType, ConnectionConfig
from configstore.database.mongodb import MongoConnector
from configstore.database.mysql import MySQLConnector
from configstore.database.postgres import PostgresConnector

CONNECTOR_CLASSES: dict[BackendType, type[Backend]] = {
    BackendType.MYSQL: MySQLConnector,
    BackendType.POSTGRESQL: PostgresConnector,
    BackendType.MONGODB: MongoConnector,
}


def create_connector(config: ConnectionConfig, **kwargs: Any) -> Backend:
    """
    Build an unconnected connector for the descriptor.

    Args:
        config: Connection descriptor
        **kwargs: Passed to the connector class (e.g. client_factory)

    Returns:
        Connector instance; call connect() or use it as a context manager
    """
    config.validate()
    return CONNECTOR_CLASSES[config.type](config, **kwargs)


class ConnectorRegistry:
    """Named connectors owned by the caller."""

    def __init__(self) -> None:
        self._connectors: dict[str, Backend] = {}

    def register(self, name: str, connector: Backend) -> None:
        self._connectors[name] = connector

    def get(self, name: str) -> Backend | None:
        return self._connectors.get(name)

    def names(self) -> list[str]:
        return list(self._connectors)

    def close_all(self) -> None:
        for connector in self._connectors.values():
            connector.close()

    def __len__(self) -> int:
        return len(self._connectors)

    def __contains__(self, name: object) -> bool:
        return name in self._connectors
