"""Fake connectors and driver objects for tests (no live databases)."""

from .backends import (
    FakeCursor,
    FakeDriverError,
    FakeRelationalConnector,
    FakeTimeoutError,
    RecordingConnector,
    SharedMongoClient,
    mongo_config,
    mysql_config,
    postgres_config,
)

__all__ = [
    "FakeCursor",
    "FakeDriverError",
    "FakeRelationalConnector",
    "FakeTimeoutError",
    "RecordingConnector",
    "SharedMongoClient",
    "mongo_config",
    "mysql_config",
    "postgres_config",
]
