"""Shared fixtures: logger setup and mongomock-backed repositories."""

import pytest

from configstore.config.settings import Settings
from configstore.database.mongodb import MongoConnector
from configstore.logger.logger import init_logger
from configstore.repository.approval_repository import ApprovalRepository
from configstore.repository.config_repository import ConfigRepository
from configstore.service import ConfigService

from tests.fakes import SharedMongoClient, mongo_config


@pytest.fixture(autouse=True)
def logger():
    """Every test gets a fresh stderr logger; only warnings and above are printed."""
    return init_logger("configstore-test", "test", level="warn")


@pytest.fixture
def mongo_client():
    return SharedMongoClient()


@pytest.fixture
def mongo_connector(mongo_client):
    connector = MongoConnector(mongo_config(), client_factory=mongo_client.factory)
    connector.connect()
    yield connector
    connector.close()


@pytest.fixture
def configs(mongo_connector):
    repository = ConfigRepository(mongo_connector)
    repository.create_table_if_missing()
    return repository


@pytest.fixture
def approvals(configs):
    return ApprovalRepository(configs)


@pytest.fixture
def settings(monkeypatch):
    for name in ("CONFIG_TABLE", "READ_TIMEOUT", "WRITE_TIMEOUT", "LOG_DSN"):
        monkeypatch.delenv(name, raising=False)
    return Settings()


@pytest.fixture
def service(settings, mongo_client):
    def factory(config):
        return MongoConnector(config, client_factory=mongo_client.factory)

    return ConfigService(settings, connector_factory=factory)


@pytest.fixture
def mongo_request():
    """Connection descriptor fields of a MongoDB request."""
    return {"type": "mongodb", "host": "localhost", "port": 27017, "database": "configdb"}
