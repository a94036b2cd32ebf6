"""MongoDB connector against mongomock."""

import pytest

from configstore.database.mongodb import MongoConnector
from configstore.errors import BackendExecutionError, NotConnected, UnsupportedOperation
from configstore.operations.results import Ack, Count, Document, Empty, Rows

from tests.fakes import SharedMongoClient, mongo_config


def test_connect_builds_uri_and_options(mongo_client):
    connector = MongoConnector(
        mongo_config(username="admin", password="pw", timeout=3.0),
        client_factory=mongo_client.factory,
    )
    connector.connect()

    assert mongo_client.uri == "mongodb://admin:pw@localhost:27017/configdb"
    assert mongo_client.options["serverSelectionTimeoutMS"] == 3000
    assert mongo_client.options["maxPoolSize"] == 25
    assert connector.is_connected() is True


def test_execute_before_connect_raises_not_connected():
    connector = MongoConnector(mongo_config(), client_factory=SharedMongoClient().factory)
    with pytest.raises(NotConnected):
        connector.execute("find", {"collection": "c"})


def test_close_is_idempotent(mongo_client, mongo_connector):
    mongo_connector.close()
    mongo_connector.close()

    assert mongo_client.close_count == 1
    assert mongo_connector.is_connected() is False
    with pytest.raises(NotConnected):
        mongo_connector.execute("count", {"collection": "c"})


def test_insert_find_and_count(mongo_connector):
    ack = mongo_connector.execute("insert", {"collection": "c", "document": {"k": "a", "n": 1}})
    assert ack.affected == 1
    assert ack.inserted_id is not None

    ack = mongo_connector.execute(
        "insertMany", {"collection": "c", "documents": [{"k": "b", "n": 2}, {"k": "c", "n": 3}]}
    )
    assert ack.affected == 2
    assert len(ack.inserted_ids) == 2

    found = mongo_connector.execute(
        "find",
        {"collection": "c", "sort": [("n", -1)], "limit": 2, "projection": {"_id": 0}},
    )
    assert found == Rows([{"k": "c", "n": 3}, {"k": "b", "n": 2}])

    skipped = mongo_connector.execute(
        "find", {"collection": "c", "sort": {"n": 1}, "skip": 2, "projection": {"_id": 0}}
    )
    assert skipped == Rows([{"k": "c", "n": 3}])

    assert mongo_connector.execute("count", {"collection": "c"}) == Count(3)
    assert mongo_connector.execute("count", {"collection": "c", "filter": {"n": {"$gt": 1}}}) == (
        Count(2)
    )


def test_find_one_returns_document_or_empty(mongo_connector):
    mongo_connector.execute("insert", {"collection": "c", "document": {"k": "a"}})

    hit = mongo_connector.execute("findOne", {"collection": "c", "filter": {"k": "a"}})
    miss = mongo_connector.execute("findOne", {"collection": "c", "filter": {"k": "zzz"}})

    assert isinstance(hit, Document)
    assert hit.document["k"] == "a"
    assert miss == Empty()


def test_update_upsert_and_delete(mongo_connector):
    ack = mongo_connector.execute(
        "upsert", {"collection": "c", "filter": {"k": "a"}, "update": {"$set": {"v": 1}}}
    )
    assert ack.matched == 0
    assert ack.upserted_id is not None

    ack = mongo_connector.execute(
        "update", {"collection": "c", "filter": {"k": "a"}, "update": {"$set": {"v": 2}}}
    )
    assert (ack.matched, ack.modified) == (1, 1)

    ack = mongo_connector.execute(
        "updateMany", {"collection": "c", "filter": {}, "update": {"$inc": {"v": 1}}}
    )
    assert ack.matched == 1

    assert mongo_connector.execute("delete", {"collection": "c", "filter": {"k": "a"}}) == Ack(
        affected=1
    )
    assert mongo_connector.execute("deleteMany", {"collection": "c", "filter": {}}) == Ack(
        affected=0
    )


def test_list_collections_and_drop(mongo_connector):
    mongo_connector.execute("insert", {"collection": "alpha", "document": {"x": 1}})
    mongo_connector.execute("insert", {"collection": "beta", "document": {"x": 1}})

    everything = mongo_connector.execute("listCollections", {})
    named = mongo_connector.execute("listCollections", {"filter": {"name": "alpha"}})

    assert {row["name"] for row in everything.rows} >= {"alpha", "beta"}
    assert named == Rows([{"name": "alpha", "type": "collection"}])

    mongo_connector.execute("drop", {"collection": "alpha"})
    remaining = mongo_connector.execute("listCollections", {})
    assert "alpha" not in {row["name"] for row in remaining.rows}


def test_unique_index_violation_is_wrapped(mongo_connector):
    mongo_connector.execute(
        "createIndex", {"collection": "c", "index": [("k", 1)], "options": {"unique": True}}
    )
    mongo_connector.execute("insert", {"collection": "c", "document": {"k": "a"}})

    with pytest.raises(BackendExecutionError) as excinfo:
        mongo_connector.execute("insert", {"collection": "c", "document": {"k": "a"}})

    assert excinfo.value.backend == "mongodb"
    assert excinfo.value.operation == "insert"


def test_sql_verbs_are_unsupported(mongo_connector):
    with pytest.raises(UnsupportedOperation):
        mongo_connector.execute("select", {"query": "SELECT 1"})
