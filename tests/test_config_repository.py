"""ConfigRepository against a mongomock-backed connector."""

import pytest

from configstore.domain.config import ConfigItem, EntryStatus
from configstore.errors import BackendExecutionError, ValidationError
from configstore.operations.results import affected_rows
from configstore.repository.config_repository import ConfigRepository, page_bounds
from configstore.repository.statements import SENTINEL_KEY


def keys(entries):
    return [entry.key for entry in entries]


def test_bootstrap_is_idempotent(configs):
    report = configs.create_table_if_missing()

    assert report == {
        "table_name": "allconfig",
        "tables": ["allconfig", "allconfig_approval_requests"],
        "statements_executed": 7,
    }
    assert configs.count(admin=True) == 1


def test_sentinel_is_only_visible_to_admin_reads(configs):
    assert configs.read(SENTINEL_KEY) is None
    assert configs.count() == 0
    assert configs.read_all() == []

    sentinel = configs.read(SENTINEL_KEY, admin=True)
    assert sentinel is not None
    assert sentinel.status is None
    assert sentinel.value == "collection_created"


def test_create_and_read(configs):
    configs.create_direct("app.mode", "live", "Runtime mode", maker_id="alice")

    entry = configs.read("app.mode")
    assert entry.value == "live"
    assert entry.description == "Runtime mode"
    assert entry.status is EntryStatus.APPROVED
    assert entry.maker_id == "alice"
    assert entry.created_at is not None
    assert entry.approved_at is not None


def test_values_are_stored_natively(configs):
    configs.create_direct("limits", {"max": 5, "tags": ["a"]})
    assert configs.read("limits").value == {"max": 5, "tags": ["a"]}


def test_duplicate_create_fails(configs):
    configs.create_direct("a", "1")
    with pytest.raises(BackendExecutionError):
        configs.create_direct("a", "2")
    assert configs.read("a").value == "1"


def test_update_upserts_and_keeps_created_at(configs):
    configs.update_direct("fresh", "1", "first")
    assert configs.read("fresh").value == "1"

    created_at = configs.read("fresh").created_at
    configs.update_direct("fresh", "2", checker_id="bob", comment="bump")
    entry = configs.read("fresh")

    assert entry.value == "2"
    assert entry.description == "first"
    assert entry.created_at == created_at
    assert entry.checker_id == "bob"
    assert entry.approval_comment == "bump"


def test_delete_is_idempotent(configs):
    configs.create_direct("gone", "x")

    assert affected_rows(configs.delete_direct("gone")) == 1
    assert affected_rows(configs.delete_direct("gone")) == 0
    assert configs.read("gone", admin=True) is None


def test_key_is_required(configs):
    with pytest.raises(ValidationError):
        configs.create_direct("", "x")
    with pytest.raises(ValidationError):
        configs.read("")
    with pytest.raises(ValidationError):
        configs.exists("")


def test_read_all_orders_and_pages(configs):
    for key in ("c", "a", "d", "b"):
        configs.create_direct(key, key.upper())

    assert keys(configs.read_all()) == ["a", "b", "c", "d"]
    assert keys(configs.read_all(limit=2)) == ["a", "b"]
    assert keys(configs.read_all(limit=2, offset=1)) == ["b", "c"]
    assert keys(configs.read_all(offset=3)) == ["d"]
    assert keys(configs.read_all(limit=-1)) == ["a", "b", "c", "d"]


def test_search_is_case_insensitive(configs):
    configs.create_direct("feature.Login", "enabled")
    configs.create_direct("timeout", "30", "Login TIMEOUT in seconds")
    configs.create_direct("other", "value")

    assert keys(configs.search("login")) == ["feature.Login", "timeout"]
    assert keys(configs.search("ENABLED")) == ["feature.Login"]
    assert keys(configs.search("a.b")) == []


def test_search_needs_a_term(configs):
    with pytest.raises(ValidationError, match="search_term"):
        configs.search("")


def test_filter_with_aliases(configs):
    configs.create_direct("a", "1", maker_id="alice")
    configs.create_direct("b", "1", maker_id="bob")
    configs.create_direct("c", "2", maker_id="alice")

    assert keys(configs.filter({"value": "1"})) == ["a", "b"]
    assert keys(configs.filter({"maker_id": "alice", "value": "2"})) == ["c"]
    assert keys(configs.filter({"key": "a"})) == ["a"]


def test_filter_rejects_unknown_fields_and_empty_criteria(configs):
    with pytest.raises(ValidationError, match="unknown filter field"):
        configs.filter({"secret": "x"})
    with pytest.raises(ValidationError):
        configs.filter({})


def test_count_and_exists(configs):
    configs.create_direct("a", "1")
    configs.create_direct("b", "2")

    assert configs.count() == 2
    assert configs.count(admin=True) == 3
    assert configs.exists("a") is True
    assert configs.exists("missing") is False
    assert configs.exists(SENTINEL_KEY) is False
    assert configs.exists(SENTINEL_KEY, admin=True) is True


def test_create_batch_continues_past_failures(configs):
    configs.create_direct("taken", "old")

    batch = configs.create_batch(
        [
            {"key": "one", "value": "1"},
            ConfigItem(key="taken", value="new"),
            {"key": "", "value": "x"},
            {"key": "two", "value": "2", "description": "second"},
        ]
    )

    assert (batch.total_items, batch.success_count, batch.failure_count) == (4, 2, 2)
    assert batch.results["one"]["success"] is True
    assert "error" in batch.results["taken"]
    assert "config key is required" in batch.results["#2"]["error"]
    assert configs.read("two").description == "second"
    assert configs.read("taken").value == "old"


def test_malformed_batch_item_is_a_per_item_failure(configs):
    batch = configs.create_batch([{"key": "a", "value": 1}, "oops", {"key": "b", "value": 2}])

    assert (batch.total_items, batch.success_count, batch.failure_count) == (3, 2, 1)
    assert "config item must be an object" in batch.results["#1"]["error"]
    assert configs.read("b") is not None


def test_update_and_delete_batches(configs):
    configs.create_direct("a", "1")

    updated = configs.update_batch([{"key": "a", "value": "10"}, {"key": "b", "value": "20"}])
    assert updated.success_count == 2
    assert configs.read("a").value == "10"

    deleted = configs.delete_batch([{"key": "a"}, {"key": "zzz"}])
    assert deleted.to_dict()["success_count"] == 2
    assert configs.read("a") is None
    assert configs.read("b").value == "20"


def test_set_multiple(configs):
    batch = configs.set_multiple({"x": 1, "y": "two"})
    assert batch.success_count == 2
    assert configs.read("x").value == 1
    assert configs.read("y").value == "two"


def test_delete_all_and_drop(configs):
    configs.create_direct("a", "1")

    configs.delete_all()
    assert configs.count(admin=True) == 0

    assert configs.drop_table() == {"dropped": ["allconfig", "allconfig_approval_requests"]}
    configs.create_table_if_missing()
    assert configs.count(admin=True) == 1


def test_inspect_existing_table(configs):
    configs.create_direct("a", "1")

    report = configs.inspect()

    assert report["table_exists"] is True
    assert report["database_type"] == "mongodb"
    assert report["config_count"] == 2
    assert len(report["table_structure"]) == 1
    assert "warning" not in report


def test_inspect_missing_table_returns_bootstrap(mongo_connector):
    report = ConfigRepository(mongo_connector, "never_created").inspect()

    assert report["table_exists"] is False
    assert report["table_name"] == "never_created"
    assert "db.never_created.createIndex" in report["create_table_sql"]


def test_invalid_table_name(mongo_connector):
    with pytest.raises(ValidationError, match="invalid table name"):
        ConfigRepository(mongo_connector, "bad name")


def test_page_bounds():
    assert page_bounds(None, None) == (0, 0)
    assert page_bounds(-5, -1) == (0, 0)
    assert page_bounds(10, 20) == (10, 20)
    with pytest.raises(ValidationError):
        page_bounds("10", 0)
    with pytest.raises(ValidationError):
        page_bounds(True, 0)
