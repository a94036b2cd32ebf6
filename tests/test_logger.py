import json

import psycopg2
import pytest

from configstore.logger import Category, Level, PostgresWriter, get_logger, init_logger
from configstore.logger.types import category, duration_ms, param


def lines(capsys):
    return [json.loads(line) for line in capsys.readouterr().err.splitlines() if line]


def test_entries_go_to_stderr_as_json(capsys):
    logger = init_logger("svc", "test", level="info").with_category(Category.CONFIG)

    logger.info("Config created", param("key", "a"), duration_ms(12))

    (entry,) = lines(capsys)
    assert entry["message"] == "Config created"
    assert entry["level"] == "info"
    assert entry["category"] == "config"
    assert entry["service_name"] == "svc"
    assert entry["context"] == {"key": "a"}


def test_level_filtering(capsys):
    logger = init_logger("svc", "test", level="warning")

    logger.debug("hidden")
    logger.info("hidden")
    logger.warn("shown")
    logger.error("also shown")

    assert [entry["message"] for entry in lines(capsys)] == ["shown", "also shown"]
    assert logger.is_enabled(Level.ERROR)
    assert not logger.is_enabled(Level.TRACE)


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        init_logger("svc", "test", level="loud")


def test_error_carries_the_exception(capsys):
    logger = init_logger("svc", "test")
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        logger.error("Operation failed", e, param("operation", "read"))

    (entry,) = lines(capsys)
    assert entry["error"] == "boom"
    assert entry["context"] == {"operation": "read"}


def test_category_field_overrides_bound_category(capsys):
    logger = init_logger("svc", "test").with_category(Category.SERVICE)

    logger.warn("Direct write", category(Category.SECURITY))

    (entry,) = lines(capsys)
    assert entry["category"] == "security"
    assert "context" not in entry


def test_bound_fields_are_copied(capsys):
    base = init_logger("svc", "test")
    bound = base.with_fields(param("table", "allconfig"))

    bound.info("with table")
    base.info("without table")

    with_table, without_table = lines(capsys)
    assert with_table["context"] == {"table": "allconfig"}
    assert "context" not in without_table


def test_secret_context_is_masked(capsys):
    logger = init_logger("svc", "test")

    logger.info(
        "Connecting",
        param("connection", {"host": "db", "password": "pw", "log_dsn": "postgresql://x"}),
        param("api_token", None),
    )

    (entry,) = lines(capsys)
    assert entry["context"] == {
        "connection": {"host": "db", "password": "***", "log_dsn": "***"},
        "api_token": None,
    }


def test_get_logger_returns_the_global_logger():
    logger = init_logger("svc", "test")
    assert get_logger() is logger


class FakeConnection:
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


def test_writer_flushes_in_batches(monkeypatch):
    inserted = []
    monkeypatch.setattr(
        psycopg2.extras,
        "execute_values",
        lambda cursor, query, values, page_size: inserted.append(values),
    )
    writer = PostgresWriter(dsn="postgresql://logs", batch_size=2)
    writer._conn = conn = FakeConnection()
    logger = init_logger("svc", "test", writer=writer)

    logger.info("one", param("n", 1))
    assert inserted == []
    logger.info("two")
    assert len(inserted) == 1
    assert len(inserted[0]) == 2
    assert inserted[0][0][13] == "one"
    assert inserted[0][0][16] == '{"n": 1}'

    logger.info("three")
    writer.close()
    assert len(inserted) == 2
    assert conn.commits == 2
    assert conn.closed is True

    logger.info("after close")
    assert len(inserted) == 2


def test_writer_falls_back_to_stderr(capsys, monkeypatch):
    def fail(*args, **kwargs):
        raise psycopg2.OperationalError("logs table missing")

    monkeypatch.setattr(psycopg2.extras, "execute_values", fail)
    writer = PostgresWriter(dsn="postgresql://logs", batch_size=10)
    writer._conn = conn = FakeConnection()
    init_logger("svc", "test", writer=writer).warn("kept")

    writer.flush()

    err = capsys.readouterr().err
    assert "Failed to insert logs" in err
    assert '"message": "kept"' in err
    assert conn.rollbacks == 1


def test_unconnected_writer_prints_on_close(capsys):
    writer = PostgresWriter(dsn="postgresql://logs")
    init_logger("svc", "test", writer=writer).info("buffered")

    assert capsys.readouterr().err == ""
    writer.close()
    assert '"message": "buffered"' in capsys.readouterr().err
