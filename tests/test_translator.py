import pytest

from configstore.errors import UnsupportedOperation, ValidationError
from configstore.operations.translator import (
    MYSQL,
    POSTGRES,
    DocumentTranslator,
    SQLTranslator,
    normalize_int,
    normalize_sort,
)


class NumpyLikeInt:
    """Integral value that is not an int subclass (e.g. numpy.int64)."""

    def __init__(self, value):
        self.value = value

    def __index__(self):
        return self.value


# --- relational ---


def test_qmark_placeholders_become_driver_style():
    call = SQLTranslator(MYSQL).translate(
        "select", {"query": "SELECT * FROM t WHERE a = ? AND b = ?", "args": [1, "x"]}
    )
    assert call.sql == "SELECT * FROM t WHERE a = %s AND b = %s"
    assert call.args == (1, "x")
    assert call.fetch is True


def test_numbered_placeholders_follow_position():
    call = SQLTranslator(POSTGRES).translate(
        "update", {"query": "UPDATE t SET a = $2 WHERE id = $1 OR parent = $1", "args": [7, "v"]}
    )
    assert call.sql == "UPDATE t SET a = %s WHERE id = %s OR parent = %s"
    assert call.args == ("v", 7, 7)
    assert call.fetch is False


def test_literal_percent_is_escaped_when_args_given():
    call = SQLTranslator(MYSQL).translate(
        "select", {"query": "SELECT * FROM t WHERE name LIKE 'a%' AND id = ?", "args": [1]}
    )
    assert call.sql == "SELECT * FROM t WHERE name LIKE 'a%%' AND id = %s"


def test_placeholders_inside_literals_are_not_rewritten():
    call = SQLTranslator(MYSQL).translate(
        "select", {"query": "SELECT '?' AS q, 'it''s' AS s, ? AS v", "args": [5]}
    )
    assert call.sql == "SELECT '?' AS q, 'it''s' AS s, %s AS v"
    assert call.args == (5,)

    call = SQLTranslator(POSTGRES).translate(
        "select", {"query": "SELECT '$1' AS q, $1 AS v", "args": [5]}
    )
    assert call.sql == "SELECT '$1' AS q, %s AS v"


def test_query_without_args_passes_through():
    call = SQLTranslator(MYSQL).translate("execute", {"query": "SELECT '100%'"})
    assert call.sql == "SELECT '100%'"
    assert call.args is None


def test_qmark_count_mismatch():
    with pytest.raises(ValidationError, match="2 placeholders but 1 args"):
        SQLTranslator(MYSQL).translate(
            "select", {"query": "SELECT ? , ?", "args": [1]}
        )


def test_numbered_placeholder_out_of_range():
    with pytest.raises(ValidationError, match=r"\$3"):
        SQLTranslator(POSTGRES).translate("select", {"query": "SELECT $3", "args": [1]})


@pytest.mark.parametrize("params", [{}, {"query": ""}, {"query": "   "}, {"query": 5}])
def test_query_is_required(params):
    with pytest.raises(ValidationError, match="query parameter required"):
        SQLTranslator(MYSQL).translate("select", params)


def test_args_must_be_a_list():
    with pytest.raises(ValidationError, match="args"):
        SQLTranslator(MYSQL).translate("select", {"query": "SELECT ?", "args": "x"})


def test_relational_rejects_document_verbs():
    with pytest.raises(UnsupportedOperation, match="findOne"):
        SQLTranslator(POSTGRES).translate("findOne", {"query": "SELECT 1"})


def test_dialect_rules():
    assert MYSQL.placeholder(3) == "?"
    assert POSTGRES.placeholder(3) == "$3"
    assert MYSQL.quote_identifier("a`b") == "`a``b`"
    assert POSTGRES.quote_identifier("t") == '"t"'
    assert POSTGRES.case_insensitive_like("c", "$1") == "c ILIKE $1 ESCAPE '!'"
    assert MYSQL.case_insensitive_like("c", "?") == "LOWER(c) LIKE LOWER(?) ESCAPE '!'"


# --- document ---


def test_find_normalizes_paging_and_sort():
    call = DocumentTranslator().translate(
        "find",
        {
            "collection": "c",
            "filter": {"a": 1},
            "limit": NumpyLikeInt(5),
            "skip": 2,
            "sort": {"a": "desc", "b": 1},
        },
    )
    assert call.method == "find"
    assert call.collection == "c"
    assert call.args == ({"a": 1},)
    assert call.kwargs == {"limit": 5, "skip": 2, "sort": [("a", -1), ("b", 1)]}
    assert type(call.kwargs["limit"]) is int


def test_find_one_and_count_default_to_empty_filter():
    translator = DocumentTranslator()
    assert translator.translate("findOne", {"collection": "c"}).args == ({},)
    assert translator.translate("count", {"collection": "c"}).method == "count_documents"


def test_upsert_sets_upsert_flag():
    call = DocumentTranslator().translate(
        "upsert", {"collection": "c", "filter": {"k": 1}, "update": {"$set": {"v": 2}}}
    )
    assert call.method == "update_one"
    assert call.kwargs == {"upsert": True}


def test_insert_copies_the_document():
    document = {"k": 1}
    call = DocumentTranslator().translate("insert", {"collection": "c", "document": document})
    call.args[0]["_id"] = "x"
    assert "_id" not in document


def test_list_collections_is_database_level():
    call = DocumentTranslator().translate(
        "listCollections", {"filter": {"name": "c"}, "database": "other"}
    )
    assert call.collection is None
    assert call.database == "other"
    assert call.kwargs == {"filter": {"name": "c"}}


def test_collection_is_required():
    with pytest.raises(ValidationError, match="collection parameter required"):
        DocumentTranslator().translate("find", {})


@pytest.mark.parametrize(
    "verb, params, missing",
    [
        ("insert", {}, "document"),
        ("update", {"filter": {}}, "filter and update"),
        ("delete", {}, "filter"),
        ("createIndex", {}, "index"),
    ],
)
def test_missing_required_params(verb, params, missing):
    with pytest.raises(ValidationError, match=f"{missing} parameter required for {verb}"):
        DocumentTranslator().translate(verb, {"collection": "c", **params})


def test_insert_many_needs_documents():
    with pytest.raises(ValidationError, match="documents"):
        DocumentTranslator().translate("insertMany", {"collection": "c", "documents": []})


def test_document_rejects_sql_verbs():
    with pytest.raises(UnsupportedOperation, match="'select'"):
        DocumentTranslator().translate("select", {"collection": "c"})


# --- normalization ---


def test_normalize_int_accepts_integral_types():
    assert normalize_int("limit", 3) == 3
    assert normalize_int("limit", NumpyLikeInt(4)) == 4
    assert normalize_int("limit", 0) == 0


@pytest.mark.parametrize("value", [True, 1.5, "3", None])
def test_normalize_int_rejects_non_integers(value):
    with pytest.raises(ValidationError, match="must be an integer"):
        normalize_int("limit", value)


def test_normalize_int_rejects_negative():
    with pytest.raises(ValidationError, match="must not be negative"):
        normalize_int("skip", -1)


def test_normalize_sort_accepts_pairs_and_words():
    assert normalize_sort([("a", "asc"), ["b", -1]]) == [("a", 1), ("b", -1)]
    assert normalize_sort({"a": "descending"}) == [("a", -1)]


@pytest.mark.parametrize("value", ["a", [("a", 2)], [("a",)], {"a": "up"}])
def test_normalize_sort_rejects_bad_orders(value):
    with pytest.raises(ValidationError):
        normalize_sort(value)
