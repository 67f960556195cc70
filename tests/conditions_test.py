import pytest
from decimal import Decimal
from storekit.conditions import (
    ASCENDING, DESCENDING, build_dynamo_filter, build_dynamo_increment, build_dynamo_key_exists,
    build_dynamo_search, build_dynamo_set, build_mongo_filter, build_mongo_search, build_sql_increment,
    build_sql_insert, build_sql_order_by, build_sql_search, build_sql_set, build_sql_where,
    escape_like, normalize_sort, require_bulk, require_conditions, require_page, sort_records,
)
from storekit.exceptions import ValidationError

def test_sql_where_uses_bind_parameters_in_order():
    clause, params = build_sql_where({"name": "a", "balance": 10})
    assert clause == "name = :w0 AND balance = :w1"
    assert params == {"w0": "a", "w1": 10}

def test_sql_where_never_interpolates_values():
    clause, params = build_sql_where({"name": "x' OR '1'='1"})
    assert "OR" not in clause
    assert params == {"w0": "x' OR '1'='1"}

def test_sql_where_null_value_uses_is_null():
    clause, params = build_sql_where({"deleted_at": None, "name": "a"})
    assert clause == "deleted_at IS NULL AND name = :w1"
    assert params == {"w1": "a"}

def test_sql_where_empty_conditions_give_no_clause():
    assert build_sql_where({}) == ("", {})
    assert build_sql_where(None) == ("", {})

def test_sql_identifiers_are_validated():
    with pytest.raises(ValidationError):
        build_sql_where({"name; DROP TABLE t": 1})
    with pytest.raises(ValidationError):
        build_sql_set({"a b": 1})
    with pytest.raises(ValidationError):
        build_sql_insert("t; --", ["a"], [{"a": 1}])

def test_sql_insert_builds_one_multi_row_statement():
    sql, params = build_sql_insert("t", ["a", "b"], [{"a": 1, "b": {"k": 1}}, {"b": 3, "a": 2}])
    assert sql == "INSERT INTO t (a, b) VALUES (:r0_0, :r0_1), (:r1_0, :r1_1)"
    assert params == {"r0_0": 1, "r0_1": '{"k": 1}', "r1_0": 2, "r1_1": 3}

def test_sql_set_and_increment():
    assert build_sql_set({"a": 1, "b": [1, 2]}) == ("a = :s0, b = :s1", {"s0": 1, "s1": "[1, 2]"})
    assert build_sql_increment({"balance": -3}) == ("balance = COALESCE(balance, 0) + :i0", {"i0": -3})

def test_sql_order_by_keeps_key_order():
    assert build_sql_order_by({"balance": "desc", "name": 1}) == "balance DESC, name ASC"
    assert build_sql_order_by({}) == ""

def test_sql_search_escapes_like_wildcards():
    clause, params = build_sql_search("50%_Off!", ["title", "body"])
    assert clause == "LOWER(title) LIKE :q ESCAPE '!' OR LOWER(body) LIKE :q ESCAPE '!'"
    assert params == {"q": "%50!%!_off!!%"}
    assert escape_like("plain") == "plain"

def test_normalize_sort_accepts_words_and_numbers():
    assert normalize_sort({"a": "ASC", "b": "desc", "c": -1, "d": 1}) == [
        ("a", ASCENDING), ("b", DESCENDING), ("c", DESCENDING), ("d", ASCENDING)
    ]
    with pytest.raises(ValidationError):
        normalize_sort({"a": True})
    with pytest.raises(ValidationError):
        normalize_sort({"a": "up"})

def test_require_conditions_rejects_empty():
    with pytest.raises(ValidationError):
        require_conditions({}, "get")
    with pytest.raises(ValidationError):
        require_conditions({"": 1}, "get")
    require_conditions({"a": 1}, "get")

def test_require_bulk_returns_shared_columns():
    assert require_bulk([{"a": 1, "b": 2}, {"b": 3, "a": 4}]) == ["a", "b"]
    with pytest.raises(ValidationError):
        require_bulk([{"a": 1}, {"a": 1, "b": 2}])

def test_dynamo_filter_uses_name_and_value_placeholders():
    expression, names, values = build_dynamo_filter({"name": "a", "status": "open"})
    assert expression == "#f0 = :f0 AND #f1 = :f1"
    assert names == {"#f0": "name", "#f1": "status"}
    assert values == {":f0": "a", ":f1": "open"}

def test_dynamo_update_expressions():
    assert build_dynamo_set({"email": "e"}) == ("SET #u0 = :u0", {"#u0": "email"}, {":u0": "e"})
    expression, names, values = build_dynamo_increment({"balance": 5})
    assert expression == "SET #i0 = if_not_exists(#i0, :zero) + :i0"
    assert names == {"#i0": "balance"}
    assert values == {":zero": 0, ":i0": 5}
    assert build_dynamo_key_exists(["pk", "sk"]) == (
        "attribute_exists(#k0) AND attribute_exists(#k1)", {"#k0": "pk", "#k1": "sk"}
    )

def test_dynamo_search_ors_contains():
    expression, names, values = build_dynamo_search("ali", ["name", "email"])
    assert expression == "contains(#s0, :sq) OR contains(#s1, :sq)"
    assert names == {"#s0": "name", "#s1": "email"}
    assert values == {":sq": "ali"}

def test_mongo_filter_is_the_conditions():
    assert build_mongo_filter({"name": "a"}) == {"name": "a"}
    assert build_mongo_filter(None) == {}

def test_mongo_search_escapes_regex():
    assert build_mongo_search("a.b", ["name", "email"]) == {
        "$or": [
            {"name": {"$regex": r"a\.b", "$options": "i"}},
            {"email": {"$regex": r"a\.b", "$options": "i"}},
        ]
    }

def test_sort_records_multi_key_with_missing_values_last():
    records = [
        {"name": "c", "balance": 1},
        {"name": "a"},
        {"name": "b", "balance": 1},
        {"name": "d", "balance": 2},
    ]
    ordered = sort_records(records, {"balance": "desc", "name": "asc"})
    assert [r["name"] for r in ordered] == ["d", "b", "c", "a"]
    assert sort_records(records, None) == records

def test_sort_records_orders_mixed_types_by_type_then_value():
    records = [{"code": "A7"}, {"code": Decimal(5)}, {"code": True}, {"code": 2}, {"code": "A1"}, {}]
    ordered = sort_records(records, {"code": "asc"})
    assert [r.get("code") for r in ordered] == [2, Decimal(5), "A1", "A7", True, None]
    ordered = sort_records(records, {"code": "desc"})
    assert [r.get("code") for r in ordered] == [True, "A7", "A1", Decimal(5), 2, None]

def test_require_page_rejects_non_integers():
    require_page(10, 0)
    for limit, offset in (("10", 0), (10, "0"), (1.5, 0), (True, 0), (None, 0), (-1, 0), (10, -1)):
        with pytest.raises(ValidationError):
            require_page(limit, offset)
