# storekit/conditions.py
"""Condition builders.

Pure functions that turn a generic condition mapping (field -> value,
implicitly AND-combined) into each backend's native predicate, plus the
input checks shared by every driver. Nothing here touches a live backend.
"""
import json
import numbers
import re
from decimal import Decimal
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Tuple
from storekit.exceptions import ValidationError

ASCENDING = 1
DESCENDING = -1

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DIRECTIONS = {"asc": ASCENDING, "ascending": ASCENDING, "desc": DESCENDING, "descending": DESCENDING}

LIKE_ESCAPE = "!"

# --- validation -------------------------------------------------------------

def require_record(record: Dict[str, Any]):
    if not isinstance(record, dict) or not record:
        raise ValidationError("Record must be a non-empty mapping")
    _check_keys(record, "Record")

def require_conditions(conditions: Optional[Dict[str, Any]], operation: str):
    """Reject a missing or empty condition set for operations that must not hit a whole table."""
    if not conditions:
        raise ValidationError(f"{operation} requires a non-empty condition set")
    check_conditions(conditions)

def check_conditions(conditions: Optional[Dict[str, Any]]):
    if conditions is None:
        return
    if not isinstance(conditions, dict):
        raise ValidationError("Conditions must be a mapping of field to value")
    _check_keys(conditions, "Condition")

def _check_keys(mapping: Dict[str, Any], what: str):
    for key in mapping:
        if not isinstance(key, str) or not key:
            raise ValidationError(f"{what} field names must be non-empty strings, got {key!r}")

def require_bulk(records: List[Dict[str, Any]]) -> List[str]:
    """Check a bulk insert payload and return its shared column list."""
    if not records:
        raise ValidationError("Bulk insert requires at least one record")
    for record in records:
        require_record(record)
    columns = list(records[0].keys())
    expected = set(columns)
    for index, record in enumerate(records[1:], start=1):
        if set(record.keys()) != expected:
            raise ValidationError(
                f"Bulk insert record {index} has fields {sorted(record.keys())}, expected {sorted(expected)}"
            )
    return columns

def require_page(limit: int, offset: int):
    for name, value in (("limit", limit), ("offset", offset)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
        if value < 0:
            raise ValidationError(f"{name} must be non-negative, got {value}")

def require_amount(amount: Any):
    if isinstance(amount, bool) or not isinstance(amount, numbers.Number):
        raise ValidationError(f"Increment amount must be numeric, got {amount!r}")

def require_search(query: str, fields: List[str]):
    if not isinstance(query, str):
        raise ValidationError("Search query must be a string")
    if not fields:
        raise ValidationError("Search requires at least one field")
    for field in fields:
        if not isinstance(field, str) or not field:
            raise ValidationError(f"Search field names must be non-empty strings, got {field!r}")

def sql_identifier(name: str) -> str:
    """Return name if it is a plain SQL identifier; identifiers cannot be bound as parameters."""
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValidationError(f"Invalid column or table name: {name!r}")
    return name

def normalize_sort(sort: Optional[Dict[str, Any]]) -> List[Tuple[str, int]]:
    """Turn a sort mapping into an ordered list of (field, ASCENDING|DESCENDING)."""
    if not sort:
        return []
    if not isinstance(sort, dict):
        raise ValidationError("Sort must be a mapping of field to direction")
    _check_keys(sort, "Sort")
    normalized = []
    for field, direction in sort.items():
        if isinstance(direction, str) and direction.lower() in _DIRECTIONS:
            normalized.append((field, _DIRECTIONS[direction.lower()]))
        elif not isinstance(direction, bool) and direction in (ASCENDING, DESCENDING):
            normalized.append((field, direction))
        else:
            raise ValidationError(f"Invalid sort direction for {field}: {direction!r}")
    return normalized

# --- relational -------------------------------------------------------------

def encode_sql_value(value: Any) -> Any:
    """Objects are stored as JSON text."""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value

def build_sql_where(conditions: Optional[Dict[str, Any]], prefix: str = "w") -> Tuple[str, Dict[str, Any]]:
    """Build ``"a = :w0 AND b = :w1"`` and its bind parameters.

    A ``None`` value becomes ``IS NULL``. An empty condition set gives an
    empty clause.
    """
    clauses = []
    params: Dict[str, Any] = {}
    for index, (field, value) in enumerate((conditions or {}).items()):
        column = sql_identifier(field)
        if value is None:
            clauses.append(f"{column} IS NULL")
            continue
        name = f"{prefix}{index}"
        clauses.append(f"{column} = :{name}")
        params[name] = encode_sql_value(value)
    return " AND ".join(clauses), params

def build_sql_insert(table_name: str, columns: List[str], records: List[Dict[str, Any]]) -> Tuple[str, Dict[str, Any]]:
    """One multi-row INSERT sharing the column list of the first record."""
    column_list = ", ".join(sql_identifier(column) for column in columns)
    rows = []
    params: Dict[str, Any] = {}
    for row_index, record in enumerate(records):
        placeholders = []
        for col_index, column in enumerate(columns):
            name = f"r{row_index}_{col_index}"
            placeholders.append(f":{name}")
            params[name] = encode_sql_value(record[column])
        rows.append(f"({', '.join(placeholders)})")
    return f"INSERT INTO {sql_identifier(table_name)} ({column_list}) VALUES {', '.join(rows)}", params

def build_sql_set(data: Dict[str, Any], prefix: str = "s") -> Tuple[str, Dict[str, Any]]:
    assignments = []
    params: Dict[str, Any] = {}
    for index, (field, value) in enumerate(data.items()):
        name = f"{prefix}{index}"
        assignments.append(f"{sql_identifier(field)} = :{name}")
        params[name] = encode_sql_value(value)
    return ", ".join(assignments), params

def build_sql_increment(deltas: Dict[str, Any], prefix: str = "i") -> Tuple[str, Dict[str, Any]]:
    """Missing (NULL) fields count as zero."""
    assignments = []
    params: Dict[str, Any] = {}
    for index, (field, amount) in enumerate(deltas.items()):
        column = sql_identifier(field)
        name = f"{prefix}{index}"
        assignments.append(f"{column} = COALESCE({column}, 0) + :{name}")
        params[name] = amount
    return ", ".join(assignments), params

def build_sql_order_by(sort: Optional[Dict[str, Any]]) -> str:
    return ", ".join(
        f"{sql_identifier(field)} {'ASC' if direction == ASCENDING else 'DESC'}"
        for field, direction in normalize_sort(sort)
    )

def escape_like(query: str) -> str:
    return (
        query.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )

def build_sql_search(query: str, fields: List[str], param: str = "q") -> Tuple[str, Dict[str, Any]]:
    """Case-insensitive literal substring match on any of fields."""
    clause = " OR ".join(
        f"LOWER({sql_identifier(field)}) LIKE :{param} ESCAPE '{LIKE_ESCAPE}'" for field in fields
    )
    return clause, {param: f"%{escape_like(query.lower())}%"}

# --- wide column ------------------------------------------------------------

def build_dynamo_filter(conditions: Optional[Dict[str, Any]], prefix: str = "f") -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    """Build a FilterExpression with ``#`` name and ``:`` value placeholders.

    Placeholders keep attribute names that are reserved words usable.
    """
    clauses = []
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    for index, (field, value) in enumerate((conditions or {}).items()):
        name, placeholder = f"#{prefix}{index}", f":{prefix}{index}"
        names[name] = field
        values[placeholder] = value
        clauses.append(f"{name} = {placeholder}")
    return " AND ".join(clauses), names, values

def build_dynamo_search(query: str, fields: List[str], prefix: str = "s") -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    names = {f"#{prefix}{index}": field for index, field in enumerate(fields)}
    expression = " OR ".join(f"contains({name}, :{prefix}q)" for name in names)
    return expression, names, {f":{prefix}q": query}

def build_dynamo_set(data: Dict[str, Any], prefix: str = "u") -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    assignments = []
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    for index, (field, value) in enumerate(data.items()):
        name, placeholder = f"#{prefix}{index}", f":{prefix}{index}"
        names[name] = field
        values[placeholder] = value
        assignments.append(f"{name} = {placeholder}")
    return "SET " + ", ".join(assignments), names, values

def build_dynamo_increment(deltas: Dict[str, Any], prefix: str = "i") -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    assignments = []
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {":zero": 0}
    for index, (field, amount) in enumerate(deltas.items()):
        name, placeholder = f"#{prefix}{index}", f":{prefix}{index}"
        names[name] = field
        values[placeholder] = amount
        assignments.append(f"{name} = if_not_exists({name}, :zero) + {placeholder}")
    return "SET " + ", ".join(assignments), names, values

def build_dynamo_key_exists(key_names: List[str], prefix: str = "k") -> Tuple[str, Dict[str, str]]:
    names = {f"#{prefix}{index}": key for index, key in enumerate(key_names)}
    return " AND ".join(f"attribute_exists({name})" for name in names), names

def _sort_key(value: Any) -> Tuple[int, Any]:
    """Rank by type first (numbers, strings, binary, booleans, anything else), then by value."""
    if isinstance(value, bool):
        return 3, value
    if isinstance(value, (numbers.Real, Decimal)):
        return 0, value
    if isinstance(value, str):
        return 1, value
    if isinstance(value, (bytes, bytearray)):
        return 2, bytes(value)
    return 4, json.dumps(value, sort_keys=True, default=str)

def sort_records(records: List[Dict[str, Any]], sort: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort in memory by each key in order; records missing a key sort last.

    Values of different types never compare directly: numbers come before
    strings, strings before binary, then booleans, then everything else.
    """
    keys = normalize_sort(sort)
    if not keys:
        return list(records)

    def compare(left: Dict[str, Any], right: Dict[str, Any]) -> int:
        for field, direction in keys:
            a, b = left.get(field), right.get(field)
            if a == b:
                continue
            if a is None:
                return 1
            if b is None:
                return -1
            key_a, key_b = _sort_key(a), _sort_key(b)
            if key_a == key_b:
                continue
            result = -1 if key_a < key_b else 1
            return result * direction
        return 0

    return sorted(records, key=cmp_to_key(compare))

# --- document ---------------------------------------------------------------

def build_mongo_filter(conditions: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """The condition set is already a native equality filter document."""
    return dict(conditions or {})

def build_mongo_search(query: str, fields: List[str]) -> Dict[str, Any]:
    pattern = re.escape(query)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}
