from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple
from storekit.conditions import (
    build_sql_increment, build_sql_insert, build_sql_order_by, build_sql_search, build_sql_set,
    build_sql_where, check_conditions, require_amount, require_bulk, require_conditions,
    require_page, require_record, require_search, sql_identifier,
)
from storekit.config import Config
from storekit.connection import get_engine
from storekit.exceptions import BackendError, DuplicateKeyError, NullValueError, TransientBackendError
from storekit.profile import DatabaseProfile
from storekit.retry import RetryPolicy
from storekit.transactions import ActionLike, ActionType, TransactionAction, parse_actions
import logging

logger = logging.getLogger(__name__)

# Lock wait timeout, deadlock, too many connections, can't connect, server gone away, lost connection
TRANSIENT_MYSQL_CODES = {1205, 1213, 1040, 2003, 2006, 2013}

class WriteResult(NamedTuple):
    rowcount: int
    lastrowid: Any

def is_transient(e: SQLAlchemyError) -> bool:
    if isinstance(e, (DisconnectionError, PoolTimeoutError)):
        return True
    if getattr(e, "connection_invalidated", False):
        return True
    if isinstance(e, OperationalError):
        args = getattr(e.orig, "args", ())
        if args and args[0] in TRANSIENT_MYSQL_CODES:
            return True
        return "database is locked" in str(e.orig).lower()
    return False

class MySQLAdapter:
    """Relational driver: parameterized SQL through a shared SQLAlchemy pool.

    ``create``, ``bulk_insert``, ``get`` and ``update`` are retried on
    transient errors. Statements inside ``transaction`` are not; a failed
    transaction is rolled back once and the error raised.
    """

    def __init__(self, table_name: str, profile: Optional[DatabaseProfile] = None,
                 engine: Optional[Engine] = None, retry_policy: Optional[RetryPolicy] = None):
        self.table_name = sql_identifier(table_name)
        if engine is None:
            self.profile = profile or DatabaseProfile.mysql()
            engine = get_engine(self.profile)
        else:
            self.profile = profile
        self.engine = engine
        self.retry_policy = retry_policy or RetryPolicy()

    def _handle_db_error(self, e: SQLAlchemyError, operation: str):
        logger.error(f"{operation} failed on {self.table_name}: {e}")
        if is_transient(e):
            raise TransientBackendError(f"Transient error during {operation} on {self.table_name}: {e}") from e
        if isinstance(e, IntegrityError):
            error_message = str(e.orig).lower()
            if "duplicate" in error_message or "unique constraint" in error_message:
                raise DuplicateKeyError(f"Duplicate key error during {operation} on {self.table_name}: {e.orig}") from e
            if "not-null constraint" in error_message or "not null constraint" in error_message or "cannot be null" in error_message:
                raise NullValueError(f"Null value error during {operation} on {self.table_name}: {e.orig}") from e
        raise BackendError(f"Error during {operation} on {self.table_name}: {e}") from e

    def _write(self, sql: str, params: Dict[str, Any], operation: str) -> WriteResult:
        logger.debug(f"{operation} on {self.table_name}: {sql}")
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(sql), params)
                return WriteResult(result.rowcount, result.lastrowid)
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation)

    def _read(self, sql: str, params: Dict[str, Any], operation: str) -> List[Dict[str, Any]]:
        logger.debug(f"{operation} on {self.table_name}: {sql}")
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql), params)
                return [dict(row._mapping) for row in result.fetchall()]
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation)

    def _where(self, conditions: Optional[Dict[str, Any]]) -> Tuple[str, Dict[str, Any]]:
        clause, params = build_sql_where(conditions)
        return (f" WHERE {clause}" if clause else ""), params

    # --- single operations ------------------------------------------------

    def create(self, record: Dict[str, Any]) -> Any:
        require_record(record)
        return self.retry_policy.run(self._create, record)

    def _create(self, record: Dict[str, Any]) -> Any:
        sql, params = build_sql_insert(self.table_name, list(record.keys()), [record])
        return self._write(sql, params, "create").lastrowid

    def bulk_insert(self, records: List[Dict[str, Any]]) -> int:
        columns = require_bulk(records)
        return self.retry_policy.run(self._bulk_insert, columns, records)

    def _bulk_insert(self, columns: List[str], records: List[Dict[str, Any]]) -> int:
        sql, params = build_sql_insert(self.table_name, columns, records)
        return self._write(sql, params, "bulk_insert").rowcount

    def get(self, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        require_conditions(conditions, "get")
        return self.retry_policy.run(self._get, conditions)

    def _get(self, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        where, params = self._where(conditions)
        rows = self._read(f"SELECT * FROM {self.table_name}{where} LIMIT 1", params, "get")
        return rows[0] if rows else None

    def get_all(self, conditions: Optional[Dict[str, Any]] = None, sort: Optional[Dict[str, Any]] = None,
                limit: int = Config.DEFAULT_LIMIT, offset: int = Config.DEFAULT_OFFSET) -> List[Dict[str, Any]]:
        check_conditions(conditions)
        require_page(limit, offset)
        where, params = self._where(conditions)
        sql = f"SELECT * FROM {self.table_name}{where}"
        order_by = build_sql_order_by(sort)
        if order_by:
            sql += f" ORDER BY {order_by}"
        sql += " LIMIT :limit OFFSET :offset"
        params.update(limit=limit, offset=offset)
        return self._read(sql, params, "get_all")

    def update(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        require_record(data)
        require_conditions(conditions, "update")
        return self.retry_policy.run(self._update, data, conditions)

    def _update(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        sql, params = self._update_statement(data, conditions)
        return self._write(sql, params, "update").rowcount > 0

    def increment(self, field: str, amount: Any, conditions: Dict[str, Any]) -> bool:
        require_amount(amount)
        require_conditions(conditions, "increment")
        sql, params = self._increment_statement({field: amount}, conditions)
        return self._write(sql, params, "increment").rowcount > 0

    def delete(self, conditions: Dict[str, Any]) -> bool:
        require_conditions(conditions, "delete")
        sql, params = self._delete_statement(conditions)
        return self._write(sql, params, "delete").rowcount > 0

    def soft_delete(self, conditions: Dict[str, Any], deleted_field: str = Config.DEFAULT_DELETED_FIELD) -> bool:
        return self.update({deleted_field: True}, conditions)

    def count(self, conditions: Optional[Dict[str, Any]] = None) -> int:
        check_conditions(conditions)
        where, params = self._where(conditions)
        rows = self._read(f"SELECT COUNT(*) AS count FROM {self.table_name}{where}", params, "count")
        return int(rows[0]["count"])

    def exists(self, conditions: Optional[Dict[str, Any]] = None) -> bool:
        return self.count(conditions) > 0

    def search(self, query: str, fields: Sequence[str]) -> List[Dict[str, Any]]:
        require_search(query, fields)
        clause, params = build_sql_search(query, list(fields))
        return self._read(f"SELECT * FROM {self.table_name} WHERE {clause}", params, "search")

    # --- statements shared with transaction ---------------------------------

    def _update_statement(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        assignments, params = build_sql_set(data)
        where, where_params = self._where(conditions)
        params.update(where_params)
        return f"UPDATE {self.table_name} SET {assignments}{where}", params

    def _increment_statement(self, deltas: Dict[str, Any], conditions: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        assignments, params = build_sql_increment(deltas)
        where, where_params = self._where(conditions)
        params.update(where_params)
        return f"UPDATE {self.table_name} SET {assignments}{where}", params

    def _delete_statement(self, conditions: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        where, params = self._where(conditions)
        return f"DELETE FROM {self.table_name}{where}", params

    def _action_statement(self, action: TransactionAction) -> Tuple[str, Dict[str, Any]]:
        if action.method == ActionType.CREATE:
            return build_sql_insert(self.table_name, list(action.data.keys()), [action.data])
        if action.method == ActionType.UPDATE:
            return self._update_statement(action.data, action.condition)
        if action.method == ActionType.DELETE:
            return self._delete_statement(action.condition)
        return self._increment_statement(action.data, action.condition)

    def transaction(self, actions: Sequence[ActionLike]) -> bool:
        parsed = parse_actions(actions)
        statements = [self._action_statement(action) for action in parsed]
        step = 0
        try:
            with self.engine.begin() as conn:
                for step, (sql, params) in enumerate(statements):
                    logger.debug(f"transaction step {step} ({parsed[step].method.value}) on {self.table_name}: {sql}")
                    conn.execute(text(sql), params)
        except SQLAlchemyError as e:
            logger.error(f"Transaction on {self.table_name} rolled back at step {step} ({parsed[step].method.value})")
            self._handle_db_error(e, "transaction")
        logger.debug(f"Transaction on {self.table_name} committed {len(statements)} actions")
        return True
