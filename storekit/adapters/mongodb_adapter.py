from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.errors import AutoReconnect, ConnectionFailure, PyMongoError
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from typing import Any, Dict, List, Optional, Sequence
from storekit.conditions import (
    build_mongo_filter, build_mongo_search, check_conditions, require_amount, require_bulk,
    require_conditions, require_page, require_record, require_search, normalize_sort,
)
from storekit.config import Config
from storekit.connection import get_mongo_client
from storekit.exceptions import BackendError, DuplicateKeyError, TransientBackendError
from storekit.profile import DatabaseProfile
from storekit.transactions import ActionLike, ActionType, TransactionAction, parse_actions
import logging

logger = logging.getLogger(__name__)

class MongoDBAdapter:
    """Document driver on a pymongo collection.

    All instances in the process share one MongoClient per URI unless a
    client is passed in. Transactions run in a session of their own.
    """

    def __init__(self, collection_name: str, profile: Optional[DatabaseProfile] = None,
                 client: Optional[MongoClient] = None, database: Optional[str] = None):
        self.table_name = collection_name
        if profile is None and (client is None or database is None):
            profile = DatabaseProfile.mongodb()
        self.profile = profile
        self.client = client or get_mongo_client(profile)
        self.db = self.client[database or profile.dbname]
        self.collection = self.db[collection_name]

    def _handle_db_error(self, e: PyMongoError, operation: str):
        logger.error(f"{operation} failed on {self.table_name}: {e}")
        if isinstance(e, MongoDuplicateKeyError):
            raise DuplicateKeyError(f"Duplicate key error during {operation} on {self.table_name}: {e}") from e
        if isinstance(e, (AutoReconnect, ConnectionFailure)):
            raise TransientBackendError(f"Transient error during {operation} on {self.table_name}: {e}") from e
        raise BackendError(f"Error during {operation} on {self.table_name}: {e}") from e

    def create(self, record: Dict[str, Any]) -> str:
        require_record(record)
        try:
            # insert_one adds _id to the document it is given
            result = self.collection.insert_one(dict(record))
            return str(result.inserted_id)
        except PyMongoError as e:
            self._handle_db_error(e, "create")

    def bulk_insert(self, records: List[Dict[str, Any]]) -> List[str]:
        require_bulk(records)
        try:
            result = self.collection.insert_many([dict(record) for record in records])
            logger.debug(f"Inserted {len(result.inserted_ids)} documents into {self.table_name}")
            return [str(inserted_id) for inserted_id in result.inserted_ids]
        except PyMongoError as e:
            self._handle_db_error(e, "bulk_insert")

    def get(self, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        require_conditions(conditions, "get")
        try:
            return self.collection.find_one(build_mongo_filter(conditions))
        except PyMongoError as e:
            self._handle_db_error(e, "get")

    def get_all(self, conditions: Optional[Dict[str, Any]] = None, sort: Optional[Dict[str, Any]] = None,
                limit: int = Config.DEFAULT_LIMIT, offset: int = Config.DEFAULT_OFFSET) -> List[Dict[str, Any]]:
        check_conditions(conditions)
        require_page(limit, offset)
        sort_keys = normalize_sort(sort)
        try:
            cursor = self.collection.find(build_mongo_filter(conditions))
            if sort_keys:
                cursor = cursor.sort(sort_keys)
            # limit(0) means no limit to pymongo
            if limit == 0:
                return []
            return list(cursor.skip(offset).limit(limit))
        except PyMongoError as e:
            self._handle_db_error(e, "get_all")

    def update(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        require_record(data)
        require_conditions(conditions, "update")
        try:
            result = self.collection.update_many(build_mongo_filter(conditions), {"$set": data})
            return result.matched_count > 0
        except PyMongoError as e:
            self._handle_db_error(e, "update")

    def increment(self, field: str, amount: Any, conditions: Dict[str, Any]) -> bool:
        require_amount(amount)
        require_conditions(conditions, "increment")
        try:
            result = self.collection.update_many(build_mongo_filter(conditions), {"$inc": {field: amount}})
            return result.matched_count > 0
        except PyMongoError as e:
            self._handle_db_error(e, "increment")

    def delete(self, conditions: Dict[str, Any]) -> bool:
        require_conditions(conditions, "delete")
        try:
            return self.collection.delete_many(build_mongo_filter(conditions)).deleted_count > 0
        except PyMongoError as e:
            self._handle_db_error(e, "delete")

    def soft_delete(self, conditions: Dict[str, Any], deleted_field: str = Config.DEFAULT_DELETED_FIELD) -> bool:
        return self.update({deleted_field: True}, conditions)

    def count(self, conditions: Optional[Dict[str, Any]] = None) -> int:
        check_conditions(conditions)
        try:
            return self.collection.count_documents(build_mongo_filter(conditions))
        except PyMongoError as e:
            self._handle_db_error(e, "count")

    def exists(self, conditions: Optional[Dict[str, Any]] = None) -> bool:
        check_conditions(conditions)
        try:
            return self.collection.find_one(build_mongo_filter(conditions), projection={"_id": 1}) is not None
        except PyMongoError as e:
            self._handle_db_error(e, "exists")

    def search(self, query: str, fields: Sequence[str]) -> List[Dict[str, Any]]:
        require_search(query, fields)
        try:
            return list(self.collection.find(build_mongo_search(query, list(fields))))
        except PyMongoError as e:
            self._handle_db_error(e, "search")

    def _apply(self, action: TransactionAction, session: ClientSession):
        if action.method == ActionType.CREATE:
            self.collection.insert_one(dict(action.data), session=session)
        elif action.method == ActionType.UPDATE:
            self.collection.update_many(build_mongo_filter(action.condition), {"$set": action.data}, session=session)
        elif action.method == ActionType.DELETE:
            self.collection.delete_many(build_mongo_filter(action.condition), session=session)
        else:
            self.collection.update_many(build_mongo_filter(action.condition), {"$inc": action.data}, session=session)

    def transaction(self, actions: Sequence[ActionLike]) -> bool:
        parsed = parse_actions(actions)

        def run(session: ClientSession):
            for step, action in enumerate(parsed):
                logger.debug(f"transaction step {step} ({action.method.value}) on {self.table_name}")
                self._apply(action, session)

        try:
            with self.client.start_session() as session:
                session.with_transaction(run)
        except PyMongoError as e:
            logger.error(f"Transaction on {self.table_name} aborted; no action applied")
            self._handle_db_error(e, "transaction")
        logger.debug(f"Transaction on {self.table_name} committed {len(parsed)} actions")
        return True
