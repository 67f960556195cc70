from storekit.adapters import DynamoDBAdapter, MongoDBAdapter, MySQLAdapter, StorageDriver
from storekit.exceptions import (
    BackendError, ConfigurationError, DuplicateKeyError, InvalidActionError, NullValueError,
    StorekitError, TransientBackendError, ValidationError,
)
from storekit.factory import ServiceFactory, get_instance
from storekit.profile import DatabaseProfile
from storekit.retry import RetryPolicy
from storekit.transactions import ActionType, TransactionAction

__all__ = [
    "ServiceFactory", "get_instance", "StorageDriver",
    "MySQLAdapter", "DynamoDBAdapter", "MongoDBAdapter",
    "DatabaseProfile", "RetryPolicy", "TransactionAction", "ActionType",
    "StorekitError", "ValidationError", "ConfigurationError", "InvalidActionError",
    "BackendError", "TransientBackendError", "DuplicateKeyError", "NullValueError",
]
