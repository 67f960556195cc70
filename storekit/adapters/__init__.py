from storekit.adapters.base import StorageDriver
from storekit.adapters.dynamodb_adapter import DynamoDBAdapter
from storekit.adapters.mongodb_adapter import MongoDBAdapter
from storekit.adapters.mysql_adapter import MySQLAdapter

__all__ = ["StorageDriver", "MySQLAdapter", "DynamoDBAdapter", "MongoDBAdapter"]
