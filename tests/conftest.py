import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool
from storekit.adapters.dynamodb_adapter import DynamoDBAdapter
from storekit.adapters.mongodb_adapter import MongoDBAdapter
from storekit.adapters.mysql_adapter import MySQLAdapter
from storekit.retry import RetryPolicy

ACCOUNTS_DDL = """
    CREATE TABLE accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(255) UNIQUE,
        email VARCHAR(255),
        balance INTEGER,
        x INTEGER,
        isDeleted BOOLEAN DEFAULT 0
    )
"""

@pytest.fixture
def sleeps():
    return []

@pytest.fixture
def retry_policy(sleeps):
    return RetryPolicy(sleep=sleeps.append)

@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text(ACCOUNTS_DDL))
    yield engine
    engine.dispose()

@pytest.fixture
def accounts(sqlite_engine, retry_policy):
    return MySQLAdapter("accounts", engine=sqlite_engine, retry_policy=retry_policy)

@pytest.fixture
def dynamo_table():
    table = MagicMock()
    table.key_schema = [{"AttributeName": "id", "KeyType": "HASH"}]
    table.scan.return_value = {"Items": [], "Count": 0}
    return table

@pytest.fixture
def dynamo(dynamo_table):
    return DynamoDBAdapter("accounts", table=dynamo_table)

@pytest.fixture
def mongo_client():
    return MagicMock()

@pytest.fixture
def mongo(mongo_client):
    return MongoDBAdapter("accounts", client=mongo_client, database="app")
