import pytest
from storekit import ServiceFactory, StorageDriver, get_instance
from storekit.adapters.dynamodb_adapter import DynamoDBAdapter
from storekit.adapters.mongodb_adapter import MongoDBAdapter
from storekit.adapters.mysql_adapter import MySQLAdapter
from storekit.exceptions import ConfigurationError
from storekit.factory import AdapterRegistry

def test_unknown_backend_is_rejected():
    with pytest.raises(ConfigurationError) as excinfo:
        ServiceFactory.get_instance("postgres", "accounts")
    assert "postgres" in str(excinfo.value)

def test_supported_types():
    assert AdapterRegistry.supported_types() == ["mysql", "dynamodb", "mongodb"]

def test_mysql_driver(sqlite_engine):
    driver = ServiceFactory.get_instance("mysql", "accounts", engine=sqlite_engine)
    assert isinstance(driver, MySQLAdapter)
    assert isinstance(driver, StorageDriver)
    assert driver.table_name == "accounts"

def test_mongodb_driver(mongo_client):
    driver = get_instance("mongodb", "accounts", client=mongo_client, database="app")
    assert isinstance(driver, MongoDBAdapter)
    assert isinstance(driver, StorageDriver)

def test_dynamodb_driver(dynamo_table):
    driver = get_instance("dynamodb", "accounts", table=dynamo_table)
    assert isinstance(driver, DynamoDBAdapter)
    assert isinstance(driver, StorageDriver)

def test_each_call_builds_a_new_driver(sqlite_engine):
    first = ServiceFactory.get_instance("mysql", "accounts", engine=sqlite_engine)
    second = ServiceFactory.get_instance("mysql", "accounts", engine=sqlite_engine)
    assert first is not second
    assert first.engine is second.engine

def test_missing_settings_surface_as_configuration_error(monkeypatch):
    for name in ["DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME"]:
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ConfigurationError):
        ServiceFactory.get_instance("mysql", "accounts")
