# storekit/factory.py
from typing import Dict, Type
from storekit.adapters.base import StorageDriver
from storekit.adapters.dynamodb_adapter import DynamoDBAdapter
from storekit.adapters.mongodb_adapter import MongoDBAdapter
from storekit.adapters.mysql_adapter import MySQLAdapter
from storekit.exceptions import ConfigurationError
import logging

logger = logging.getLogger(__name__)

class AdapterRegistry:
    """Maps a backend kind to the driver class that implements it."""

    _adapters: Dict[str, Type] = {
        "mysql": MySQLAdapter,
        "dynamodb": DynamoDBAdapter,
        "mongodb": MongoDBAdapter,
    }

    @classmethod
    def get_adapter_class(cls, db_type: str) -> Type:
        adapter_class = cls._adapters.get(db_type)
        if adapter_class is None:
            raise ConfigurationError(
                f"Invalid database type selected: {db_type!r}. Supported types: {', '.join(cls._adapters)}"
            )
        return adapter_class

    @classmethod
    def supported_types(cls):
        return list(cls._adapters)


class ServiceFactory:
    """The single place where a backend is selected.

    Every call builds a new driver bound to ``table_name``; the relational
    and document drivers still share their process-wide engine/client.
    """

    @staticmethod
    def get_instance(db_type: str, table_name: str, **kwargs) -> StorageDriver:
        """Return a driver for the backend kind.

        Args:
            db_type: "mysql", "dynamodb" or "mongodb".
            table_name: Table or collection the driver is bound to.
            **kwargs: Passed to the driver, e.g. ``profile``, ``engine``, ``client`` or ``table``.

        Raises:
            ConfigurationError: Unknown backend kind or missing connection settings.
        """
        adapter_class = AdapterRegistry.get_adapter_class(db_type)
        logger.debug(f"Creating {adapter_class.__name__} for {table_name}")
        return adapter_class(table_name, **kwargs)


def get_instance(db_type: str, table_name: str, **kwargs) -> StorageDriver:
    """Convenience function, see ServiceFactory.get_instance."""
    return ServiceFactory.get_instance(db_type, table_name, **kwargs)
