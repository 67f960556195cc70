# storekit/connection.py
"""Process-wide connection handles.

The relational engine (and its pool) and the MongoDB client are created
lazily on first use, keyed by connection string, and shared by every driver
instance in the process. Drivers never dispose of them; call
``dispose_all`` at process shutdown (or between tests).
"""
import threading
from typing import Dict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from pymongo import MongoClient
from storekit.config import Config
from storekit.profile import DatabaseProfile
import logging

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_engines: Dict[str, Engine] = {}
_mongo_clients: Dict[str, MongoClient] = {}

def _create_sqlalchemy_engine(profile: DatabaseProfile) -> Engine:
    """Private: Create a SQLAlchemy engine based on the profile."""
    try:
        if profile.db_type == "mysql":
            return create_engine(
                profile.connection_string,
                pool_size=Config.POOL_SIZE,
                max_overflow=0,
                pool_timeout=profile.pool_timeout,
                pool_pre_ping=True,
                echo=False
            )
        elif profile.db_type == "sqlite":
            return create_engine(profile.connection_string, echo=False)
        else:
            raise ValueError(f"Unsupported db_type for SQLAlchemy: {profile.db_type}")
    except Exception as e:
        logger.error(f"Failed to create SQLAlchemy engine: {e}")
        raise

def get_engine(profile: DatabaseProfile) -> Engine:
    """Return the shared engine for the profile, creating it on first use."""
    key = profile.connection_string
    with _lock:
        engine = _engines.get(key)
        if engine is None:
            engine = _create_sqlalchemy_engine(profile)
            _engines[key] = engine
            logger.info(f"Created shared {profile.db_type} engine for {profile.dbname}")
        return engine

def get_mongo_client(profile: DatabaseProfile) -> MongoClient:
    """Return the shared MongoClient for the profile, creating it on first use."""
    key = profile.connection_string
    with _lock:
        client = _mongo_clients.get(key)
        if client is None:
            client = MongoClient(key)
            _mongo_clients[key] = client
            logger.info(f"Created shared MongoDB client for {profile.dbname}")
        return client

def dispose_all():
    """Close every shared engine and client."""
    with _lock:
        for engine in _engines.values():
            engine.dispose()
        for client in _mongo_clients.values():
            client.close()
        _engines.clear()
        _mongo_clients.clear()
