# storekit/profile.py
import os
from dataclasses import dataclass
from typing import Dict, List, Optional
from dotenv import dotenv_values
from sqlalchemy.engine import URL
from storekit.config import Config
from storekit.exceptions import ConfigurationError
import logging

logger = logging.getLogger(__name__)

def _load_env(env_file: Optional[str]) -> Dict[str, Optional[str]]:
    """Process environment, overlaid by the values of env_file when given."""
    env_vars: Dict[str, Optional[str]] = dict(os.environ)
    if env_file:
        if not os.path.exists(env_file):
            raise ConfigurationError(f"Environment file not found: {env_file}")
        env_vars.update(dotenv_values(env_file))
    return env_vars

def _require(env_vars: Dict[str, Optional[str]], db_type: str, env_file: Optional[str]):
    missing: List[str] = [name for name in Config.REQUIRED_ENV_FIELDS[db_type] if not env_vars.get(name)]
    if missing:
        source = env_file or "environment"
        logger.error(f"Missing {db_type} settings in {source}: {missing}")
        raise ConfigurationError(f"{', '.join(missing)} must be provided in {source}")

@dataclass
class DatabaseProfile:
    connection_string: Optional[str] = None
    host: Optional[str] = None
    port: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    dbname: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    pool_timeout: Optional[float] = None
    db_type: Optional[str] = None

    @staticmethod
    def mysql(env_file: Optional[str] = None) -> 'DatabaseProfile':
        env_vars = _load_env(env_file)
        _require(env_vars, "mysql", env_file)
        host = env_vars["DB_HOST"]
        port = env_vars.get("DB_PORT") or "3306"
        username = env_vars["DB_USER"]
        password = env_vars["DB_PASSWORD"]
        dbname = env_vars["DB_NAME"]
        try:
            raw_timeout = env_vars.get("DB_POOL_TIMEOUT")
            pool_timeout = float(raw_timeout) if raw_timeout else Config.POOL_TIMEOUT
            url = URL.create(
                "mysql+pymysql",
                username=username,
                password=password,
                host=host,
                port=int(port),
                database=dbname,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid mysql settings: {e}") from e
        return DatabaseProfile(
            connection_string=url.render_as_string(hide_password=False),
            host=host,
            port=port,
            username=username,
            password=password,
            dbname=dbname,
            pool_timeout=pool_timeout,
            db_type="mysql"
        )

    @staticmethod
    def mongodb(env_file: Optional[str] = None) -> 'DatabaseProfile':
        env_vars = _load_env(env_file)
        _require(env_vars, "mongodb", env_file)
        return DatabaseProfile(
            connection_string=env_vars["MONGO_URI"],
            dbname=env_vars["MONGO_DB_NAME"],
            db_type="mongodb"
        )

    @staticmethod
    def dynamodb(env_file: Optional[str] = None) -> 'DatabaseProfile':
        env_vars = _load_env(env_file)
        return DatabaseProfile(
            region=env_vars.get("AWS_REGION") or env_vars.get("AWS_DEFAULT_REGION"),
            endpoint_url=env_vars.get("DYNAMODB_ENDPOINT_URL"),
            db_type="dynamodb"
        )

    @staticmethod
    def sqlite(path: str = ":memory:") -> 'DatabaseProfile':
        return DatabaseProfile(
            connection_string=f"sqlite:///{path}",
            dbname="test_db",
            db_type="sqlite"
        )

    @staticmethod
    def for_type(db_type: str, env_file: Optional[str] = None) -> 'DatabaseProfile':
        """Load the profile for a backend kind."""
        loaders = {
            "mysql": DatabaseProfile.mysql,
            "mongodb": DatabaseProfile.mongodb,
            "dynamodb": DatabaseProfile.dynamodb,
        }
        if db_type not in loaders:
            raise ConfigurationError(f"Unsupported db_type: {db_type}")
        return loaders[db_type](env_file)
