# storekit/config.py
import logging
from typing import Optional
from dotenv import dotenv_values

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

class Config:
    """Configuration utilities and constants for the storekit package."""

    # Supported backend kinds
    SUPPORTED_DB_TYPES = ["mysql", "dynamodb", "mongodb"]

    # Required fields for each backend kind
    REQUIRED_ENV_FIELDS = {
        "mysql": ["DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME"],
        "mongodb": ["MONGO_URI", "MONGO_DB_NAME"],
        "dynamodb": []
    }

    # Relational connection pool
    POOL_SIZE = 10
    # None: callers wait for a free connection without limit
    POOL_TIMEOUT = None

    # Retry policy for single relational operations
    RETRY_ATTEMPTS = 3
    RETRY_BASE_DELAY = 1.0

    # Listing defaults
    DEFAULT_LIMIT = 10
    DEFAULT_OFFSET = 0

    DEFAULT_DELETED_FIELD = "isDeleted"

    # Max items in one TransactWriteItems request
    DYNAMODB_TRANSACTION_LIMIT = 100

    @staticmethod
    def validate_env_file(env_path: str, db_type: str) -> bool:
        """Validate that an .env file contains required fields for the specified backend kind."""
        if db_type not in Config.SUPPORTED_DB_TYPES:
            raise ValueError(f"Unsupported db_type: {db_type}")
        env_vars = dotenv_values(env_path)
        required_fields = Config.REQUIRED_ENV_FIELDS[db_type]
        missing_fields = [field for field in required_fields if not env_vars.get(field)]
        if missing_fields:
            logger.error(f"Missing required fields in {env_path}: {missing_fields}")
            return False
        return True

    @staticmethod
    def configure_logging(level: str = "INFO"):
        """Configure the storekit logger level."""
        logging.getLogger("storekit").setLevel(getattr(logging, level.upper(), logging.INFO))
        logger.info(f"Logging level set to {level}")


def setup_logging(log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Set up logging to the console and optionally a file."""
    root = logging.getLogger("storekit")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Stream handler
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stream_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    return root
