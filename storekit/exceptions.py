# storekit/exceptions.py
class StorekitError(Exception):
    """Base exception for storekit errors."""
    pass

class ValidationError(StorekitError):
    """Raised for empty or malformed input (records, conditions, bulk shapes)."""
    pass

class ConfigurationError(StorekitError):
    """Raised for an unknown backend kind or missing connection settings."""
    pass

class InvalidActionError(StorekitError):
    """Raised when a transaction action carries an unrecognized method."""
    pass

class BackendError(StorekitError):
    """Raised for general backend operation errors."""
    pass

class TransientBackendError(BackendError):
    """Raised for network/lock errors that may succeed on retry."""
    pass

class DuplicateKeyError(BackendError):
    """Raised when a duplicate key violation occurs."""
    pass

class NullValueError(BackendError):
    """Raised when a null value is inserted into a non-nullable field."""
    pass
