"""
Exceptions raised by the data-access layer.

Driver failures are never wrapped: anything the MongoDB driver raises reaches
the caller unchanged. ``StoreOperationFailed`` is exported as an alias of the
driver's base exception so callers can catch store failures without importing
pymongo themselves.
"""

from pymongo.errors import PyMongoError


class MongoDataAccessError(Exception):
    """Base class for errors raised by this package."""
    pass


class InvalidArgumentError(MongoDataAccessError, ValueError):
    """Raised when a required document, document list or filter is None."""
    pass


class UnsupportedIdentifierTypeError(MongoDataAccessError, TypeError):
    """Raised when no identifier can be generated for a document's id type."""

    def __init__(self, id_type):
        self.id_type = id_type
        name = getattr(id_type, "__name__", repr(id_type))
        super().__init__(
            f"{name} is not a supported Id type, the Id of the document cannot be set."
        )


StoreOperationFailed = PyMongoError


def require(value, name: str):
    """Return ``value`` or raise InvalidArgumentError when it is None."""
    if value is None:
        raise InvalidArgumentError(f"{name} must not be None")
    return value
