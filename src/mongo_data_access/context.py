"""
MongoDB contexts: own the client and database handle and resolve the
collection of a document type.

``MongoDbContext`` wraps pymongo for blocking code, ``AsyncMongoDbContext``
wraps motor for asyncio code. Both create their clients with the "standard"
UUID representation and timezone-aware UTC datetimes.
"""
import logging
from datetime import timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from .collection import CollectionNames, default_collection_names, resolve_collection_name
from .config import MongoDbSettings, database_from_connection_string

logger = logging.getLogger(__name__)


def _database_name(connection_string: str, database_name: Optional[str]) -> str:
    name = database_name or database_from_connection_string(connection_string)
    if not name:
        raise ValueError("A database name is required, none found in the connection string")
    return name


class BaseMongoDbContext:
    """
    Shared collection resolution for sync and async contexts.

    Args:
        database: A pymongo ``Database`` or motor ``AsyncIOMotorDatabase``
        collection_names: Declared collection names, defaults to the global table
    """

    def __init__(self, database: Any, collection_names: Optional[CollectionNames] = None):
        self.database = database
        self.client = database.client
        self.collection_names = collection_names if collection_names is not None else default_collection_names

    def get_collection_name(self, document_type: type, partition_key: Optional[str] = None) -> str:
        """Given the document type and the partition key, return its collection name."""
        return resolve_collection_name(document_type, partition_key, self.collection_names)

    def get_collection(self, document_type: type, partition_key: Optional[str] = None) -> Any:
        """Return the driver collection for a document type, partitioned if a key is given."""
        name = self.get_collection_name(document_type, partition_key)
        logger.debug(f"Resolved {document_type.__name__} (partition={partition_key!r}) to '{name}'")
        return self.database.get_collection(name)

    def close(self) -> None:
        """Close the underlying client."""
        if self.client is not None:
            self.client.close()


class MongoDbContext(BaseMongoDbContext):
    """
    Blocking MongoDB context.

    Example:
        ```python
        context = MongoDbContext.from_connection_string("mongodb://localhost:27017/shop")
        orders = context.get_collection(Order, partition_key="tenant-a")
        ```
    """

    database: Database

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        database_name: Optional[str] = None,
        collection_names: Optional[CollectionNames] = None,
        **client_kwargs: Any,
    ) -> "MongoDbContext":
        """
        Create a context with a new client.

        Args:
            connection_string: MongoDB connection string
            database_name: Database name, defaults to the one in the connection string
            collection_names: Declared collection names
            **client_kwargs: Extra ``MongoClient`` options
        """
        name = _database_name(connection_string, database_name)
        client_kwargs.setdefault("uuidRepresentation", "standard")
        client_kwargs.setdefault("tz_aware", True)
        client_kwargs.setdefault("tzinfo", timezone.utc)
        client = MongoClient(connection_string, **client_kwargs)
        return cls(client[name], collection_names)

    @classmethod
    def from_client(
        cls,
        client: MongoClient,
        database_name: str,
        collection_names: Optional[CollectionNames] = None,
    ) -> "MongoDbContext":
        """Create a context on an existing client."""
        return cls(client[database_name], collection_names)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[MongoDbSettings] = None,
        collection_names: Optional[CollectionNames] = None,
    ) -> "MongoDbContext":
        """Create a context from settings, read from the environment when not given."""
        settings = settings or MongoDbSettings()
        logger.info(f"Connecting to MongoDB at {settings.connection_display}")
        client = MongoClient(settings.connection_string, **settings.client_kwargs())
        return cls(client[settings.resolved_database_name()], collection_names)

    def get_collection(self, document_type: type, partition_key: Optional[str] = None) -> Collection:
        return super().get_collection(document_type, partition_key)

    def drop_collection(self, document_type: type, partition_key: Optional[str] = None) -> None:
        """Drop the collection of a document type. Use very carefully."""
        name = self.get_collection_name(document_type, partition_key)
        logger.warning(f"Dropping collection '{name}'")
        self.database.drop_collection(name)


class AsyncMongoDbContext(BaseMongoDbContext):
    """
    Asyncio MongoDB context backed by motor.

    Example:
        ```python
        context = AsyncMongoDbContext.from_connection_string("mongodb://localhost:27017/shop")
        await context.drop_collection(Order, partition_key="tenant-a")
        ```
    """

    database: AsyncIOMotorDatabase

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        database_name: Optional[str] = None,
        collection_names: Optional[CollectionNames] = None,
        **client_kwargs: Any,
    ) -> "AsyncMongoDbContext":
        """
        Create a context with a new motor client.

        Args:
            connection_string: MongoDB connection string
            database_name: Database name, defaults to the one in the connection string
            collection_names: Declared collection names
            **client_kwargs: Extra ``AsyncIOMotorClient`` options
        """
        name = _database_name(connection_string, database_name)
        client_kwargs.setdefault("uuidRepresentation", "standard")
        client_kwargs.setdefault("tz_aware", True)
        client_kwargs.setdefault("tzinfo", timezone.utc)
        client = AsyncIOMotorClient(connection_string, **client_kwargs)
        return cls(client[name], collection_names)

    @classmethod
    def from_client(
        cls,
        client: Any,
        database_name: str,
        collection_names: Optional[CollectionNames] = None,
    ) -> "AsyncMongoDbContext":
        """Create a context on an existing motor (or motor-compatible) client."""
        return cls(client[database_name], collection_names)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[MongoDbSettings] = None,
        collection_names: Optional[CollectionNames] = None,
    ) -> "AsyncMongoDbContext":
        """Create a context from settings, read from the environment when not given."""
        settings = settings or MongoDbSettings()
        logger.info(f"Connecting to MongoDB at {settings.connection_display}")
        client = AsyncIOMotorClient(settings.connection_string, **settings.client_kwargs())
        return cls(client[settings.resolved_database_name()], collection_names)

    def get_collection(self, document_type: type, partition_key: Optional[str] = None) -> AsyncIOMotorCollection:
        return super().get_collection(document_type, partition_key)

    async def drop_collection(self, document_type: type, partition_key: Optional[str] = None) -> None:
        """Drop the collection of a document type. Use very carefully."""
        name = self.get_collection_name(document_type, partition_key)
        logger.warning(f"Dropping collection '{name}'")
        await self.database.drop_collection(name)
