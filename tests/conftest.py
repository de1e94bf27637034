"""
Pytest configuration and shared fixtures for the data-access tests.
"""
from typing import List, Optional
from uuid import UUID

import mongomock
import pytest
from pydantic import Field

from mongo_data_access import (
    AsyncMongoDbContext,
    AsyncMongoDbDataAccess,
    CollectionNames,
    MongoDbContext,
    MongoDbDataAccess,
    PartitionedDocument,
    StructuredDocument,
)


# ============================================================================
# Document types
# ============================================================================

class Customer(StructuredDocument):
    first_name: str
    last_name: str = ""
    score: int = 0
    orders: List[UUID] = Field(default_factory=list)


class Order(PartitionedDocument, StructuredDocument):
    order_number: int
    customer: str = ""
    total: float = 0.0


class Note(StructuredDocument):
    """Document whose id is only assigned on insert."""
    id: Optional[UUID] = Field(default=None, alias="_id")
    text: str = ""


class Ticket(StructuredDocument):
    id: Optional[str] = Field(default=None, alias="_id")
    title: str = ""


class Counter(StructuredDocument):
    id: Optional[int] = Field(default=None, alias="_id")


# ============================================================================
# Async wrappers over mongomock
# ============================================================================

class AsyncCursorDouble:
    """Async-iterable cursor over a mongomock cursor or any iterable."""

    def __init__(self, cursor):
        self._cursor = cursor
        self._iterator = None

    def sort(self, *args, **kwargs):
        self._cursor.sort(*args, **kwargs)
        return self

    def skip(self, count):
        self._cursor.skip(count)
        return self

    def limit(self, count):
        self._cursor.limit(count)
        return self

    def __aiter__(self):
        self._iterator = iter(self._cursor)
        return self

    async def __anext__(self):
        try:
            return next(self._iterator)
        except StopIteration:
            raise StopAsyncIteration

    async def to_list(self, length=None):
        return list(self._cursor)


class AsyncCollectionDouble:
    """Motor-shaped collection: awaitable writes, async cursors."""

    def __init__(self, collection):
        self._collection = collection
        self.name = collection.name

    def find(self, *args, **kwargs):
        return AsyncCursorDouble(self._collection.find(*args, **kwargs))

    def aggregate(self, pipeline, **kwargs):
        return AsyncCursorDouble(self._collection.aggregate(pipeline, **kwargs))

    def list_indexes(self, **kwargs):
        return AsyncCursorDouble(list(self._collection.list_indexes(**kwargs)))

    def __getattr__(self, name):
        method = getattr(self._collection, name)

        async def call(*args, **kwargs):
            return method(*args, **kwargs)

        return call


class AsyncDatabaseDouble:
    def __init__(self, database):
        self._database = database
        self.client = database.client
        self.name = database.name

    def get_collection(self, name):
        return AsyncCollectionDouble(self._database.get_collection(name))

    async def drop_collection(self, name):
        self._database.drop_collection(name)

    def list_collection_names(self):
        return self._database.list_collection_names()


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def collection_names():
    """Declared collection names for the test documents."""
    names = CollectionNames()
    names.register(Customer, "customers")
    names.register(Order, "orders")
    return names


@pytest.fixture
def mongo_client():
    """Fixture for an in-memory mongomock client."""
    return mongomock.MongoClient()


@pytest.fixture
def database(mongo_client):
    return mongo_client["test_db"]


@pytest.fixture
def context(database, collection_names):
    return MongoDbContext(database, collection_names)


@pytest.fixture
def data_access(context):
    return MongoDbDataAccess(context)


@pytest.fixture
def async_context(database, collection_names):
    return AsyncMongoDbContext(AsyncDatabaseDouble(database), collection_names)


@pytest.fixture
def async_data_access(async_context):
    return AsyncMongoDbDataAccess(async_context)
