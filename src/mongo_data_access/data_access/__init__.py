"""
Data-access facades for sync (pymongo) and async (motor) code.
"""

from .base import MongoDbDataAccessBase
from .sync_access import MongoDbDataAccess
from .async_access import AsyncMongoDbDataAccess

__all__ = [
    'MongoDbDataAccessBase',
    'MongoDbDataAccess',
    'AsyncMongoDbDataAccess',
]
