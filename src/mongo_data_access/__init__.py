"""
Generic MongoDB data access for pydantic documents, with per-partition
collections.
"""

from .collection import (
    CollectionNames,
    default_collection_names,
    mongo_collection,
    resolve_collection_name,
)
from .config import MongoDbSettings
from .context import AsyncMongoDbContext, BaseMongoDbContext, MongoDbContext
from .data_access import AsyncMongoDbDataAccess, MongoDbDataAccess, MongoDbDataAccessBase
from .document import Document, PartitionedDocument, StructuredDocument
from .errors import (
    InvalidArgumentError,
    MongoDataAccessError,
    StoreOperationFailed,
    UnsupportedIdentifierTypeError,
)
from .id_generator import generate_id
from .index import IndexCreationOptions

__version__ = "0.1.0"

__all__ = [
    'CollectionNames',
    'default_collection_names',
    'mongo_collection',
    'resolve_collection_name',
    'MongoDbSettings',
    'BaseMongoDbContext',
    'MongoDbContext',
    'AsyncMongoDbContext',
    'MongoDbDataAccessBase',
    'MongoDbDataAccess',
    'AsyncMongoDbDataAccess',
    'Document',
    'StructuredDocument',
    'PartitionedDocument',
    'MongoDataAccessError',
    'InvalidArgumentError',
    'UnsupportedIdentifierTypeError',
    'StoreOperationFailed',
    'generate_id',
    'IndexCreationOptions',
]
