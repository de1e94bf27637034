"""
Asyncio data-access facade over motor.

Mirrors ``MongoDbDataAccess`` method for method. Cancelling the awaiting task
cancels the pending driver call; whether the server stops the operation is
up to MongoDB.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type

from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorCursor
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, HASHED, TEXT

from ..codec import to_bson
from ..context import AsyncMongoDbContext
from ..errors import require
from ..index import IndexCreationOptions, index_kwargs
from .base import DEFAULT_TAKE, D, MongoDbDataAccessBase, SortSpec, extract_field, field_name

logger = logging.getLogger(__name__)


class AsyncMongoDbDataAccess(MongoDbDataAccessBase):
    """
    Generic CRUD, query and index helpers for documents stored with motor.

    Example:
        ```python
        access = AsyncMongoDbDataAccess(AsyncMongoDbContext.from_connection_string(uri))
        await access.add_one(order)
        same = await access.get_by_id(Order, order.id, partition_key=order.partition_key)
        ```
    """

    context: AsyncMongoDbContext

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def add_one(self, document: D, session: Optional[AsyncIOMotorClientSession] = None) -> Any:
        """
        Add a document to its collection, populating the id if necessary.

        Returns:
            The document id
        """
        self.format_document(document)
        await self.handle_partitioned(document).insert_one(to_bson(document), session=session)
        return document.id

    async def add_many(self, documents: Iterable[D], session: Optional[AsyncIOMotorClientSession] = None) -> List[Any]:
        """
        Add documents, one insert per partition.

        Partitions are inserted one after another. A failing insert stops the
        batch; partitions inserted before it stay inserted.

        Returns:
            The document ids
        """
        batch = self.prepare_documents(documents)
        if not batch:
            return []
        for document_type, partition_key, group in self.group_by_partition(batch):
            logger.debug(
                f"Inserting {len(group)} {document_type.__name__} document(s) "
                f"into partition {partition_key!r}"
            )
            await self.get_collection(document_type, partition_key).insert_many(
                [to_bson(document) for document in group], session=session
            )
        return [document.id for document in batch]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, document_type: Type[D], document_id: Any, partition_key: Optional[str] = None) -> Optional[D]:
        """Get a document by its id, None if not found."""
        raw = await self.get_collection(document_type, partition_key).find_one(self.id_filter(document_id))
        return self.load(document_type, raw)

    async def get_one(self, document_type: Type[D], filter: Dict[str, Any], partition_key: Optional[str] = None) -> Optional[D]:
        """Get the first document matching the filter, None if none does."""
        raw = await self.get_collection(document_type, partition_key).find_one(self.build_filter(filter))
        return self.load(document_type, raw)

    def get_cursor(self, document_type: type, filter: Dict[str, Any], partition_key: Optional[str] = None) -> AsyncIOMotorCursor:
        """Get a motor cursor over the raw documents matching the filter."""
        return self.get_collection(document_type, partition_key).find(self.build_filter(filter))

    async def any(self, document_type: type, filter: Dict[str, Any], partition_key: Optional[str] = None) -> bool:
        """Check whether any document matches the filter."""
        count = await self.get_collection(document_type, partition_key).count_documents(
            self.build_filter(filter), limit=1
        )
        return count > 0

    async def get_all(self, document_type: Type[D], filter: Dict[str, Any], partition_key: Optional[str] = None) -> List[D]:
        """Get every document matching the filter."""
        cursor = self.get_collection(document_type, partition_key).find(self.build_filter(filter))
        documents = []
        async for raw in cursor:
            documents.append(self.load(document_type, raw))
        return documents

    async def count(self, document_type: type, filter: Dict[str, Any], partition_key: Optional[str] = None) -> int:
        """Count the documents matching the filter."""
        return await self.get_collection(document_type, partition_key).count_documents(self.build_filter(filter))

    # ------------------------------------------------------------------
    # Min / Max
    # ------------------------------------------------------------------

    async def _first_sorted(
        self,
        document_type: type,
        filter: Dict[str, Any],
        field: str,
        direction: int,
        partition_key: Optional[str],
        projection: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        cursor = (
            self.get_collection(document_type, partition_key)
            .find(self.build_filter(filter), projection)
            .sort(field_name(field), direction)
            .limit(1)
        )
        async for raw in cursor:
            return raw
        return None

    async def get_by_max(self, document_type: Type[D], filter: Dict[str, Any], field: str, partition_key: Optional[str] = None) -> Optional[D]:
        """Get the matching document with the greatest value of ``field``."""
        raw = await self._first_sorted(document_type, filter, field, DESCENDING, partition_key)
        return self.load(document_type, raw)

    async def get_by_min(self, document_type: Type[D], filter: Dict[str, Any], field: str, partition_key: Optional[str] = None) -> Optional[D]:
        """Get the matching document with the smallest value of ``field``."""
        raw = await self._first_sorted(document_type, filter, field, ASCENDING, partition_key)
        return self.load(document_type, raw)

    async def get_max_value(self, document_type: type, filter: Dict[str, Any], field: str, partition_key: Optional[str] = None) -> Any:
        """Get the greatest value of ``field`` among matching documents, None if none match."""
        raw = await self._first_sorted(document_type, filter, field, DESCENDING, partition_key, {field_name(field): 1})
        return extract_field(raw, field)

    async def get_min_value(self, document_type: type, filter: Dict[str, Any], field: str, partition_key: Optional[str] = None) -> Any:
        """Get the smallest value of ``field`` among matching documents, None if none match."""
        raw = await self._first_sorted(document_type, filter, field, ASCENDING, partition_key, {field_name(field): 1})
        return extract_field(raw, field)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    async def sum_by(self, document_type: type, filter: Dict[str, Any], field: str, partition_key: Optional[str] = None) -> Any:
        """Sum ``field`` over the matching documents; 0 when none match."""
        pipeline = self.sum_pipeline(self.build_filter(filter), field)
        async for row in self.get_collection(document_type, partition_key).aggregate(pipeline):
            return row["total"]
        return 0

    async def group_by(
        self,
        document_type: type,
        group_key: Any,
        accumulators: Optional[Dict[str, Any]] = None,
        filter: Optional[Dict[str, Any]] = None,
        partition_key: Optional[str] = None,
        projection_type: Optional[Type[BaseModel]] = None,
    ) -> List[Any]:
        """Group the (optionally filtered) documents; see ``MongoDbDataAccess.group_by``."""
        pipeline = self.group_pipeline(group_key, accumulators, filter)
        groups = []
        async for row in self.get_collection(document_type, partition_key).aggregate(pipeline):
            groups.append(self.load_projection(row, projection_type))
        return groups

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    async def project_one(
        self,
        document_type: type,
        filter: Dict[str, Any],
        projection: Dict[str, Any],
        partition_key: Optional[str] = None,
        projection_type: Optional[Type[BaseModel]] = None,
    ) -> Any:
        """Project the first matching document; None if none match."""
        raw = await self.get_collection(document_type, partition_key).find_one(self.build_filter(filter), projection)
        return self.load_projection(raw, projection_type)

    async def project_many(
        self,
        document_type: type,
        filter: Dict[str, Any],
        projection: Dict[str, Any],
        partition_key: Optional[str] = None,
        projection_type: Optional[Type[BaseModel]] = None,
    ) -> List[Any]:
        """Project every matching document."""
        cursor = self.get_collection(document_type, partition_key).find(self.build_filter(filter), projection)
        rows = []
        async for raw in cursor:
            rows.append(self.load_projection(raw, projection_type))
        return rows

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def get_sorted_paginated(
        self,
        document_type: Type[D],
        filter: Dict[str, Any],
        sort: SortSpec,
        ascending: bool = True,
        skip: int = 0,
        take: int = DEFAULT_TAKE,
        partition_key: Optional[str] = None,
    ) -> List[D]:
        """
        Get a page of matching documents: filter, sort, skip, then take.

        ``take=0`` means no limit, as with the driver's ``limit(0)``.
        """
        cursor = (
            self.get_collection(document_type, partition_key)
            .find(self.build_filter(filter))
            .sort(self.sort_spec(sort, ascending))
            .skip(skip)
            .limit(take)
        )
        documents = []
        async for raw in cursor:
            documents.append(self.load(document_type, raw))
        return documents

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update_one(
        self,
        document: D,
        update: Optional[Dict[str, Any]] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> bool:
        """Replace a document by its id, or apply ``update`` to it when given."""
        require(document, "document")
        collection = self.handle_partitioned(document)
        if update is None:
            result = await collection.replace_one(self.id_filter(document.id), to_bson(document), session=session)
        else:
            result = await collection.update_one(self.id_filter(document.id), self.build_update(update), session=session)
        return result.modified_count == 1

    async def update_field(
        self, document: D, field: str, value: Any, session: Optional[AsyncIOMotorClientSession] = None
    ) -> bool:
        """Set one field of a document, found by its id."""
        require(document, "document")
        result = await self.handle_partitioned(document).update_one(
            self.id_filter(document.id), self.set_update(field, value), session=session
        )
        return result.modified_count == 1

    async def update_field_where(
        self,
        document_type: type,
        filter: Dict[str, Any],
        field: str,
        value: Any,
        partition_key: Optional[str] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> bool:
        """Set one field of the first document matching the filter."""
        result = await self.get_collection(document_type, partition_key).update_one(
            self.build_filter(filter), self.set_update(field, value), session=session
        )
        return result.modified_count == 1

    async def update_many(
        self,
        document_type: type,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        partition_key: Optional[str] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> int:
        """Apply an update document to every matching document; returns the modified count."""
        result = await self.get_collection(document_type, partition_key).update_many(
            self.build_filter(filter), self.build_update(update), session=session
        )
        return result.modified_count

    async def update_many_field(
        self,
        document_type: type,
        filter: Dict[str, Any],
        field: str,
        value: Any,
        partition_key: Optional[str] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> int:
        """Set one field on every matching document; returns the modified count."""
        return await self.update_many(
            document_type, filter, self.set_update(field, value), partition_key, session
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_one(self, document: D, session: Optional[AsyncIOMotorClientSession] = None) -> int:
        """Delete a document by its id; returns the deleted count."""
        require(document, "document")
        result = await self.handle_partitioned(document).delete_one(self.id_filter(document.id), session=session)
        return result.deleted_count

    async def delete_one_where(
        self,
        document_type: type,
        filter: Dict[str, Any],
        partition_key: Optional[str] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> int:
        """Delete the first document matching the filter; returns the deleted count."""
        result = await self.get_collection(document_type, partition_key).delete_one(
            self.build_filter(filter), session=session
        )
        return result.deleted_count

    async def delete_many(self, documents: Iterable[D], session: Optional[AsyncIOMotorClientSession] = None) -> int:
        """
        Delete documents by id, one delete per partition.

        Partitions are processed one after another and a failure stops the
        batch without restoring partitions already deleted.

        Returns:
            The total deleted count over all partitions
        """
        batch = list(require(documents, "documents"))
        deleted = 0
        for document_type, partition_key, group in self.group_by_partition(batch):
            logger.debug(
                f"Deleting {len(group)} {document_type.__name__} document(s) "
                f"from partition {partition_key!r}"
            )
            result = await self.get_collection(document_type, partition_key).delete_many(
                self.ids_filter(document.id for document in group), session=session
            )
            deleted += result.deleted_count
        return deleted

    async def delete_many_where(
        self,
        document_type: type,
        filter: Dict[str, Any],
        partition_key: Optional[str] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> int:
        """Delete every document matching the filter; returns the deleted count."""
        result = await self.get_collection(document_type, partition_key).delete_many(
            self.build_filter(filter), session=session
        )
        return result.deleted_count

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    async def _create_index(
        self,
        document_type: type,
        keys: List[Any],
        options: Optional[IndexCreationOptions],
        partition_key: Optional[str],
    ) -> str:
        collection = self.get_collection(document_type, partition_key)
        name = await collection.create_index(keys, **index_kwargs(options))
        logger.debug(f"Created index '{name}' on '{collection.name}'")
        return name

    async def create_text_index(
        self, document_type: type, field: str, options: Optional[IndexCreationOptions] = None, partition_key: Optional[str] = None
    ) -> str:
        """Create a text index on ``field``; returns the index name."""
        return await self._create_index(document_type, [(field_name(field), TEXT)], options, partition_key)

    async def create_ascending_index(
        self, document_type: type, field: str, options: Optional[IndexCreationOptions] = None, partition_key: Optional[str] = None
    ) -> str:
        """Create an ascending index on ``field``; returns the index name."""
        return await self._create_index(document_type, [(field_name(field), ASCENDING)], options, partition_key)

    async def create_descending_index(
        self, document_type: type, field: str, options: Optional[IndexCreationOptions] = None, partition_key: Optional[str] = None
    ) -> str:
        """Create a descending index on ``field``; returns the index name."""
        return await self._create_index(document_type, [(field_name(field), DESCENDING)], options, partition_key)

    async def create_hashed_index(
        self, document_type: type, field: str, options: Optional[IndexCreationOptions] = None, partition_key: Optional[str] = None
    ) -> str:
        """Create a hashed index on ``field``; returns the index name."""
        return await self._create_index(document_type, [(field_name(field), HASHED)], options, partition_key)

    async def create_combined_text_index(
        self,
        document_type: type,
        fields: Sequence[str],
        options: Optional[IndexCreationOptions] = None,
        partition_key: Optional[str] = None,
    ) -> str:
        """Create one text index over several fields; returns the index name."""
        keys = [(field_name(field), TEXT) for field in require(fields, "fields")]
        return await self._create_index(document_type, keys, options, partition_key)

    async def get_index_names(self, document_type: type, partition_key: Optional[str] = None) -> List[str]:
        """List the index names of a collection."""
        names = []
        async for index in self.get_collection(document_type, partition_key).list_indexes():
            names.append(index["name"])
        return names

    async def drop_index(self, document_type: type, index_name: str, partition_key: Optional[str] = None) -> None:
        """Drop an index by name."""
        await self.get_collection(document_type, partition_key).drop_index(index_name)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def drop_collection(self, document_type: type, partition_key: Optional[str] = None) -> None:
        """Drop the collection of a document type. Use very carefully."""
        await self.context.drop_collection(document_type, partition_key)
