"""
Document contract for types stored through the data-access layer.

A storable type exposes a unique ``id`` (stored as MongoDB's ``_id``) and a
schema ``version``. ``StructuredDocument`` is the ready-made pydantic base;
mixing in ``PartitionedDocument`` routes every instance to the collection of
its own partition.

Example:
    ```python
    @mongo_collection("orders")
    class Order(PartitionedDocument, StructuredDocument):
        order_number: int
    ```
"""
from datetime import datetime, timezone
from types import UnionType
from typing import Any, Optional, Protocol, Type, Union, get_args, get_origin, runtime_checkable
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_stored_utc(value: datetime) -> datetime:
    """
    Normalize a datetime the way MongoDB stores it.

    Naive values are taken to be UTC, aware values are converted to UTC, and
    the precision is cut to milliseconds.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def utcnow() -> datetime:
    """Return current UTC datetime, truncated to milliseconds."""
    return as_stored_utc(datetime.now(tz=timezone.utc))


@runtime_checkable
class Document(Protocol):
    """
    Capabilities required of any storable type.

    The facades serialize documents with pydantic, so stored types must also
    be pydantic models; ``StructuredDocument`` satisfies both.
    """

    id: Any
    version: int


class StructuredDocument(BaseModel):
    """
    Basic document that can be stored in MongoDB.

    Attributes:
        id: Unique identifier, stored as ``_id``
        added_at_utc: When the document was created, in UTC
        version: Version of the document schema, managed by the caller
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    id: UUID = Field(default_factory=uuid4, alias="_id")
    added_at_utc: datetime = Field(default_factory=utcnow)
    version: int = Field(default=0, ge=0)

    @field_validator("added_at_utc")
    @classmethod
    def normalize_added_at(cls, value: datetime) -> datetime:
        return as_stored_utc(value)


class PartitionedDocument(BaseModel):
    """
    Capability for documents split across per-partition collections.

    A document type carrying this mixin is stored in
    ``"{partition_key}-{collection name}"``. An empty key means the
    unpartitioned collection.
    """

    partition_key: str = ""


def is_partitioned(document_type: Type[Any]) -> bool:
    """Check whether a document type carries the partition key capability."""
    return isinstance(document_type, type) and issubclass(document_type, PartitionedDocument)


def partition_key_of(document: Any) -> Optional[str]:
    """Get the partition key of a document instance, None if its type is not partitioned."""
    if is_partitioned(type(document)):
        return document.partition_key
    return None


def id_type_of(document_type: Type[Any]) -> Any:
    """
    Get the declared type of a document's ``id`` field.

    ``Optional[X]`` is unwrapped to ``X``. Types that are not pydantic models
    fall back to their class annotations.
    """
    fields = getattr(document_type, "model_fields", None)
    if fields and "id" in fields:
        annotation = fields["id"].annotation
    else:
        annotation = getattr(document_type, "__annotations__", {}).get("id", Any)

    if get_origin(annotation) in (Union, UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation
