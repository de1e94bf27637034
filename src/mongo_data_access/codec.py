"""
Conversion between pydantic documents and BSON-ready dictionaries.

UUIDs are written as BSON Binary subtype 4 ("standard" representation), never
the legacy subtype 3, whatever ``uuidRepresentation`` the client was created
with. The same encoding is applied to filters and updates so that UUID values
compare equal to what was stored.

Datetimes are read back as aware UTC values, whether or not the client was
created with ``tz_aware=True``.
"""
from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar
from uuid import UUID

from bson.binary import Binary, UUID_SUBTYPE
from pydantic import BaseModel

from .document import as_stored_utc

M = TypeVar('M', bound=BaseModel)


def encode_value(value: Any) -> Any:
    """Recursively encode UUIDs in a value as standard BSON binaries."""
    if isinstance(value, UUID):
        return Binary.from_uuid(value)
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def decode_value(value: Any) -> Any:
    """Recursively decode standard BSON binaries back into UUIDs and datetimes into UTC."""
    if isinstance(value, Binary) and value.subtype == UUID_SUBTYPE:
        return value.as_uuid()
    if isinstance(value, datetime):
        return as_stored_utc(value)
    if isinstance(value, dict):
        return {key: decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def to_bson(document: BaseModel) -> Dict[str, Any]:
    """Serialize a document for storage, ``id`` becoming ``_id``."""
    return encode_value(document.model_dump(by_alias=True))


def from_bson(model_type: Type[M], raw: Optional[Dict[str, Any]]) -> Optional[M]:
    """Validate a stored dictionary into ``model_type``; None stays None."""
    if raw is None:
        return None
    return model_type.model_validate(decode_value(raw))
