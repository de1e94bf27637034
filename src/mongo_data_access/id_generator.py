"""
Identifier generation for documents inserted without an id.
"""
from typing import Any
from uuid import UUID, uuid4

from bson import ObjectId

from .errors import UnsupportedIdentifierTypeError

NIL_UUID = UUID(int=0)


def generate_id(id_type: Any) -> Any:
    """
    Generate a new identifier of the given type.

    Args:
        id_type: ``UUID``, ``str`` or ``bson.ObjectId``

    Returns:
        A fresh identifier of that type

    Raises:
        UnsupportedIdentifierTypeError: For any other type
    """
    if id_type is UUID:
        return uuid4()
    if id_type is str:
        return str(uuid4())
    if id_type is ObjectId:
        return ObjectId()
    raise UnsupportedIdentifierTypeError(id_type)


def is_missing_id(value: Any) -> bool:
    """Check whether an identifier still has to be assigned."""
    return value is None or value == NIL_UUID or value == ""
