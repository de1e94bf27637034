"""
Collection name resolution.

A document type is stored in a collection named after the type, unless a
name was declared for it in a ``CollectionNames`` table. Partitioned
collections prefix the partition key: ``"{partition_key}-{name}"``.

The ``-`` delimiter is not escaped. A partition key containing ``-`` can
therefore produce the same physical name as another (key, type) pair, e.g.
``("a-b", Orders)`` and ``("a", "b-Orders")``. Changing this would change the
physical naming of existing collections, so it is left as a known limitation.
"""
import logging
from typing import Any, Callable, Dict, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

PARTITION_DELIMITER = "-"


class CollectionNames:
    """
    Explicit table of document type -> declared collection name.

    Build it at startup, before the first data-access call. Lookups are
    exact on the class; subclasses do not inherit their parent's name.
    """

    def __init__(self, names: Optional[Dict[type, str]] = None):
        self._names: Dict[type, str] = dict(names or {})

    def register(self, document_type: type, name: str) -> None:
        """
        Declare the collection name for a document type.

        Args:
            document_type: The document class
            name: The collection name to use instead of the class name
        """
        if not name:
            raise ValueError("Collection name must not be empty")
        self._names[document_type] = name
        logger.debug(f"Declared collection '{name}' for {document_type.__name__}")

    def unregister(self, document_type: type) -> None:
        """Remove a declared name, if any."""
        self._names.pop(document_type, None)

    def get(self, document_type: type) -> Optional[str]:
        """Get the declared name for a document type, None if not declared."""
        return self._names.get(document_type)

    def __contains__(self, document_type: Any) -> bool:
        return document_type in self._names

    def __len__(self) -> int:
        return len(self._names)


default_collection_names = CollectionNames()


def mongo_collection(name: str, names: Optional[CollectionNames] = None) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator declaring the collection name of a document type.

    Args:
        name: The collection name
        names: Table to register into, defaults to ``default_collection_names``
    """
    table = names if names is not None else default_collection_names

    def decorator(document_type: Type[T]) -> Type[T]:
        table.register(document_type, name)
        return document_type

    return decorator


def resolve_collection_name(
    document_type: type,
    partition_key: Optional[str] = None,
    names: Optional[CollectionNames] = None,
) -> str:
    """
    Compute the physical collection name for a document type.

    Args:
        document_type: The document class
        partition_key: Optional partition key; None or "" means unpartitioned
        names: Declared names table, defaults to ``default_collection_names``

    Returns:
        The declared name or the class name, prefixed by ``"{partition_key}-"``
        when a partition key is given
    """
    table = names if names is not None else default_collection_names
    base_name = table.get(document_type) or document_type.__name__
    if not partition_key:
        return base_name
    return f"{partition_key}{PARTITION_DELIMITER}{base_name}"
