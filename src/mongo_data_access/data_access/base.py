"""
Shared building blocks of the sync and async data-access facades.

Everything here is driver independent: partition routing, identifier
assignment, batch grouping and the construction of filters, sorts, updates
and aggregation pipelines. The facades only add the driver calls.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING

from ..codec import decode_value, encode_value, from_bson
from ..document import id_type_of, partition_key_of
from ..errors import require
from ..id_generator import generate_id, is_missing_id

logger = logging.getLogger(__name__)

# Documents must be pydantic models that also satisfy the ``Document`` protocol.
D = TypeVar('D', bound=BaseModel)

SortSpec = Union[str, Sequence[Tuple[str, int]]]

DEFAULT_TAKE = 50


def field_name(field: str) -> str:
    """Map the document's ``id`` attribute to MongoDB's ``_id`` field."""
    return "_id" if field == "id" else field


def field_path(field: str) -> str:
    """Turn a field name into an aggregation field path (``"$field"``)."""
    return field if field.startswith("$") else f"${field_name(field)}"


def extract_field(raw: Optional[Dict[str, Any]], field: str) -> Any:
    """Read a dotted field from a stored document; None when absent."""
    current: Any = raw
    for key in field_name(field).split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return decode_value(current)


class MongoDbDataAccessBase:
    """
    Base class for the data-access facades.

    Args:
        context: A ``MongoDbContext`` or ``AsyncMongoDbContext``
    """

    def __init__(self, context):
        self.context = context

    # ------------------------------------------------------------------
    # Collections and partitions
    # ------------------------------------------------------------------

    def get_collection(self, document_type: type, partition_key: Optional[str] = None):
        """Get the collection of a document type, partitioned when a key is given."""
        return self.context.get_collection(document_type, partition_key or None)

    def handle_partitioned(self, document: Any):
        """Get the collection a document instance belongs to."""
        return self.get_collection(type(document), partition_key_of(document))

    def group_by_partition(self, documents: Iterable[D]) -> List[Tuple[type, Optional[str], List[D]]]:
        """
        Split documents into (type, partition key, documents) groups.

        Groups keep the order in which their first document appears.
        """
        groups: Dict[Tuple[type, Optional[str]], List[D]] = {}
        for document in documents:
            key = (type(document), partition_key_of(document) or None)
            groups.setdefault(key, []).append(document)
        return [(document_type, partition_key, group) for (document_type, partition_key), group in groups.items()]

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def format_document(self, document: D) -> D:
        """
        Set the document id if it is not set already.

        Raises:
            InvalidArgumentError: If the document is None
            UnsupportedIdentifierTypeError: If no id can be generated for its id type
        """
        require(document, "document")
        if is_missing_id(document.id):
            document.id = generate_id(id_type_of(type(document)))
        return document

    def prepare_documents(self, documents: Optional[Iterable[D]]) -> List[D]:
        """Materialize a batch and format every document in it."""
        require(documents, "documents")
        batch = list(documents)
        for document in batch:
            self.format_document(document)
        return batch

    @staticmethod
    def load(document_type: Type[D], raw: Optional[Dict[str, Any]]) -> Optional[D]:
        """Validate a stored document into its model type."""
        return from_bson(document_type, raw)

    @staticmethod
    def load_projection(raw: Optional[Dict[str, Any]], projection_type: Optional[Type[BaseModel]] = None) -> Any:
        """Return a projected row as a model when a type is given, else as a plain dict."""
        if raw is None:
            return None
        if projection_type is None:
            return decode_value(raw)
        return from_bson(projection_type, raw)

    # ------------------------------------------------------------------
    # Query composition
    # ------------------------------------------------------------------

    @staticmethod
    def build_filter(filter: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Validate and encode a caller-supplied filter."""
        return encode_value(require(filter, "filter"))

    @staticmethod
    def id_filter(document_id: Any) -> Dict[str, Any]:
        return {"_id": encode_value(document_id)}

    @staticmethod
    def ids_filter(document_ids: Iterable[Any]) -> Dict[str, Any]:
        return {"_id": {"$in": [encode_value(document_id) for document_id in document_ids]}}

    @staticmethod
    def set_update(field: str, value: Any) -> Dict[str, Any]:
        """Build a ``$set`` update of a single field."""
        return {"$set": {field_name(field): encode_value(value)}}

    @staticmethod
    def build_update(update: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return encode_value(require(update, "update"))

    @staticmethod
    def sort_spec(sort: SortSpec, ascending: bool = True) -> List[Tuple[str, int]]:
        """
        Build a driver sort specification.

        Args:
            sort: A single field name, or an explicit ``[(field, direction)]`` list
            ascending: Direction used when ``sort`` is a single field
        """
        if isinstance(sort, str):
            return [(field_name(sort), ASCENDING if ascending else DESCENDING)]
        return [(field_name(field), direction) for field, direction in sort]

    @staticmethod
    def sum_pipeline(filter: Dict[str, Any], field: str) -> List[Dict[str, Any]]:
        return [
            {"$match": filter},
            {"$group": {"_id": None, "total": {"$sum": field_path(field)}}},
        ]

    @staticmethod
    def group_pipeline(
        group_key: Any,
        accumulators: Optional[Dict[str, Any]] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Build a ``[$match,] $group`` pipeline.

        Args:
            group_key: A field name, or any aggregation expression used as ``_id``
            accumulators: Output fields of the group stage, e.g. ``{"total": {"$sum": "$qty"}}``
            filter: Optional filter applied before grouping
        """
        key = field_path(group_key) if isinstance(group_key, str) else encode_value(group_key)
        group = {"_id": key}
        group.update(accumulators or {})
        pipeline = []
        if filter is not None:
            pipeline.append({"$match": encode_value(filter)})
        pipeline.append({"$group": group})
        return pipeline
