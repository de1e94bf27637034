"""
Tests for the document contract, id generation and BSON encoding.
"""
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from bson import ObjectId
from bson.binary import Binary, UUID_SUBTYPE

from mongo_data_access import Document, IndexCreationOptions, UnsupportedIdentifierTypeError, generate_id
from mongo_data_access.codec import decode_value, encode_value, from_bson, to_bson
from mongo_data_access.document import as_stored_utc, id_type_of, is_partitioned, partition_key_of, utcnow
from mongo_data_access.id_generator import is_missing_id
from mongo_data_access.index import index_kwargs

from conftest import Counter, Customer, Note, Order, Ticket


class TestDocumentContract:

    def test_structured_document_defaults(self):
        customer = Customer(first_name="Ada")
        assert isinstance(customer.id, UUID)
        assert customer.version == 0
        assert customer.added_at_utc.tzinfo is not None
        assert isinstance(customer, Document)

    def test_version_must_not_be_negative(self):
        with pytest.raises(ValueError):
            Customer(first_name="Ada", version=-1)

    def test_partition_capability_is_type_level(self):
        assert is_partitioned(Order)
        assert not is_partitioned(Customer)
        assert partition_key_of(Order(order_number=1, partition_key="t1")) == "t1"
        assert partition_key_of(Customer(first_name="Ada")) is None

    def test_id_type_unwraps_optional(self):
        assert id_type_of(Customer) is UUID
        assert id_type_of(Note) is UUID
        assert id_type_of(Ticket) is str
        assert id_type_of(Counter) is int


class TestIdGenerator:

    def test_generates_supported_types(self):
        assert isinstance(generate_id(UUID), UUID)
        assert isinstance(generate_id(str), str)
        assert UUID(generate_id(str))
        assert isinstance(generate_id(ObjectId), ObjectId)

    def test_unsupported_type_raises(self):
        with pytest.raises(UnsupportedIdentifierTypeError) as exc_info:
            generate_id(int)
        assert exc_info.value.id_type is int
        assert "int is not a supported Id type" in str(exc_info.value)

    def test_missing_ids(self):
        assert is_missing_id(None)
        assert is_missing_id(UUID(int=0))
        assert is_missing_id("")
        assert not is_missing_id(uuid4())
        assert not is_missing_id(ObjectId())


class TestCodec:

    def test_uuid_encoded_as_standard_binary(self):
        value = uuid4()
        encoded = encode_value({"a": [value], "b": {"c": value}})
        assert isinstance(encoded["a"][0], Binary)
        assert encoded["a"][0].subtype == UUID_SUBTYPE
        assert decode_value(encoded) == {"a": [value], "b": {"c": value}}

    def test_document_uses_underscore_id(self):
        customer = Customer(first_name="Ada", orders=[uuid4()])
        raw = to_bson(customer)
        assert "_id" in raw
        assert "id" not in raw
        assert raw["_id"] == Binary.from_uuid(customer.id)

        loaded = from_bson(Customer, raw)
        assert loaded == customer

    def test_unknown_stored_fields_are_ignored(self):
        customer = Customer(first_name="Ada")
        raw = to_bson(customer)
        raw["legacy_field"] = 1
        assert from_bson(Customer, raw).first_name == "Ada"

    def test_from_bson_none(self):
        assert from_bson(Customer, None) is None

    def test_naive_stored_datetime_loads_as_utc(self):
        customer = Customer(first_name="Ada")
        raw = to_bson(customer)
        raw["added_at_utc"] = customer.added_at_utc.replace(tzinfo=None)

        loaded = from_bson(Customer, raw)
        assert loaded.added_at_utc == customer.added_at_utc
        assert loaded.added_at_utc.tzinfo is not None
        assert loaded == customer


class TestDatetimes:

    def test_utcnow_has_millisecond_precision(self):
        now = utcnow()
        assert now.tzinfo is not None
        assert now.microsecond % 1000 == 0

    def test_added_at_is_normalized(self):
        given = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone(timedelta(hours=2)))
        customer = Customer(first_name="Ada", added_at_utc=given)
        assert customer.added_at_utc == datetime(2024, 5, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)
        assert customer.added_at_utc.utcoffset() == timedelta(0)

    def test_naive_datetime_taken_as_utc(self):
        assert as_stored_utc(datetime(2024, 1, 1, 8, 30)) == datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)


class TestIndexOptions:

    def test_unset_options_are_omitted(self):
        assert index_kwargs(None) == {}
        assert IndexCreationOptions().to_index_kwargs() == {}

    def test_options_are_mapped_to_driver_names(self):
        options = IndexCreationOptions(
            unique=True,
            sparse=False,
            name="by_email",
            expire_after=timedelta(hours=1),
            version=2,
            sphere_index_version=3,
            text_index_version=3,
            default_language="english",
            language_override="lang",
            min=-90.0,
            max=90.0,
            bits=26,
            background=True,
        )
        assert options.to_index_kwargs() == {
            "unique": True,
            "sparse": False,
            "name": "by_email",
            "expireAfterSeconds": 3600,
            "v": 2,
            "2dsphereIndexVersion": 3,
            "textIndexVersion": 3,
            "default_language": "english",
            "language_override": "lang",
            "min": -90.0,
            "max": 90.0,
            "bits": 26,
            "background": True,
        }
