"""
Tests for the asyncio MongoDB data-access facade.

Most tests run against mongomock wrapped in motor-shaped async doubles (see
conftest.py). Tests that need a real motor-compatible client use
mongomock-motor and are skipped when it is not installed.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from pymongo.errors import AutoReconnect

from mongo_data_access import (
    AsyncMongoDbContext,
    AsyncMongoDbDataAccess,
    InvalidArgumentError,
    StoreOperationFailed,
    UnsupportedIdentifierTypeError,
)

from conftest import Counter, Customer, Note, Order


@pytest.mark.asyncio
async def test_add_one_and_get_by_id(async_data_access):
    """Test adding and retrieving a document."""
    customer = Customer(first_name="Ada", orders=[uuid4()])

    assert await async_data_access.add_one(customer) == customer.id

    retrieved = await async_data_access.get_by_id(Customer, customer.id)
    assert retrieved == customer
    assert await async_data_access.get_by_id(Customer, uuid4()) is None


@pytest.mark.asyncio
async def test_add_one_assigns_missing_id(async_data_access):
    note = Note(text="hello")
    note_id = await async_data_access.add_one(note)
    assert isinstance(note_id, UUID)
    assert (await async_data_access.get_one(Note, {"text": "hello"})).id == note_id


@pytest.mark.asyncio
async def test_add_one_with_unsupported_id_type(async_data_access):
    with pytest.raises(UnsupportedIdentifierTypeError):
        await async_data_access.add_one(Counter())


@pytest.mark.asyncio
async def test_arguments_are_validated(async_data_access):
    with pytest.raises(InvalidArgumentError):
        await async_data_access.add_one(None)
    with pytest.raises(InvalidArgumentError):
        await async_data_access.add_many(None)
    with pytest.raises(InvalidArgumentError):
        await async_data_access.get_all(Customer, None)
    assert await async_data_access.add_many([]) == []


@pytest.mark.asyncio
async def test_add_many_groups_by_partition(async_data_access, database):
    documents = [
        Order(order_number=1, partition_key="a"),
        Order(order_number=2, partition_key="b"),
        Order(order_number=3, partition_key="a"),
        Customer(first_name="Ada"),
    ]

    ids = await async_data_access.add_many(documents)
    assert ids == [document.id for document in documents]
    assert database["a-orders"].count_documents({}) == 2
    assert database["b-orders"].count_documents({}) == 1
    assert database["customers"].count_documents({}) == 1

    assert await async_data_access.count(Order, {}, partition_key="a") == 2
    assert await async_data_access.any(Order, {"order_number": 2}, partition_key="b")
    assert not await async_data_access.any(Order, {"order_number": 2}, partition_key="a")


@pytest.mark.asyncio
async def test_add_many_aborts_after_failing_group():
    """A failing insert stops the batch and the driver error propagates."""
    first, second = MagicMock(), MagicMock()
    first.insert_many = AsyncMock(side_effect=AutoReconnect("connection lost"))
    second.insert_many = AsyncMock()
    context = MagicMock()
    context.get_collection.side_effect = [first, second]

    access = AsyncMongoDbDataAccess(context)
    documents = [Order(order_number=1, partition_key="a"), Order(order_number=2, partition_key="b")]

    with pytest.raises(StoreOperationFailed):
        await access.add_many(documents)

    first.insert_many.assert_awaited_once()
    second.insert_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_min_max_sum(async_data_access):
    await async_data_access.add_many([Customer(first_name=f"c{i}", score=s) for i, s in enumerate([3, 1, 4, 1, 5])])

    assert await async_data_access.get_max_value(Customer, {}, "score") == 5
    assert await async_data_access.get_min_value(Customer, {}, "score") == 1
    assert (await async_data_access.get_by_max(Customer, {}, "score")).first_name == "c4"
    assert (await async_data_access.get_by_min(Customer, {}, "score")).score == 1
    assert await async_data_access.sum_by(Customer, {}, "score") == 14
    assert await async_data_access.sum_by(Customer, {"score": 100}, "score") == 0


@pytest.mark.asyncio
async def test_group_and_project(async_data_access):
    await async_data_access.add_many([
        Customer(first_name="Ada", last_name="X"),
        Customer(first_name="Bob", last_name="X"),
        Customer(first_name="Cy", last_name="Y"),
    ])

    rows = await async_data_access.group_by(Customer, "last_name", {"count": {"$sum": 1}})
    assert sorted((row["_id"], row["count"]) for row in rows) == [("X", 2), ("Y", 1)]

    names = await async_data_access.project_many(Customer, {"last_name": "X"}, {"first_name": 1, "_id": 0})
    assert sorted(row["first_name"] for row in names) == ["Ada", "Bob"]
    assert await async_data_access.project_one(Customer, {"first_name": "Cy"}, {"last_name": 1, "_id": 0}) == {"last_name": "Y"}


@pytest.mark.asyncio
async def test_sorted_pagination(async_data_access):
    await async_data_access.add_many([Customer(first_name=f"c{i}", score=i) for i in range(10)])

    first = await async_data_access.get_sorted_paginated(Customer, {}, "score", skip=0, take=5)
    second = await async_data_access.get_sorted_paginated(Customer, {}, "score", skip=5, take=5)
    assert [c.score for c in first] == [0, 1, 2, 3, 4]
    assert [c.score for c in second] == [5, 6, 7, 8, 9]

    rows = []
    async for raw in async_data_access.get_cursor(Customer, {"score": {"$gt": 7}}):
        rows.append(raw["score"])
    assert sorted(rows) == [8, 9]


@pytest.mark.asyncio
async def test_update_and_delete(async_data_access):
    order = Order(order_number=1, partition_key="a")
    other = Order(order_number=2, partition_key="b")
    await async_data_access.add_many([order, other])

    assert await async_data_access.update_field(order, "total", 12.5)
    assert (await async_data_access.get_by_id(Order, order.id, partition_key="a")).total == 12.5

    order.customer = "ada"
    assert await async_data_access.update_one(order)
    assert await async_data_access.update_field_where(Order, {"order_number": 2}, "customer", "bob", partition_key="b")
    assert await async_data_access.update_many_field(Order, {}, "total", 1.0, partition_key="b") == 1

    assert await async_data_access.delete_many([order, other]) == 2
    assert await async_data_access.get_all(Order, {}, partition_key="a") == []
    assert await async_data_access.delete_one(order) == 0


@pytest.mark.asyncio
async def test_delete_where(async_data_access):
    await async_data_access.add_many([Customer(first_name="Ada") for _ in range(3)])

    assert await async_data_access.delete_one_where(Customer, {"first_name": "Ada"}) == 1
    assert await async_data_access.delete_many_where(Customer, {"first_name": "Ada"}) == 2
    assert await async_data_access.count(Customer, {}) == 0


@pytest.mark.asyncio
async def test_indexes_and_drop_collection(async_data_access, database):
    await async_data_access.add_one(Customer(first_name="Ada"))

    assert await async_data_access.create_ascending_index(Customer, "score") == "score_1"
    assert set(await async_data_access.get_index_names(Customer)) == {"_id_", "score_1"}

    await async_data_access.drop_index(Customer, "score_1")
    assert await async_data_access.get_index_names(Customer) == ["_id_"]

    await async_data_access.drop_collection(Customer)
    assert "customers" not in database.list_collection_names()


@pytest.mark.asyncio
async def test_with_mongomock_motor(collection_names):
    mongomock_motor = pytest.importorskip("mongomock_motor")
    client = mongomock_motor.AsyncMongoMockClient()
    context = AsyncMongoDbContext.from_client(client, "test_db", collection_names)
    access = AsyncMongoDbDataAccess(context)

    order = Order(order_number=7, partition_key="t1")
    await access.add_one(order)

    assert context.get_collection_name(Order, "t1") == "t1-orders"
    retrieved = await access.get_by_id(Order, order.id, partition_key="t1")
    assert retrieved.order_number == 7


@pytest.mark.asyncio
async def test_cancellation_propagates_and_skips_later_groups():
    """CancelledError raised by the driver leaves the facade unchanged."""
    first, second = MagicMock(), MagicMock()
    first.delete_many = AsyncMock(side_effect=asyncio.CancelledError)
    second.delete_many = AsyncMock()
    context = MagicMock()
    context.get_collection.side_effect = [first, second]

    access = AsyncMongoDbDataAccess(context)
    documents = [Order(order_number=1, partition_key="a"), Order(order_number=2, partition_key="b")]

    with pytest.raises(asyncio.CancelledError):
        await access.delete_many(documents)

    first.delete_many.assert_awaited_once()
    second.delete_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_field_leaves_other_fields_unchanged(async_data_access):
    order = Order(order_number=3, customer="ada", total=4.0, partition_key="a")
    await async_data_access.add_one(order)

    assert await async_data_access.update_field(order, "total", 8.0)

    retrieved = await async_data_access.get_by_id(Order, order.id, partition_key="a")
    assert retrieved.total == 8.0
    assert retrieved.model_dump(exclude={"total"}) == order.model_dump(exclude={"total"})
