"""Tests for the SQLAlchemy-backed remote receipt store."""

import asyncio
import time
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from receipt_tracker.exceptions import ReceiptNotFoundError, RemoteUnavailableError
from receipt_tracker.models.enums import Category
from receipt_tracker.models.receipt import ReceiptRecord
from receipt_tracker.schemas.receipt import ReceiptItem, ReceiptUpdate
from receipt_tracker.services.remote_store import (
    MISSING_TIMESTAMP,
    RemoteReceiptStore,
    map_to_receipt,
)
from tests.conftest import OTHER_USER_ID, TEST_USER_ID


@pytest.mark.asyncio
async def test_insert_mints_id_and_timestamps(remote, make_receipt):
    """Insert assigns an id when none is given and stamps timestamps."""
    receipt = await remote.insert(make_receipt())

    assert receipt.id
    assert receipt.user_id == TEST_USER_ID
    assert receipt.created_at.tzinfo is not None
    assert receipt.created_at == receipt.updated_at
    assert receipt.items == [ReceiptItem(name="Milk", price=3.5, quantity=2)]


@pytest.mark.asyncio
async def test_insert_preserves_client_id(remote, make_receipt):
    receipt = await remote.insert(make_receipt(id="client-minted-id"))
    assert receipt.id == "client-minted-id"
    assert (await remote.get_by_id("client-minted-id", TEST_USER_ID)) == receipt


@pytest.mark.asyncio
async def test_list_orders_newest_first_and_scopes_by_user(remote, make_receipt):
    base = datetime(2024, 3, 1, tzinfo=UTC)
    await remote.insert(make_receipt(id="old", date=base))
    await remote.insert(make_receipt(id="new", date=base + timedelta(days=3)))
    await remote.insert(make_receipt(id="mid", date=base + timedelta(days=1)))
    await remote.insert(make_receipt(id="other", user_id=OTHER_USER_ID))

    receipts = await remote.list(TEST_USER_ID)

    assert [r.id for r in receipts] == ["new", "mid", "old"]


@pytest.mark.asyncio
async def test_get_by_id_is_scoped_to_owner(remote, make_receipt):
    await remote.insert(make_receipt(id="r1"))

    assert await remote.get_by_id("r1", OTHER_USER_ID) is None
    assert await remote.get_by_id("missing", TEST_USER_ID) is None


@pytest.mark.asyncio
async def test_update_merges_set_fields(remote, make_receipt):
    inserted = await remote.insert(make_receipt(id="r1"))

    updated = await remote.update(
        ReceiptUpdate(
            store_name="Target",
            items=[ReceiptItem(name="Bread", price=2.0, category=Category.FOOD)],
        ),
        "r1",
        TEST_USER_ID,
    )

    assert updated.store_name == "Target"
    assert updated.total_amount == inserted.total_amount
    assert updated.items == [ReceiptItem(name="Bread", price=2.0, category=Category.FOOD)]
    assert updated.created_at == inserted.created_at
    assert updated.updated_at >= inserted.updated_at


@pytest.mark.asyncio
async def test_update_missing_or_foreign_row_raises(remote, make_receipt):
    await remote.insert(make_receipt(id="r1"))

    with pytest.raises(ReceiptNotFoundError):
        await remote.update(ReceiptUpdate(store_name="X"), "missing", TEST_USER_ID)
    with pytest.raises(ReceiptNotFoundError):
        await remote.update(ReceiptUpdate(store_name="X"), "r1", OTHER_USER_ID)


@pytest.mark.asyncio
async def test_upsert_inserts_and_overwrites(remote, make_receipt, service):
    """Upsert writes a locally held receipt and keeps its creation time."""
    service.set_online(False)
    local = await service.add_receipt(make_receipt(id="r1"))

    inserted = await remote.upsert(local)
    assert inserted.created_at == local.created_at

    overwritten = await remote.upsert(local.model_copy(update={"store_name": "Target"}))
    assert overwritten.store_name == "Target"
    assert overwritten.created_at == local.created_at
    assert len(await remote.list(TEST_USER_ID)) == 1


@pytest.mark.asyncio
async def test_upsert_refuses_foreign_row(remote, make_receipt):
    mine = await remote.insert(make_receipt(id="r1"))

    result = await remote.upsert(mine.model_copy(update={"user_id": OTHER_USER_ID}))

    assert result is None
    assert (await remote.get_by_id("r1", TEST_USER_ID)).user_id == TEST_USER_ID


@pytest.mark.asyncio
async def test_delete_is_scoped_and_idempotent(remote, make_receipt):
    await remote.insert(make_receipt(id="r1"))

    await remote.delete("r1", OTHER_USER_ID)
    assert await remote.get_by_id("r1", TEST_USER_ID) is not None

    await remote.delete("r1", TEST_USER_ID)
    await remote.delete("r1", TEST_USER_ID)
    assert await remote.get_by_id("r1", TEST_USER_ID) is None


@pytest.mark.asyncio
async def test_database_errors_are_wrapped():
    """Driver failures surface as RemoteUnavailableError and roll back."""
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT 1", {}, Exception("timeout"))
    store = RemoteReceiptStore(lambda: session)

    with pytest.raises(RemoteUnavailableError):
        await store.list(TEST_USER_ID)

    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_map_to_receipt_tolerates_malformed_items():
    row = ReceiptRecord(
        id="r1",
        user_id=TEST_USER_ID,
        store_name=None,
        date="2024-03-02T00:00:00",
        total_amount=None,
        subtotal=1.0,
        tax_amount=0.0,
        discount_amount=0.0,
        items=[{"name": "Milk", "price": 3.5}, {"price": -1}, "garbage"],
        created_at="2024-03-02T10:00:00+00:00",
        updated_at="2024-03-02T10:00:00+00:00",
    )

    receipt = map_to_receipt(row)

    assert receipt.store_name == "Unknown Store"
    assert receipt.total_amount == 0.0
    assert receipt.date == datetime(2024, 3, 2, tzinfo=UTC)
    assert [item.name for item in receipt.items] == ["Milk"]

    row.items = None
    assert map_to_receipt(row).items == []


def test_map_to_receipt_missing_timestamps_are_stable():
    """Empty timestamp columns map to the same values on every read."""
    row = ReceiptRecord(
        id="r1",
        user_id=TEST_USER_ID,
        store_name="Walmart",
        date="2024-03-02T00:00:00+00:00",
        total_amount=1.0,
        subtotal=1.0,
        tax_amount=0.0,
        discount_amount=0.0,
        items=[],
        created_at=None,
        updated_at="2024-03-02T10:00:00+00:00",
    )

    first = map_to_receipt(row)
    assert first.created_at == first.updated_at == datetime(2024, 3, 2, 10, tzinfo=UTC)

    row.updated_at = None
    assert map_to_receipt(row).created_at == MISSING_TIMESTAMP
    assert map_to_receipt(row) == map_to_receipt(row)


@pytest.mark.asyncio
async def test_malformed_stored_row_is_wrapped(remote, session_factory):
    """A row that cannot be mapped surfaces as RemoteUnavailableError."""
    session = session_factory()
    session.add(
        ReceiptRecord(
            id="r1",
            user_id=TEST_USER_ID,
            store_name="Walmart",
            date="not-a-timestamp",
            total_amount=1.0,
            subtotal=1.0,
            tax_amount=0.0,
            discount_amount=0.0,
            items=[],
            created_at="2024-03-02T10:00:00+00:00",
            updated_at="2024-03-02T10:00:00+00:00",
        )
    )
    session.commit()
    session.close()

    with pytest.raises(RemoteUnavailableError):
        await remote.list(TEST_USER_ID)
    with pytest.raises(RemoteUnavailableError):
        await remote.get_by_id("r1", TEST_USER_ID)


@pytest.mark.asyncio
async def test_queries_do_not_block_the_event_loop(remote, session_factory):
    """Other coroutines keep running while a slow query is in flight."""
    engine = session_factory.kw["bind"]

    def slow_query(*args):
        time.sleep(0.4)

    event.listen(engine, "before_cursor_execute", slow_query)
    gaps = []

    async def heartbeat():
        last = time.monotonic()
        for _ in range(5):
            await asyncio.sleep(0.05)
            now = time.monotonic()
            gaps.append(now - last)
            last = now

    try:
        await asyncio.gather(remote.list(TEST_USER_ID), heartbeat())
    finally:
        event.remove(engine, "before_cursor_execute", slow_query)

    assert max(gaps) < 0.3
