"""Tests for the append-only HistoryRecorder."""

from datetime import datetime, timedelta, timezone

import pytest

from orderdesk.domain.entities.history import SYSTEM_ACTOR
from orderdesk.domain.events import OrderEditedEvent, OrderStatusChangedEvent


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_events_become_one_entry_each(history, store):
    events = [
        OrderStatusChangedEvent(
            order_id="o1", previous_status="pending", new_status="preparing",
            user_id="ana", occurred_at=T0,
        ),
        OrderEditedEvent(
            order_id="o1",
            previous_values={"notes": None},
            new_values={"notes": "Tocar timbre"},
            occurred_at=T0 + timedelta(seconds=5),
        ),
    ]

    entries = await history.record_events(events)

    assert [entry.id for entry in entries] == [event.event_id for event in events]
    assert len(await store.get("history/o1")) == 2


@pytest.mark.asyncio
async def test_entries_come_back_oldest_first(history):
    late = OrderStatusChangedEvent(
        order_id="o1", previous_status="preparing", new_status="ready", occurred_at=T0 + timedelta(minutes=3),
    )
    early = OrderStatusChangedEvent(
        order_id="o1", previous_status="pending", new_status="preparing", user_id="ana", occurred_at=T0,
    )
    await history.record_events([late, early])

    entries = await history.entries_for("o1")

    assert [entry.new_value for entry in entries] == ["preparing", "ready"]
    assert entries[0].actor == "ana"
    assert entries[1].actor == SYSTEM_ACTOR
    assert entries[0].action == "status_change"
    assert entries[0].previous_value == "pending"
    assert entries[0].details == "Status changed from pending to preparing"
    assert entries[0].timestamp == T0


@pytest.mark.asyncio
async def test_reason_is_part_of_details(history):
    await history.record_events([OrderStatusChangedEvent(
        order_id="o2", previous_status="pending", new_status="rejected", reason="Sin stock", occurred_at=T0,
    )])

    (entry,) = await history.entries_for("o2")

    assert entry.details == "Status changed from pending to rejected. Reason: Sin stock"


@pytest.mark.asyncio
async def test_entries_are_scoped_per_order(history):
    await history.record_events([
        OrderStatusChangedEvent(order_id="o1", previous_status="pending", new_status="preparing", occurred_at=T0),
    ])

    assert await history.entries_for("o2") == []
    assert len(await history.entries_for("o1")) == 1


@pytest.mark.asyncio
async def test_order_lifecycle_is_fully_audited(order_store, order_request, deliver):
    order = await order_store.create_order(order_request, actor="vendedor")
    await deliver(order.id)

    entries = await order_store.history(order.id)

    assert [entry.action for entry in entries] == ["create", "status_change", "status_change", "status_change"]
    assert entries[0].actor == "vendedor"
    assert [entry.new_value for entry in entries[1:]] == ["preparing", "ready", "delivered"]
