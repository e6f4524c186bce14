"""Shared fixtures: in-memory store, fixed clock and wired services."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from orderdesk.application.dtos import ClientDTO, CreateOrderRequest, OrderItemRequest, TierDTO
from orderdesk.application.services import BillingDeriver, HistoryRecorder, OrderStore, SequenceAllocator
from orderdesk.infrastructure.adapters.invoicing import MockInvoicingClient
from orderdesk.infrastructure.persistence import InMemoryDocumentStore


START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Ticks one second per call so every write gets a distinct timestamp."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def history(store) -> HistoryRecorder:
    return HistoryRecorder(store)


@pytest.fixture
def allocator(store) -> SequenceAllocator:
    return SequenceAllocator(store)


@pytest.fixture
def order_store(store, allocator, history, clock) -> OrderStore:
    return OrderStore(store, allocator, history, clock=clock)


@pytest.fixture
def invoicing_client() -> MockInvoicingClient:
    return MockInvoicingClient()


@pytest.fixture
def billing(store, order_store, history, invoicing_client, clock) -> BillingDeriver:
    return BillingDeriver(
        store,
        order_store,
        history,
        invoicing_client=invoicing_client,
        clock=clock,
    )


def _order_request(**overrides) -> CreateOrderRequest:
    """Two-line wholesale order: 6 x 10.00 at 5% off plus 2 x 5.00."""
    data = {
        "client": ClientDTO(
            name="Bodega San Martin",
            address="Jr. Puno 120, Lima",
            tax_id="20131312955",
            client_id="client-1",
        ),
        "items": [
            OrderItemRequest(
                name="Aceite 1L",
                quantity=6,
                base_price=Decimal("10.00"),
                tiers=[TierDTO(min_quantity=6, discount=Decimal("0.05"))],
                step=6,
            ),
            OrderItemRequest(name="Arroz 5kg", quantity=2, base_price=Decimal("5.00")),
        ],
        "payment_terms": "credito_30",
        "channel": "wholesale",
    }
    data.update(overrides)
    return CreateOrderRequest(**data)


@pytest.fixture
def make_order_request():
    return _order_request


@pytest.fixture
def order_request() -> CreateOrderRequest:
    return _order_request()


@pytest.fixture
def deliver(order_store):
    async def _deliver(order_id: str) -> None:
        """Walk an order from pending to delivered."""
        await order_store.accept(order_id)
        await order_store.mark_ready(order_id)
        await order_store.mark_delivered(order_id)

    return _deliver
