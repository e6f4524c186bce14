"""Pytest configuration and fixtures for API integration tests."""

import pytest
from fastapi.testclient import TestClient

from api.dependencies import (
    get_billing_deriver,
    get_document_lookup_service,
    get_document_store,
    get_order_store,
    reset_dependencies,
)
from api.main import app
from orderdesk.application.services import (
    BillingDeriver,
    DocumentLookupService,
    HistoryRecorder,
    OrderStore,
    SequenceAllocator,
)
from orderdesk.infrastructure.adapters.documents import MockDocumentLookupClient
from orderdesk.infrastructure.adapters.invoicing import MockInvoicingClient
from orderdesk.infrastructure.persistence import InMemoryDocumentStore


@pytest.fixture
def api_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def test_client(api_store) -> TestClient:
    """FastAPI test client wired to a fresh in-memory store."""
    history = HistoryRecorder(api_store)
    orders = OrderStore(api_store, SequenceAllocator(api_store), history)
    billing = BillingDeriver(api_store, orders, history, invoicing_client=MockInvoicingClient())
    lookups = DocumentLookupService(MockDocumentLookupClient())

    app.dependency_overrides[get_document_store] = lambda: api_store
    app.dependency_overrides[get_order_store] = lambda: orders
    app.dependency_overrides[get_billing_deriver] = lambda: billing
    app.dependency_overrides[get_document_lookup_service] = lambda: lookups

    client = TestClient(app)
    yield client

    # Cleanup
    app.dependency_overrides.clear()
    reset_dependencies()


@pytest.fixture
def order_payload() -> dict:
    return {
        "client": {
            "name": "Bodega San Martin",
            "address": "Jr. Puno 120, Lima",
            "tax_id": "20131312955",
            "client_id": "client-1",
        },
        "items": [
            {
                "name": "Aceite 1L",
                "quantity": 6,
                "base_price": "10.00",
                "tiers": [{"min_quantity": 6, "discount": "0.05"}],
                "step": 6,
            },
            {"name": "Arroz 5kg", "quantity": 2, "base_price": "5.00"},
        ],
        "payment_terms": "credito_30",
        "channel": "wholesale",
    }


@pytest.fixture
def create_order(test_client, order_payload):
    def _create(**overrides) -> dict:
        response = test_client.post("/api/v1/orders", json={**order_payload, **overrides})
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def deliver_order(test_client):
    def _deliver(order_id: str) -> dict:
        for step in ("accept", "ready", "deliver"):
            response = test_client.post(f"/api/v1/orders/{order_id}/{step}")
            assert response.status_code == 200, response.text
        return response.json()

    return _deliver
