"""Tests for the electronic invoice payload builder."""

from decimal import Decimal

import pytest

from orderdesk.application.dtos import ClientDTO
from orderdesk.application.services import build_invoice_payload
from orderdesk.domain.exceptions import InvalidArgument


@pytest.mark.asyncio
async def test_payload_splits_igv_per_line(order_store, order_request):
    order = await order_store.create_order(order_request)

    payload = build_invoice_payload(order)

    assert payload["orderNumber"] == "ORD-001"
    assert payload["documentType"] == "factura"
    assert payload["client"] == {
        "taxId": "20131312955",
        "name": "Bodega San Martin",
        "address": "Jr. Puno 120, Lima",
    }
    assert payload["items"] == [
        {
            "description": "Aceite 1L",
            "quantity": 6,
            "unitValue": "8.05",
            "unitPrice": "9.50",
            "lineTotal": "57.00",
        },
        {
            "description": "Arroz 5kg",
            "quantity": 2,
            "unitValue": "4.24",
            "unitPrice": "5.00",
            "lineTotal": "10.00",
        },
    ]
    assert payload["totals"] == {"taxable": "56.78", "igv": "10.22", "total": "67.00"}


@pytest.mark.asyncio
async def test_dni_client_gets_a_boleta(order_store, make_order_request):
    order = await order_store.create_order(make_order_request(
        client=ClientDTO(name="Maria Quispe", tax_id="43837522"),
        delivery_address="Av. Grau 45",
    ))

    payload = build_invoice_payload(order)

    assert payload["documentType"] == "boleta"
    assert payload["client"]["address"] == "Av. Grau 45"


@pytest.mark.asyncio
async def test_custom_igv_factor(order_store, order_request):
    order = await order_store.create_order(order_request)

    payload = build_invoice_payload(order, Decimal("1.10"))

    assert payload["items"][1]["unitValue"] == "4.55"
    assert payload["totals"]["total"] == "67.00"


@pytest.mark.asyncio
async def test_missing_tax_id_is_rejected(order_store, make_order_request):
    order = await order_store.create_order(make_order_request(client=ClientDTO(name="Cliente de paso")))

    with pytest.raises(InvalidArgument):
        build_invoice_payload(order)


@pytest.mark.asyncio
@pytest.mark.parametrize("factor", ["1", "0.18"])
async def test_igv_factor_must_exceed_one(order_store, order_request, factor):
    order = await order_store.create_order(order_request)

    with pytest.raises(InvalidArgument):
        build_invoice_payload(order, factor)
