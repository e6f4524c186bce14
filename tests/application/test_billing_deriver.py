"""Tests for BillingDeriver: invoices, payments, follow-ups and reports."""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

import pytest

from orderdesk.application.dtos import ClientDTO, EditOrderRequest
from orderdesk.application.services import BillingDeriver
from orderdesk.domain.enums import InvoiceStatus, NoteKind, OrderStatus
from orderdesk.domain.exceptions import InvalidArgument, InvalidTransition, NotFound, UpstreamFailure
from orderdesk.infrastructure.adapters.invoicing import MockInvoicingClient


@pytest.fixture
def delivered_order(order_store, order_request, deliver):
    async def _make(request=None):
        order = await order_store.create_order(request or order_request)
        await deliver(order.id)
        return order

    return _make


# =============================================================================
# INVOICES
# =============================================================================

@pytest.mark.asyncio
async def test_derive_invoice_bills_delivered_order(billing, order_store, delivered_order):
    order = await delivered_order()

    invoice = await billing.derive_invoice(order.id, actor="caja")

    assert invoice.id == order.id
    assert invoice.order_number == "ORD-001"
    assert invoice.amount.amount == Decimal("67.00")
    assert invoice.status is InvoiceStatus.PENDING
    assert invoice.due_date == order.created_at + timedelta(days=30)
    assert invoice.client_tax_id == "20131312955"
    assert (await order_store.get_order(order.id)).status is OrderStatus.BILLED

    actions = [entry.action for entry in await order_store.history(order.id)]
    assert actions.count("invoice") == 1


@pytest.mark.asyncio
async def test_derive_invoice_is_idempotent(billing, order_store, delivered_order):
    order = await delivered_order()

    first = await billing.derive_invoice(order.id)
    second = await billing.derive_invoice(order.id)

    assert first == second
    assert len(await billing.list_invoices()) == 1
    actions = [entry.action for entry in await order_store.history(order.id)]
    assert actions.count("invoice") == 1


@pytest.mark.asyncio
async def test_concurrent_derives_create_one_invoice(billing, order_store, delivered_order):
    order = await delivered_order()

    first, second = await asyncio.gather(billing.derive_invoice(order.id), billing.derive_invoice(order.id))

    assert first.id == second.id
    assert first.issued_at == second.issued_at
    assert (await order_store.get_order(order.id)).status is OrderStatus.BILLED
    history = await order_store.history(order.id)
    assert [e.action for e in history].count("invoice") == 1
    assert [e.new_value for e in history if e.action == "status_change"].count("billed") == 1


@pytest.mark.asyncio
async def test_invoice_keeps_amount_when_order_changes_later(billing, order_store, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)

    await order_store.edit_order(order.id, EditOrderRequest(total=Decimal("99.00")), actor="admin")

    assert (await order_store.get_order(order.id)).total.amount == Decimal("99.00")
    assert (await billing.derive_invoice(order.id)).amount.amount == Decimal("67.00")


@pytest.mark.asyncio
@pytest.mark.parametrize("steps", [0, 1, 2])
async def test_derive_requires_delivery(billing, order_store, order_request, steps):
    order = await order_store.create_order(order_request)
    transitions = [order_store.accept, order_store.mark_ready]
    for transition in transitions[:steps]:
        await transition(order.id)

    with pytest.raises(InvalidTransition):
        await billing.derive_invoice(order.id)
    assert await billing.find_invoice(order.id) is None


@pytest.mark.asyncio
async def test_get_invoice_missing(billing):
    with pytest.raises(NotFound):
        await billing.get_invoice("missing")


@pytest.mark.asyncio
async def test_void_invoice(billing, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)

    with pytest.raises(InvalidArgument):
        await billing.void_invoice(order.id, " ")

    voided = await billing.void_invoice(order.id, "Monto errado", actor="admin")

    assert voided.status is InvoiceStatus.VOID
    assert voided.void_reason == "Monto errado"
    assert [i.id for i in await billing.list_invoices(InvoiceStatus.VOID)] == [order.id]
    assert await billing.list_invoices(InvoiceStatus.PENDING) == []
    with pytest.raises(InvalidTransition):
        await billing.void_invoice(order.id, "otra vez")


@pytest.mark.asyncio
async def test_list_invoices_rejects_unknown_status(billing):
    with pytest.raises(InvalidArgument):
        await billing.list_invoices("late")


@pytest.mark.asyncio
async def test_refresh_overdue(billing, clock, make_order_request, delivered_order):
    order = await delivered_order(make_order_request(payment_terms="contado"))
    await billing.derive_invoice(order.id)

    assert await billing.refresh_overdue() == []

    clock.advance(days=10)
    changed = await billing.refresh_overdue()

    assert [invoice.id for invoice in changed] == [order.id]
    assert (await billing.get_invoice(order.id)).status is InvoiceStatus.OVERDUE
    assert await billing.refresh_overdue() == []


# =============================================================================
# ELECTRONIC INVOICING
# =============================================================================

@pytest.mark.asyncio
async def test_issue_electronic_invoice_records_code(billing, invoicing_client, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)

    invoice = await billing.issue_electronic_invoice(order.id)
    again = await billing.issue_electronic_invoice(order.id)

    assert invoice.provider_code == "MOCK-000001"
    assert again.provider_code == "MOCK-000001"
    assert len(invoicing_client.issued) == 1
    assert invoicing_client.issued[0]["documentType"] == "factura"
    assert (await billing.get_invoice(order.id)).provider_code == "MOCK-000001"


@pytest.mark.asyncio
async def test_issue_electronic_invoice_records_provider_error(
    store, order_store, history, clock, delivered_order
):
    failing = BillingDeriver(
        store, order_store, history,
        invoicing_client=MockInvoicingClient(fail_with="SUNAT timeout"),
        clock=clock,
    )
    order = await delivered_order()
    await failing.derive_invoice(order.id)

    with pytest.raises(UpstreamFailure):
        await failing.issue_electronic_invoice(order.id)

    stored = await failing.get_invoice(order.id)
    assert stored.provider_error == "SUNAT timeout"
    assert stored.provider_code is None
    assert stored.status is InvoiceStatus.PENDING


@pytest.mark.asyncio
async def test_issue_electronic_invoice_refuses_void(billing, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)
    await billing.void_invoice(order.id, "Duplicada")

    with pytest.raises(InvalidTransition):
        await billing.issue_electronic_invoice(order.id)


@pytest.mark.asyncio
async def test_issue_electronic_invoice_without_provider(store, order_store, history, delivered_order):
    no_provider = BillingDeriver(store, order_store, history)
    order = await delivered_order()
    await no_provider.derive_invoice(order.id)

    with pytest.raises(UpstreamFailure):
        await no_provider.issue_electronic_invoice(order.id)


# =============================================================================
# PAYMENTS
# =============================================================================

@pytest.mark.asyncio
async def test_full_payment_settles_order_and_invoice(billing, order_store, delivered_order):
    order = await delivered_order()

    payment = await billing.record_payment(
        order.id, amount="67.00", bank="BCP", deposit_date=date(2026, 3, 5), reference="OP-1234", actor="caja"
    )

    assert payment.amount == Decimal("67.00")
    assert (await billing.get_invoice(order.id)).status is InvoiceStatus.PAID
    assert (await order_store.get_order(order.id)).status is OrderStatus.PAID
    assert [p.id for p in await billing.list_payments(order.id)] == [payment.id]

    actions = [entry.action for entry in await order_store.history(order.id)]
    assert actions[-4:] == ["payment", "invoice", "status_change", "status_change"]


@pytest.mark.asyncio
async def test_partial_payment_never_settles(billing, order_store, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)

    await billing.record_payment(order.id, amount="30.00", bank="BBVA", deposit_date="2026-03-05", partial=True)
    await billing.record_payment(order.id, amount="37.00", bank="BBVA", deposit_date="2026-03-06", partial=True)

    assert (await billing.get_invoice(order.id)).status is InvoiceStatus.PENDING
    assert (await order_store.get_order(order.id)).status is OrderStatus.BILLED
    assert len(await billing.list_payments(order.id)) == 2


@pytest.mark.asyncio
async def test_partial_payment_allowed_before_delivery(billing, order_store, order_request):
    order = await order_store.create_order(order_request)

    await billing.record_payment(order.id, amount="20.00", bank="Yape", deposit_date="2026-03-02", partial=True)

    assert (await order_store.get_order(order.id)).status is OrderStatus.PENDING
    assert await billing.find_invoice(order.id) is None


@pytest.mark.asyncio
async def test_full_payment_requires_delivery(billing, order_store, order_request):
    order = await order_store.create_order(order_request)

    with pytest.raises(InvalidTransition):
        await billing.record_payment(order.id, amount="67.00", bank="BCP", deposit_date="2026-03-05")

    assert await billing.list_payments(order.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "amount,bank,deposit_date",
    [("0", "BCP", "2026-03-05"), ("-1", "BCP", "2026-03-05"), ("10", "", "2026-03-05"), ("10", "BCP", "ayer")],
)
async def test_invalid_payment_writes_nothing(billing, delivered_order, amount, bank, deposit_date):
    order = await delivered_order()

    with pytest.raises(InvalidArgument):
        await billing.record_payment(order.id, amount=amount, bank=bank, deposit_date=deposit_date)

    assert await billing.list_payments() == []
    assert await billing.find_invoice(order.id) is None


@pytest.mark.asyncio
async def test_payment_against_void_invoice_is_refused(billing, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)
    await billing.void_invoice(order.id, "Anulada")

    with pytest.raises(InvalidTransition):
        await billing.record_payment(order.id, amount="67.00", bank="BCP", deposit_date="2026-03-05")


@pytest.mark.asyncio
async def test_overdue_invoice_still_settles(billing, clock, order_store, make_order_request, delivered_order):
    order = await delivered_order(make_order_request(payment_terms="contado"))
    await billing.derive_invoice(order.id)
    clock.advance(days=10)
    await billing.refresh_overdue()

    await billing.record_payment(order.id, amount="67.00", bank="BCP", deposit_date="2026-03-12")

    assert (await billing.get_invoice(order.id)).status is InvoiceStatus.PAID
    assert (await order_store.get_order(order.id)).status is OrderStatus.PAID


@pytest.mark.asyncio
async def test_extra_payment_on_paid_order_changes_nothing(billing, order_store, delivered_order):
    order = await delivered_order()
    await billing.record_payment(order.id, amount="67.00", bank="BCP", deposit_date="2026-03-05")
    paid_invoice = await billing.get_invoice(order.id)

    await billing.record_payment(order.id, amount="5.00", bank="BCP", deposit_date="2026-03-06")

    assert await billing.get_invoice(order.id) == paid_invoice
    assert (await order_store.get_order(order.id)).status is OrderStatus.PAID
    assert len(await billing.list_payments(order.id)) == 2


@pytest.mark.asyncio
async def test_payment_for_unknown_order(billing):
    with pytest.raises(NotFound):
        await billing.record_payment("missing", amount="1", bank="BCP", deposit_date="2026-03-05")


# =============================================================================
# FOLLOW-UP NOTES
# =============================================================================

@pytest.mark.asyncio
async def test_notes_are_informational_only(billing, order_store, delivered_order):
    order = await delivered_order()
    await billing.derive_invoice(order.id)

    await billing.send_warning(order.id, "Segundo aviso de cobranza", actor="cobranzas")
    await billing.create_reminder(order.id, "Llamar al cliente", due=date(2026, 4, 1))
    commitment = await billing.record_commitment(order.id, date(2026, 4, 5))

    notes = await billing.list_notes(order.id)
    assert [note.kind for note in notes] == [NoteKind.WARNING, NoteKind.REMINDER, NoteKind.COMMITMENT]
    assert notes[0].created_by == "cobranzas"
    assert notes[1].due == date(2026, 4, 1)
    assert commitment.message == "Payment commitment"
    assert commitment.due == date(2026, 4, 5)

    assert (await order_store.get_order(order.id)).status is OrderStatus.BILLED
    assert (await billing.get_invoice(order.id)).status is InvoiceStatus.PENDING
    assert [e.action for e in await order_store.history(order.id)].count("note") == 3


@pytest.mark.asyncio
async def test_note_validation(billing, order_store, order_request):
    order = await order_store.create_order(order_request)

    with pytest.raises(InvalidArgument):
        await billing.send_warning(order.id, "   ")
    with pytest.raises(InvalidArgument):
        await billing.record_commitment(order.id, None)
    with pytest.raises(NotFound):
        await billing.create_reminder("missing", "Llamar")


# =============================================================================
# REPORTING
# =============================================================================

@pytest.mark.asyncio
async def test_receivables_and_stats(billing, make_order_request, delivered_order):
    first = await delivered_order()
    second = await delivered_order()
    other_client = await delivered_order(make_order_request(
        client=ClientDTO(name="Minimarket Rosa", tax_id="10456789012", client_id="client-2"),
    ))
    await billing.derive_invoice(first.id)
    await billing.derive_invoice(second.id)
    await billing.record_payment(other_client.id, amount="67.00", bank="BCP", deposit_date="2026-03-05")
    await billing.record_payment(first.id, amount="10.00", bank="BCP", deposit_date="2026-02-27", partial=True)

    receivables = await billing.receivables_by_client()

    assert len(receivables) == 1
    assert receivables[0]["client_key"] == "client-1"
    assert receivables[0]["client_name"] == "Bodega San Martin"
    assert receivables[0]["invoice_count"] == 2
    assert receivables[0]["total_due"] == Decimal("134.00")
    assert receivables[0]["overdue_count"] == 0
    assert sorted(receivables[0]["order_numbers"]) == ["ORD-001", "ORD-002"]

    stats = await billing.billing_stats()
    assert stats == {
        "debtors": 1,
        "open_invoices": 2,
        "overdue_invoices": 0,
        "total_due": Decimal("134.00"),
        "collected_this_month": Decimal("67.00"),
    }
