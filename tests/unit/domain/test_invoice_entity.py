"""Unit tests for Invoice, Payment and BillingNote entities."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from orderdesk.domain.entities import BillingNote, ClientInfo, Invoice, Order, OrderItem, Payment
from orderdesk.domain.entities import payment_terms_days
from orderdesk.domain.enums import InvoiceStatus, NoteKind
from orderdesk.domain.exceptions import InvalidArgument, InvalidTransition
from orderdesk.domain.value_objects import OrderNumber

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _order(payment_terms: str = "credito_30") -> Order:
    return Order.create(
        order_id="order-9",
        order_number=OrderNumber.from_sequence(9),
        client=ClientInfo(name="Ferreteria Lopez", tax_id="20512345678", client_id="c-9"),
        items=[OrderItem.priced("Clavos 1kg", 4, "6.25")],
        created_at=T0,
        payment_terms=payment_terms,
    )


@pytest.mark.parametrize(
    "terms,expected",
    [("credito_30", 30), ("credito_15", 15), ("credito_7", 7), ("contado", 7), (None, 7)],
)
def test_payment_terms_days(terms, expected):
    assert payment_terms_days(terms) == expected


def test_payment_terms_days_uses_configured_default():
    assert payment_terms_days("contado", default_days=3) == 3


@pytest.mark.parametrize("terms,days", [("credito_30", 30), ("credito_15", 15), ("contado", 7)])
def test_derive_copies_order_and_counts_due_date_from_creation(terms, days):
    issued = T0 + timedelta(days=2)

    invoice = Invoice.derive(_order(terms), issued_at=issued)

    assert invoice.id == invoice.order_id == "order-9"
    assert invoice.order_number == "ORD-009"
    assert invoice.amount.amount == Decimal("25.00")
    assert invoice.due_date == T0 + timedelta(days=days)
    assert invoice.issued_at == issued
    assert invoice.client_name == "Ferreteria Lopez"
    assert invoice.client_tax_id == "20512345678"
    assert invoice.status is InvoiceStatus.PENDING


def test_mark_paid_is_idempotent():
    invoice = Invoice.derive(_order(), issued_at=T0)

    fields = invoice.mark_paid(T0 + timedelta(days=1))
    assert fields["status"] == "paid"
    assert invoice.mark_paid(T0 + timedelta(days=2)) == {}
    assert invoice.paid_at == T0 + timedelta(days=1)


def test_overdue_invoice_can_still_be_paid():
    invoice = Invoice.derive(_order("contado"), issued_at=T0)
    assert invoice.is_past_due(T0 + timedelta(days=8))

    invoice.mark_overdue()
    assert invoice.is_open()
    invoice.mark_paid(T0 + timedelta(days=9))

    assert invoice.status is InvoiceStatus.PAID
    assert not invoice.is_open()


def test_void_rules():
    invoice = Invoice.derive(_order(), issued_at=T0)

    with pytest.raises(InvalidArgument):
        invoice.void("", T0)

    invoice.void("duplicada", T0)
    assert invoice.status is InvoiceStatus.VOID
    with pytest.raises(InvalidTransition):
        invoice.void("otra vez", T0)
    with pytest.raises(InvalidTransition):
        invoice.mark_paid(T0)

    paid = Invoice.derive(_order(), issued_at=T0)
    paid.mark_paid(T0)
    with pytest.raises(InvalidTransition):
        paid.void("tarde", T0)


def test_invoice_document_round_trip():
    invoice = Invoice.derive(_order(), issued_at=T0)
    invoice.void("error de precio", T0 + timedelta(hours=1))

    assert Invoice.from_document(invoice.to_document()) == invoice


@pytest.mark.parametrize(
    "amount,bank,deposit_date",
    [("0", "BCP", "2026-03-05"), ("-5", "BCP", "2026-03-05"), ("10", " ", "2026-03-05"), ("10", "BCP", None)],
)
def test_payment_validation(amount, bank, deposit_date):
    with pytest.raises(InvalidArgument):
        Payment(
            id="p1",
            order_id="order-9",
            amount=amount,
            bank=bank,
            deposit_date=deposit_date,
            partial=False,
            recorded_at=T0,
        )


def test_payment_parses_and_rounds():
    payment = Payment(
        id="p1",
        order_id="order-9",
        amount="12.345",
        bank="Interbank",
        deposit_date="2026-03-05",
        partial=True,
        recorded_at=T0,
    )

    assert payment.amount == Decimal("12.35")
    assert payment.deposit_date == date(2026, 3, 5)
    assert Payment.from_document(payment.to_document()) == payment


def test_billing_note_requires_message():
    with pytest.raises(InvalidArgument):
        BillingNote(id="n1", order_id="order-9", kind=NoteKind.WARNING, message=" ", created_at=T0)

    note = BillingNote(
        id="n2", order_id="order-9", kind=NoteKind.COMMITMENT, message="Paga el viernes",
        created_at=T0, due="2026-03-06",
    )
    assert note.due == date(2026, 3, 6)
    assert BillingNote.from_document(note.to_document()) == note
