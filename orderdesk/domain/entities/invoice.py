"""
Billing entities: Invoice, Payment and BillingNote.

An Invoice is derived from an Order, never authored on its own. Its id is
the order id, so deriving twice targets the same document.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from ..enums import InvoiceStatus, NoteKind
from ..exceptions import InvalidArgument, InvalidTransition
from ..value_objects import Money, round2, to_decimal
from ..value_objects.value_objects import DEFAULT_CURRENCY
from .order import Order
from orderdesk.utils.datetime import parse_iso, to_iso

DEFAULT_TERMS_DAYS = 7
OPEN_INVOICE_STATES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.OVERDUE})


def payment_terms_days(terms: Optional[str], default_days: int = DEFAULT_TERMS_DAYS) -> int:
    """
    Days of credit granted by a payment-terms string.

    "credito_30" -> 30, "credito_15" -> 15, anything else -> default.
    """
    terms = terms or ""
    if "30" in terms:
        return 30
    if "15" in terms:
        return 15
    return default_days


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidArgument(f"Not a date: {value!r}")


@dataclass
class Invoice:
    """Point-in-time billing copy of an order."""
    id: str
    order_id: str
    order_number: str
    amount: Money
    due_date: datetime
    issued_at: datetime
    status: InvoiceStatus = InvoiceStatus.PENDING
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_tax_id: Optional[str] = None
    payment_terms: Optional[str] = None
    paid_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    provider_code: Optional[str] = None
    provider_error: Optional[str] = None
    provider_attempted_at: Optional[datetime] = None

    @classmethod
    def derive(
        cls,
        order: Order,
        *,
        issued_at: datetime,
        default_terms_days: int = DEFAULT_TERMS_DAYS,
    ) -> "Invoice":
        """Copy amount and client from the order; due date counts from creation."""
        created_at = order.created_at or issued_at
        days = payment_terms_days(order.payment_terms, default_terms_days)
        return cls(
            id=order.id,
            order_id=order.id,
            order_number=order.order_number.value,
            amount=order.total,
            due_date=created_at + timedelta(days=days),
            issued_at=issued_at,
            client_id=order.client.client_id,
            client_name=order.client.name,
            client_tax_id=order.client.tax_id,
            payment_terms=order.payment_terms,
        )

    def is_open(self) -> bool:
        return self.status in OPEN_INVOICE_STATES

    def is_past_due(self, now: datetime) -> bool:
        return self.status is InvoiceStatus.PENDING and self.due_date < now

    def mark_paid(self, at: datetime) -> Dict[str, Any]:
        if self.status is InvoiceStatus.VOID:
            raise InvalidTransition(f"Invoice {self.id} is void and cannot be paid")
        if self.status is InvoiceStatus.PAID:
            return {}
        self.status = InvoiceStatus.PAID
        self.paid_at = at
        return {"status": self.status.value, "paidAt": to_iso(at)}

    def mark_overdue(self) -> Dict[str, Any]:
        self.status = InvoiceStatus.OVERDUE
        return {"status": self.status.value}

    def void(self, reason: str, at: datetime) -> Dict[str, Any]:
        reason = (reason or "").strip()
        if not reason:
            raise InvalidArgument("A void reason is required")
        if self.status is InvoiceStatus.PAID:
            raise InvalidTransition(f"Invoice {self.id} is paid and cannot be voided")
        if self.status is InvoiceStatus.VOID:
            raise InvalidTransition(f"Invoice {self.id} is already void")
        self.status = InvoiceStatus.VOID
        self.voided_at = at
        self.void_reason = reason
        return {"status": self.status.value, "voidedAt": to_iso(at), "voidReason": reason}

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "amount": str(self.amount.amount),
            "currency": self.amount.currency,
            "dueDate": to_iso(self.due_date),
            "issuedAt": to_iso(self.issued_at),
            "status": self.status.value,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "clientTaxId": self.client_tax_id,
            "paymentTerms": self.payment_terms,
            "paidAt": to_iso(self.paid_at),
            "voidedAt": to_iso(self.voided_at),
            "voidReason": self.void_reason,
            "providerCode": self.provider_code,
            "providerError": self.provider_error,
            "providerAttemptedAt": to_iso(self.provider_attempted_at),
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Invoice":
        return cls(
            id=document["id"],
            order_id=document["orderId"],
            order_number=document["orderNumber"],
            amount=Money(
                amount=to_decimal(document["amount"]),
                currency=document.get("currency") or DEFAULT_CURRENCY,
            ),
            due_date=parse_iso(document["dueDate"]),
            issued_at=parse_iso(document["issuedAt"]),
            status=InvoiceStatus(document.get("status", InvoiceStatus.PENDING.value)),
            client_id=document.get("clientId"),
            client_name=document.get("clientName"),
            client_tax_id=document.get("clientTaxId"),
            payment_terms=document.get("paymentTerms"),
            paid_at=parse_iso(document.get("paidAt")),
            voided_at=parse_iso(document.get("voidedAt")),
            void_reason=document.get("voidReason"),
            provider_code=document.get("providerCode"),
            provider_error=document.get("providerError"),
            provider_attempted_at=parse_iso(document.get("providerAttemptedAt")),
        )


@dataclass
class Payment:
    """A deposit recorded against an order. Never edited after recording."""
    id: str
    order_id: str
    amount: Decimal
    bank: str
    deposit_date: date
    partial: bool
    recorded_at: datetime
    recorded_by: Optional[str] = None
    reference: Optional[str] = None

    def __post_init__(self):
        self.amount = round2(self.amount)
        if self.amount <= 0:
            raise InvalidArgument(f"Payment amount must be positive: {self.amount}")
        if not self.bank or not self.bank.strip():
            raise InvalidArgument("Payment bank cannot be empty")
        self.deposit_date = _parse_date(self.deposit_date)
        if self.deposit_date is None:
            raise InvalidArgument("Payment deposit date is required")

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "amount": str(self.amount),
            "bank": self.bank,
            "depositDate": self.deposit_date.isoformat(),
            "partial": self.partial,
            "recordedAt": to_iso(self.recorded_at),
            "recordedBy": self.recorded_by,
            "reference": self.reference,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Payment":
        return cls(
            id=document["id"],
            order_id=document["orderId"],
            amount=to_decimal(document["amount"]),
            bank=document["bank"],
            deposit_date=document["depositDate"],
            partial=bool(document.get("partial", False)),
            recorded_at=parse_iso(document["recordedAt"]),
            recorded_by=document.get("recordedBy"),
            reference=document.get("reference"),
        )


@dataclass
class BillingNote:
    """
    Follow-up record for the collections desk.

    Warnings, reminders and payment commitments are informational only.
    """
    id: str
    order_id: str
    kind: NoteKind
    message: str
    created_at: datetime
    created_by: Optional[str] = None
    due: Optional[date] = None

    def __post_init__(self):
        if not self.message or not self.message.strip():
            raise InvalidArgument("Note message cannot be empty")
        self.due = _parse_date(self.due)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "kind": self.kind.value,
            "message": self.message,
            "createdAt": to_iso(self.created_at),
            "createdBy": self.created_by,
            "due": self.due.isoformat() if self.due else None,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "BillingNote":
        return cls(
            id=document["id"],
            order_id=document["orderId"],
            kind=NoteKind(document["kind"]),
            message=document["message"],
            created_at=parse_iso(document["createdAt"]),
            created_by=document.get("createdBy"),
            due=document.get("due"),
        )
