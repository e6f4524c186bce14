"""Application DTOs for billing operations."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from orderdesk.domain.entities import BillingNote, Invoice, Payment


class InvoiceDTO(BaseModel):
    """Response DTO for an invoice."""

    id: str
    order_id: str
    order_number: str
    amount: Decimal
    currency: str
    status: str
    due_date: datetime
    issued_at: datetime
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_tax_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    provider_code: Optional[str] = None
    provider_error: Optional[str] = None
    provider_attempted_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, invoice: Invoice) -> "InvoiceDTO":
        return cls(
            id=invoice.id,
            order_id=invoice.order_id,
            order_number=invoice.order_number,
            amount=invoice.amount.amount,
            currency=invoice.amount.currency,
            status=invoice.status.value,
            due_date=invoice.due_date,
            issued_at=invoice.issued_at,
            client_id=invoice.client_id,
            client_name=invoice.client_name,
            client_tax_id=invoice.client_tax_id,
            paid_at=invoice.paid_at,
            voided_at=invoice.voided_at,
            void_reason=invoice.void_reason,
            provider_code=invoice.provider_code,
            provider_error=invoice.provider_error,
            provider_attempted_at=invoice.provider_attempted_at,
        )


class RecordPaymentRequest(BaseModel):
    """Request DTO for recording a deposit."""

    amount: Decimal = Field(..., description="Deposited amount (> 0)")
    bank: str = Field(..., description="Receiving bank")
    deposit_date: date = Field(..., description="Date of the deposit")
    partial: bool = Field(False, description="Partial payments never settle the invoice")
    reference: Optional[str] = Field(None, description="Operation number")


class PaymentDTO(BaseModel):
    id: str
    order_id: str
    amount: Decimal
    bank: str
    deposit_date: date
    partial: bool
    recorded_at: datetime
    recorded_by: Optional[str] = None
    reference: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, payment: Payment) -> "PaymentDTO":
        return cls(
            id=payment.id,
            order_id=payment.order_id,
            amount=payment.amount,
            bank=payment.bank,
            deposit_date=payment.deposit_date,
            partial=payment.partial,
            recorded_at=payment.recorded_at,
            recorded_by=payment.recorded_by,
            reference=payment.reference,
        )


class WarningRequest(BaseModel):
    message: str


class ReminderRequest(BaseModel):
    message: str
    due: Optional[date] = None


class CommitmentRequest(BaseModel):
    promised_date: date
    observation: Optional[str] = None


class VoidInvoiceRequest(BaseModel):
    reason: str


class BillingNoteDTO(BaseModel):
    id: str
    order_id: str
    kind: str
    message: str
    created_at: datetime
    created_by: Optional[str] = None
    due: Optional[date] = None

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, note: BillingNote) -> "BillingNoteDTO":
        return cls(
            id=note.id,
            order_id=note.order_id,
            kind=note.kind.value,
            message=note.message,
            created_at=note.created_at,
            created_by=note.created_by,
            due=note.due,
        )


class ClientReceivableDTO(BaseModel):
    """Open invoices of one client."""

    client_key: str
    client_name: Optional[str] = None
    invoice_count: int
    total_due: Decimal
    overdue_count: int = 0
    order_numbers: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class BillingStatsDTO(BaseModel):
    debtors: int
    open_invoices: int
    overdue_invoices: int
    total_due: Decimal
    collected_this_month: Decimal

    model_config = {"frozen": True}
