"""
Billing endpoints.

Invoices derived from delivered orders, deposits, collection follow-up
and receivables reporting.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_actor, get_billing_deriver
from orderdesk.application.dtos import (
    BillingNoteDTO,
    BillingStatsDTO,
    ClientReceivableDTO,
    CommitmentRequest,
    InvoiceDTO,
    PaymentDTO,
    RecordPaymentRequest,
    ReminderRequest,
    VoidInvoiceRequest,
    WarningRequest,
)
from orderdesk.application.services import BillingDeriver
from orderdesk.domain.enums import InvoiceStatus


router = APIRouter()


# =============================================================================
# INVOICES
# =============================================================================

@router.get("/invoices", response_model=List[InvoiceDTO], summary="List invoices")
async def list_invoices(
    invoice_status: Optional[InvoiceStatus] = Query(default=None, alias="status"),
    billing: BillingDeriver = Depends(get_billing_deriver),
):
    return [InvoiceDTO.from_entity(invoice) for invoice in await billing.list_invoices(invoice_status)]


@router.post(
    "/invoices/{order_id}",
    response_model=InvoiceDTO,
    summary="Derive invoice",
    description="Idempotent. Moves a delivered order to billed.",
)
async def derive_invoice(
    order_id: str,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    return InvoiceDTO.from_entity(await billing.derive_invoice(order_id, actor=actor))


@router.get("/invoices/{order_id}", response_model=InvoiceDTO, summary="Get invoice of an order")
async def get_invoice(order_id: str, billing: BillingDeriver = Depends(get_billing_deriver)):
    return InvoiceDTO.from_entity(await billing.get_invoice(order_id))


@router.post("/invoices/{order_id}/void", response_model=InvoiceDTO, summary="Void invoice")
async def void_invoice(
    order_id: str,
    request: VoidInvoiceRequest,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    return InvoiceDTO.from_entity(await billing.void_invoice(order_id, request.reason, actor=actor))


@router.post(
    "/invoices/{order_id}/electronic",
    response_model=InvoiceDTO,
    summary="Send invoice to the electronic invoicing provider",
)
async def issue_electronic_invoice(
    order_id: str,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    return InvoiceDTO.from_entity(await billing.issue_electronic_invoice(order_id, actor=actor))


@router.post("/overdue/refresh", response_model=List[InvoiceDTO], summary="Flag overdue invoices")
async def refresh_overdue(billing: BillingDeriver = Depends(get_billing_deriver)):
    return [InvoiceDTO.from_entity(invoice) for invoice in await billing.refresh_overdue()]


# =============================================================================
# PAYMENTS
# =============================================================================

@router.post(
    "/orders/{order_id}/payments",
    status_code=status.HTTP_201_CREATED,
    response_model=PaymentDTO,
    summary="Record deposit",
)
async def record_payment(
    order_id: str,
    request: RecordPaymentRequest,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    payment = await billing.record_payment(
        order_id,
        amount=request.amount,
        bank=request.bank,
        deposit_date=request.deposit_date,
        partial=request.partial,
        reference=request.reference,
        actor=actor,
    )
    return PaymentDTO.from_entity(payment)


@router.get("/orders/{order_id}/payments", response_model=List[PaymentDTO], summary="Payments of an order")
async def list_order_payments(order_id: str, billing: BillingDeriver = Depends(get_billing_deriver)):
    return [PaymentDTO.from_entity(payment) for payment in await billing.list_payments(order_id)]


@router.get("/payments", response_model=List[PaymentDTO], summary="All payments")
async def list_payments(billing: BillingDeriver = Depends(get_billing_deriver)):
    return [PaymentDTO.from_entity(payment) for payment in await billing.list_payments()]


# =============================================================================
# FOLLOW-UP
# =============================================================================

@router.post(
    "/orders/{order_id}/warnings",
    status_code=status.HTTP_201_CREATED,
    response_model=BillingNoteDTO,
    summary="Send collection warning",
)
async def send_warning(
    order_id: str,
    request: WarningRequest,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    return BillingNoteDTO.from_entity(await billing.send_warning(order_id, request.message, actor=actor))


@router.post(
    "/orders/{order_id}/reminders",
    status_code=status.HTTP_201_CREATED,
    response_model=BillingNoteDTO,
    summary="Create reminder",
)
async def create_reminder(
    order_id: str,
    request: ReminderRequest,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    note = await billing.create_reminder(order_id, request.message, due=request.due, actor=actor)
    return BillingNoteDTO.from_entity(note)


@router.post(
    "/orders/{order_id}/commitments",
    status_code=status.HTTP_201_CREATED,
    response_model=BillingNoteDTO,
    summary="Record payment commitment",
)
async def record_commitment(
    order_id: str,
    request: CommitmentRequest,
    billing: BillingDeriver = Depends(get_billing_deriver),
    actor: Optional[str] = Depends(get_actor),
):
    note = await billing.record_commitment(
        order_id, request.promised_date, observation=request.observation, actor=actor
    )
    return BillingNoteDTO.from_entity(note)


@router.get("/orders/{order_id}/notes", response_model=List[BillingNoteDTO], summary="Follow-up notes")
async def list_notes(order_id: str, billing: BillingDeriver = Depends(get_billing_deriver)):
    return [BillingNoteDTO.from_entity(note) for note in await billing.list_notes(order_id)]


# =============================================================================
# REPORTING
# =============================================================================

@router.get("/receivables", response_model=List[ClientReceivableDTO], summary="Receivables by client")
async def receivables(billing: BillingDeriver = Depends(get_billing_deriver)):
    return [ClientReceivableDTO(**row) for row in await billing.receivables_by_client()]


@router.get("/stats", response_model=BillingStatsDTO, summary="Billing dashboard figures")
async def billing_stats(billing: BillingDeriver = Depends(get_billing_deriver)):
    return BillingStatsDTO(**await billing.billing_stats())
