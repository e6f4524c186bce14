"""
Application service for billing (the BillingDeriver).

Invoices live under `billing/invoices/{orderId}`; the order id doubles as
invoice id so deriving twice always lands on the same document.
"""
import uuid
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from orderdesk.application.interfaces import IInvoicingClient
from orderdesk.application.services.history_recorder import HistoryRecorder
from orderdesk.application.services.invoicing import DEFAULT_IGV_FACTOR, build_invoice_payload
from orderdesk.application.services.order_service import OrderStore
from orderdesk.domain.entities import BillingNote, Invoice, Payment
from orderdesk.domain.entities.invoice import DEFAULT_TERMS_DAYS
from orderdesk.domain.enums import InvoiceStatus, NoteKind, OrderStatus
from orderdesk.domain.events import (
    BillingNoteAddedEvent,
    DomainEvent,
    InvoiceDerivedEvent,
    InvoiceVoidedEvent,
    PaymentRecordedEvent,
)
from orderdesk.domain.exceptions import InvalidArgument, InvalidTransition, NotFound, UpstreamFailure
from orderdesk.domain.lifecycle import COLLECTIBLE_STATES
from orderdesk.domain.repositories import DocumentStore
from orderdesk.domain.value_objects import ExecutionID, round2
from orderdesk.infrastructure.logging import get_logger
from orderdesk.utils.datetime import to_iso, utc_now

logger = get_logger(__name__)

INVOICES_ROOT = "billing/invoices"
PAYMENTS_ROOT = "billing/payments"
NOTES_ROOT = "billing/notes"


def invoice_path(order_id: str) -> str:
    return f"{INVOICES_ROOT}/{order_id}"


class BillingDeriver:
    """
    Application service deriving invoices and recording payments.

    Settlement follows the `partial` flag: the first non-partial payment
    settles the invoice in full, partial payments never change status.
    """

    def __init__(
        self,
        store: DocumentStore,
        orders: OrderStore,
        history: HistoryRecorder,
        *,
        invoicing_client: Optional[IInvoicingClient] = None,
        default_terms_days: int = DEFAULT_TERMS_DAYS,
        igv_factor: Decimal = DEFAULT_IGV_FACTOR,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._orders = orders
        self._history = history
        self._invoicing = invoicing_client
        self._default_terms_days = default_terms_days
        self._igv_factor = igv_factor
        self._clock = clock

    # =========================================================================
    # INVOICES
    # =========================================================================

    async def derive_invoice(self, order_id: str, actor: Optional[str] = None) -> Invoice:
        """
        Derive the invoice of a delivered, billed or paid order.

        Idempotent: an existing invoice is returned untouched. A delivered
        order moves to billed.
        """
        order = await self._orders.get_order(order_id)
        if order.status not in COLLECTIBLE_STATES:
            raise InvalidTransition(
                f"Order {order.order_number} is '{order.status.value}'; "
                f"invoices are derived from delivered orders"
            )

        candidate = Invoice.derive(
            order, issued_at=self._clock(), default_terms_days=self._default_terms_days
        )
        outcome = {"created": False}

        def create_once(current):
            outcome["created"] = current is None
            return candidate.to_document() if current is None else None

        stored = await self._store.transaction(invoice_path(order_id), create_once)
        invoice = Invoice.from_document(stored)

        if outcome["created"]:
            await self._record(order_id, InvoiceDerivedEvent(
                order_id=order_id,
                amount=invoice.amount.amount,
                due_date=to_iso(invoice.due_date),
                user_id=actor,
                execution_id=str(ExecutionID.generate()),
                occurred_at=invoice.issued_at,
            ))
            logger.info(
                f"Invoice derived for {order.order_number}: {invoice.amount}, due {invoice.due_date.date()}"
            )

        if order.status is OrderStatus.DELIVERED:
            try:
                await self._orders.mark_billed(order_id, actor=actor)
            except InvalidTransition:
                # A concurrent derive or payment billed it first
                current = await self._orders.get_order(order_id)
                if current.status not in (OrderStatus.BILLED, OrderStatus.PAID):
                    raise

        return invoice

    async def find_invoice(self, order_id: str) -> Optional[Invoice]:
        document = await self._store.get(invoice_path(order_id))
        return Invoice.from_document(document) if document is not None else None

    async def get_invoice(self, order_id: str) -> Invoice:
        invoice = await self.find_invoice(order_id)
        if invoice is None:
            raise NotFound(f"No invoice for order {order_id}")
        return invoice

    async def list_invoices(self, status: Optional[InvoiceStatus] = None) -> List[Invoice]:
        tree = await self._store.get(INVOICES_ROOT) or {}
        invoices = [Invoice.from_document(document) for document in tree.values()]
        if status is not None:
            try:
                status = InvoiceStatus(status)
            except ValueError:
                raise InvalidArgument(f"Unknown invoice status: {status!r}")
            invoices = [invoice for invoice in invoices if invoice.status is status]
        return sorted(invoices, key=lambda invoice: invoice.issued_at)

    async def void_invoice(self, order_id: str, reason: str, actor: Optional[str] = None) -> Invoice:
        """Credit-note style cancellation. Paid invoices cannot be voided."""
        invoice = await self.get_invoice(order_id)
        previous = invoice.status
        fields = invoice.void(reason, self._clock())

        await self._store.update(invoice_path(order_id), fields)
        await self._record(order_id, InvoiceVoidedEvent(
            order_id=order_id,
            reason=invoice.void_reason,
            previous_status=previous.value,
            user_id=actor,
            execution_id=str(ExecutionID.generate()),
            occurred_at=invoice.voided_at,
        ))

        logger.info(f"Invoice {invoice.order_number} voided: {invoice.void_reason}")
        return invoice

    async def refresh_overdue(self, now: Optional[datetime] = None) -> List[Invoice]:
        """Mark pending invoices past their due date as overdue."""
        now = now or self._clock()
        changed = []

        for invoice in await self.list_invoices(InvoiceStatus.PENDING):
            if not invoice.is_past_due(now):
                continue

            def mark(current):
                if current is None or current.get("status") != InvoiceStatus.PENDING.value:
                    return None
                return {**current, "status": InvoiceStatus.OVERDUE.value}

            stored = await self._store.transaction(invoice_path(invoice.order_id), mark)
            if stored and stored.get("status") == InvoiceStatus.OVERDUE.value:
                invoice.mark_overdue()
                changed.append(invoice)

        if changed:
            logger.info(f"{len(changed)} invoice(s) now overdue")
        return changed

    async def issue_electronic_invoice(self, order_id: str, actor: Optional[str] = None) -> Invoice:
        """
        Send the invoice to the electronic invoicing provider.

        The acceptance code, or the provider error, is recorded on the
        invoice. An invoice that already has a code is returned as is.
        """
        if self._invoicing is None:
            raise UpstreamFailure("No invoicing provider configured")

        invoice = await self.get_invoice(order_id)
        if invoice.status is InvoiceStatus.VOID:
            raise InvalidTransition(f"Invoice {invoice.order_number} is void")
        if invoice.provider_code:
            return invoice

        order = await self._orders.get_order(order_id)
        payload = build_invoice_payload(order, self._igv_factor)
        attempted_at = self._clock()

        try:
            code = await self._invoicing.issue_invoice(payload)
        except UpstreamFailure as e:
            logger.error(f"Electronic invoice for {invoice.order_number} failed: {e.message}")
            await self._store.update(invoice_path(order_id), {
                "providerError": e.message,
                "providerAttemptedAt": to_iso(attempted_at),
            })
            raise

        await self._store.update(invoice_path(order_id), {
            "providerCode": code,
            "providerError": None,
            "providerAttemptedAt": to_iso(attempted_at),
        })
        invoice.provider_code = code
        invoice.provider_error = None
        invoice.provider_attempted_at = attempted_at

        logger.info(f"Electronic invoice for {invoice.order_number} accepted: {code}")
        return invoice

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def record_payment(
        self,
        order_id: str,
        amount: Any,
        bank: str,
        deposit_date: Any,
        partial: bool = False,
        reference: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Payment:
        """
        Append a payment; a non-partial one also settles the order.

        Settlement derives the invoice if needed, marks it paid and moves
        the order to paid. Everything is validated before the first write.
        """
        order = await self._orders.get_order(order_id)
        payment = Payment(
            id=str(uuid.uuid4()),
            order_id=order_id,
            amount=round2(amount),
            bank=bank,
            deposit_date=deposit_date,
            partial=partial,
            recorded_at=self._clock(),
            recorded_by=actor,
            reference=reference,
        )

        if not partial:
            if order.status not in COLLECTIBLE_STATES:
                raise InvalidTransition(
                    f"Order {order.order_number} is '{order.status.value}' and cannot be settled"
                )
            existing = await self.find_invoice(order_id)
            if existing is not None and existing.status is InvoiceStatus.VOID:
                raise InvalidTransition(f"Invoice {existing.order_number} is void")

        await self._store.set(f"{PAYMENTS_ROOT}/{order_id}/{payment.id}", payment.to_document())

        try:
            await self._record(order_id, PaymentRecordedEvent(
                order_id=order_id,
                payment_id=payment.id,
                amount=payment.amount,
                bank=payment.bank,
                partial=partial,
                user_id=actor,
                execution_id=str(ExecutionID.generate()),
                occurred_at=payment.recorded_at,
            ))
            if not partial:
                await self._settle(order_id, actor)
        except UpstreamFailure as e:
            if e.partially_applied:
                raise
            raise UpstreamFailure(
                f"Payment {payment.id} was recorded but settlement did not finish: {e.message}",
                partially_applied=True,
            ) from e

        logger.info(
            f"{'Partial payment' if partial else 'Payment'} of {payment.amount} "
            f"recorded for {order.order_number} ({payment.bank})"
        )
        return payment

    async def _settle(self, order_id: str, actor: Optional[str]) -> None:
        invoice = await self.derive_invoice(order_id, actor=actor)
        fields = invoice.mark_paid(self._clock())
        if fields:
            await self._store.update(invoice_path(order_id), fields)

        order = await self._orders.get_order(order_id)
        if order.status is OrderStatus.BILLED:
            try:
                await self._orders.mark_paid(order_id, actor=actor)
            except InvalidTransition:
                if (await self._orders.get_order(order_id)).status is not OrderStatus.PAID:
                    raise

    async def list_payments(self, order_id: Optional[str] = None) -> List[Payment]:
        if order_id is not None:
            tree = {order_id: await self._store.get(f"{PAYMENTS_ROOT}/{order_id}") or {}}
        else:
            tree = await self._store.get(PAYMENTS_ROOT) or {}
        payments = [
            Payment.from_document(document)
            for per_order in tree.values()
            for document in per_order.values()
        ]
        return sorted(payments, key=lambda payment: payment.recorded_at)

    # =========================================================================
    # FOLLOW-UP NOTES
    # =========================================================================

    async def send_warning(self, order_id: str, message: str, actor: Optional[str] = None) -> BillingNote:
        return await self._add_note(order_id, NoteKind.WARNING, message, actor=actor)

    async def create_reminder(
        self,
        order_id: str,
        message: str,
        due: Optional[date] = None,
        actor: Optional[str] = None,
    ) -> BillingNote:
        return await self._add_note(order_id, NoteKind.REMINDER, message, due=due, actor=actor)

    async def record_commitment(
        self,
        order_id: str,
        promised_date: date,
        observation: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> BillingNote:
        """Client promised to pay by `promised_date`."""
        if promised_date is None:
            raise InvalidArgument("A promised payment date is required")
        message = observation.strip() if observation and observation.strip() else "Payment commitment"
        return await self._add_note(order_id, NoteKind.COMMITMENT, message, due=promised_date, actor=actor)

    async def list_notes(self, order_id: str) -> List[BillingNote]:
        tree = await self._store.get(f"{NOTES_ROOT}/{order_id}") or {}
        notes = [BillingNote.from_document(document) for document in tree.values()]
        return sorted(notes, key=lambda note: note.created_at)

    async def _add_note(
        self,
        order_id: str,
        kind: NoteKind,
        message: str,
        *,
        due: Optional[date] = None,
        actor: Optional[str] = None,
    ) -> BillingNote:
        # Notes never touch order or invoice state; the order must exist
        await self._orders.get_order(order_id)

        note = BillingNote(
            id=str(uuid.uuid4()),
            order_id=order_id,
            kind=kind,
            message=(message or "").strip(),
            created_at=self._clock(),
            created_by=actor,
            due=due,
        )
        await self._store.set(f"{NOTES_ROOT}/{order_id}/{note.id}", note.to_document())
        await self._record(order_id, BillingNoteAddedEvent(
            order_id=order_id,
            kind=kind.value,
            message=note.message,
            user_id=actor,
            execution_id=str(ExecutionID.generate()),
            occurred_at=note.created_at,
        ))
        logger.info(f"{kind.value.capitalize()} added to order {order_id}")
        return note

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def receivables_by_client(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Open invoices grouped per client, largest debt first."""
        now = now or self._clock()
        groups: Dict[str, Dict[str, Any]] = defaultdict(lambda: {
            "client_name": None,
            "invoice_count": 0,
            "total_due": Decimal("0.00"),
            "overdue_count": 0,
            "order_numbers": [],
        })

        for invoice in await self.list_invoices():
            if not invoice.is_open():
                continue
            key = invoice.client_id or invoice.client_tax_id or invoice.client_name or "unknown"
            group = groups[key]
            group["client_name"] = group["client_name"] or invoice.client_name
            group["invoice_count"] += 1
            group["total_due"] += invoice.amount.amount
            if invoice.status is InvoiceStatus.OVERDUE or invoice.due_date < now:
                group["overdue_count"] += 1
            group["order_numbers"].append(invoice.order_number)

        receivables = [{"client_key": key, **group} for key, group in groups.items()]
        return sorted(receivables, key=lambda r: (-r["total_due"], r["client_key"]))

    async def billing_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Debtors, open and overdue counts, total due and this month's collections."""
        now = now or self._clock()
        receivables = await self.receivables_by_client(now)

        collected = sum(
            (
                payment.amount
                for payment in await self.list_payments()
                if (payment.deposit_date.year, payment.deposit_date.month) == (now.year, now.month)
            ),
            Decimal("0.00"),
        )

        return {
            "debtors": len(receivables),
            "open_invoices": sum(r["invoice_count"] for r in receivables),
            "overdue_invoices": sum(r["overdue_count"] for r in receivables),
            "total_due": sum((r["total_due"] for r in receivables), Decimal("0.00")),
            "collected_this_month": collected,
        }

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _record(self, order_id: str, event: DomainEvent) -> None:
        try:
            await self._history.record_events([event])
        except UpstreamFailure as e:
            raise UpstreamFailure(
                f"Order {order_id} changed but its history was not recorded: {e.message}",
                partially_applied=True,
            ) from e
