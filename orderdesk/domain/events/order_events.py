"""
Order Domain Events.

Events that occur during the order lifecycle and its billing extension.
Each one becomes exactly one history entry.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from .base import DomainEvent


@dataclass
class _OrderEvent(DomainEvent):
    order_id: str = ""

    def __post_init__(self):
        """Set aggregate_id to order_id."""
        if not self.aggregate_id and self.order_id:
            object.__setattr__(self, 'aggregate_id', self.order_id)
        super().__post_init__()


@dataclass
class OrderCreatedEvent(_OrderEvent):
    """Order was created and numbered."""

    action = "create"

    order_number: str = ""
    total: Optional[Decimal] = None
    item_count: int = 0
    channel: str = ""

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": None,
            "new_value": "pending",
            "details": f"Order {self.order_number} created ({self.item_count} item(s), total {self.total})",
        }


@dataclass
class OrderStatusChangedEvent(_OrderEvent):
    """Order status changed through a lifecycle transition."""

    action = "status_change"

    previous_status: str = ""
    new_status: str = ""
    reason: Optional[str] = None

    def history_values(self) -> Dict[str, Any]:
        details = f"Status changed from {self.previous_status} to {self.new_status}"
        if self.reason:
            details += f". Reason: {self.reason}"
        return {
            "previous_value": self.previous_status,
            "new_value": self.new_status,
            "details": details,
        }


@dataclass
class OrderEditedEvent(_OrderEvent):
    """Order fields were edited by an administrator."""

    action = "edit"

    previous_values: Dict[str, Any] = field(default_factory=dict)
    new_values: Dict[str, Any] = field(default_factory=dict)

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": self.previous_values,
            "new_value": self.new_values,
            "details": "Order edited: " + ", ".join(sorted(self.new_values)),
        }


@dataclass
class OrderDeletedEvent(_OrderEvent):
    """Order was moved to the deleted set."""

    action = "delete"

    reason: str = ""
    status: str = ""

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": self.status,
            "new_value": None,
            "details": f"Order deleted. Reason: {self.reason}",
        }


@dataclass
class OrderRestoredEvent(_OrderEvent):
    """Order was restored from the deleted set."""

    action = "restore"

    status: str = ""

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": None,
            "new_value": self.status,
            "details": "Order restored from the deleted set",
        }


@dataclass
class InvoiceDerivedEvent(_OrderEvent):
    """Invoice was derived from the order."""

    action = "invoice"

    amount: Optional[Decimal] = None
    due_date: str = ""

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": None,
            "new_value": str(self.amount),
            "details": f"Invoice issued for {self.amount}, due {self.due_date}",
        }


@dataclass
class InvoiceVoidedEvent(_OrderEvent):
    """Invoice was voided (credit note)."""

    action = "void"

    reason: str = ""
    previous_status: str = ""

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": self.previous_status,
            "new_value": "void",
            "details": f"Invoice voided. Reason: {self.reason}",
        }


@dataclass
class PaymentRecordedEvent(_OrderEvent):
    """Payment was recorded against the order."""

    action = "payment"

    payment_id: str = ""
    amount: Optional[Decimal] = None
    bank: str = ""
    partial: bool = False

    def history_values(self) -> Dict[str, Any]:
        kind = "Partial payment" if self.partial else "Payment"
        return {
            "previous_value": None,
            "new_value": str(self.amount),
            "details": f"{kind} of {self.amount} recorded ({self.bank})",
        }


@dataclass
class BillingNoteAddedEvent(_OrderEvent):
    """Warning, reminder or payment commitment attached to the order."""

    action = "note"

    kind: str = ""
    message: str = ""

    def history_values(self) -> Dict[str, Any]:
        return {
            "previous_value": None,
            "new_value": self.kind,
            "details": self.message,
        }
