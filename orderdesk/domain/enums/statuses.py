"""
Status Enums.

Closed sets of status values for orders, invoices and billing notes.
"""
from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle status values."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    BILLED = "billed"
    PAID = "paid"


class InvoiceStatus(str, Enum):
    """Invoice status values."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    VOID = "void"


class NoteKind(str, Enum):
    """Follow-up records attached to an order by the collections desk."""

    WARNING = "warning"
    REMINDER = "reminder"
    COMMITMENT = "commitment"
