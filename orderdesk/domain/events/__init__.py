"""Domain events collected by aggregates and recorded as history."""
from .base import DomainEvent
from .order_events import (
    BillingNoteAddedEvent,
    InvoiceDerivedEvent,
    InvoiceVoidedEvent,
    OrderCreatedEvent,
    OrderDeletedEvent,
    OrderEditedEvent,
    OrderRestoredEvent,
    OrderStatusChangedEvent,
    PaymentRecordedEvent,
)

__all__ = [
    "DomainEvent",
    "BillingNoteAddedEvent",
    "InvoiceDerivedEvent",
    "InvoiceVoidedEvent",
    "OrderCreatedEvent",
    "OrderDeletedEvent",
    "OrderEditedEvent",
    "OrderRestoredEvent",
    "OrderStatusChangedEvent",
    "PaymentRecordedEvent",
]
