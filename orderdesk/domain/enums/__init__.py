from .statuses import InvoiceStatus, NoteKind, OrderStatus

__all__ = ["InvoiceStatus", "NoteKind", "OrderStatus"]
