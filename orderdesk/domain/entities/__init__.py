from .history import HistoryEntry
from .invoice import BillingNote, Invoice, Payment, payment_terms_days
from .order import ClientInfo, Order, OrderItem, compute_items_total

__all__ = [
    "BillingNote",
    "ClientInfo",
    "HistoryEntry",
    "Invoice",
    "Order",
    "OrderItem",
    "Payment",
    "compute_items_total",
    "payment_terms_days",
]
