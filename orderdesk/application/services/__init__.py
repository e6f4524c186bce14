from .billing_service import BillingDeriver
from .document_lookup import DocumentLookupService
from .history_recorder import HistoryRecorder
from .invoicing import build_invoice_payload
from .order_service import OrderStore
from .sequence_allocator import SequenceAllocator

__all__ = [
    "BillingDeriver",
    "DocumentLookupService",
    "HistoryRecorder",
    "OrderStore",
    "SequenceAllocator",
    "build_invoice_payload",
]
