from .billing_dto import (
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
from .document_dto import DocumentLookupRequest, IdentityDocument
from .order_dto import (
    ClientDTO,
    CreateOrderRequest,
    DeletedOrderDTO,
    DeleteOrderRequest,
    EditOrderRequest,
    HistoryEntryDTO,
    IndexReportDTO,
    OrderDTO,
    OrderItemDTO,
    OrderItemRequest,
    OrderListDTO,
    RejectOrderRequest,
    TierDTO,
)
from .pricing_dto import CartLineRequest, CartSummaryRequest, LineQuoteRequest, StepRequest

__all__ = [
    "BillingNoteDTO",
    "BillingStatsDTO",
    "CartLineRequest",
    "CartSummaryRequest",
    "ClientDTO",
    "ClientReceivableDTO",
    "CommitmentRequest",
    "CreateOrderRequest",
    "DeletedOrderDTO",
    "DeleteOrderRequest",
    "DocumentLookupRequest",
    "EditOrderRequest",
    "HistoryEntryDTO",
    "IdentityDocument",
    "IndexReportDTO",
    "InvoiceDTO",
    "LineQuoteRequest",
    "OrderDTO",
    "OrderItemDTO",
    "OrderItemRequest",
    "OrderListDTO",
    "PaymentDTO",
    "RecordPaymentRequest",
    "RejectOrderRequest",
    "ReminderRequest",
    "StepRequest",
    "TierDTO",
    "VoidInvoiceRequest",
    "WarningRequest",
]
