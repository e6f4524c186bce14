"""
ORDERDESK DOMAIN ERRORS

Centralized error taxonomy shared by every layer.

Each error tells the caller whether the failed call left state untouched
(`retry_safe=True`) or whether part of it was committed and a repair is
pending (`retry_safe=False`). Callers that see a non retry-safe error must
re-read current state before trying again.
"""
from typing import Optional


class OrderDeskError(Exception):
    """Base exception for all order lifecycle failures."""

    retry_safe: bool = True

    def __init__(self, message: str = "", *, retry_safe: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        if retry_safe is not None:
            self.retry_safe = retry_safe

    @property
    def repair_pending(self) -> bool:
        return not self.retry_safe


class InvalidArgument(OrderDeskError, ValueError):
    """Raised on malformed input (empty rejection reason, bad quantity, ...)."""


class InvalidTransition(OrderDeskError):
    """Raised when a status change is not permitted from the current state."""


class NotFound(OrderDeskError, LookupError):
    """Raised when operating on a non-existent order, invoice or tombstone."""


class Conflict(OrderDeskError):
    """Raised when concurrent writers or index drift cannot be resolved."""


class UpstreamFailure(OrderDeskError):
    """Raised when the backing store or an external callable fails."""

    def __init__(
        self,
        message: str = "",
        *,
        partially_applied: bool = False,
        retry_safe: Optional[bool] = None,
    ):
        if retry_safe is None:
            retry_safe = not partially_applied
        super().__init__(message, retry_safe=retry_safe)
        self.partially_applied = partially_applied


class PartiallyApplied(UpstreamFailure):
    """
    Raised when the first step of a two-step write committed but the
    second did not, and the immediate repair also failed.

    The write-ahead marker for the order is left in place so
    `OrderStore.repair_pending()` can finish the job later.
    """

    def __init__(self, message: str = "", *, order_id: str = ""):
        super().__init__(message, partially_applied=True)
        self.order_id = order_id
