"""Domain value objects."""

from .value_objects import ExecutionID, Money, round2, to_decimal
from .order_number import OrderNumber, format_order_number, validate_prefix

__all__ = [
    "ExecutionID",
    "Money",
    "OrderNumber",
    "format_order_number",
    "round2",
    "to_decimal",
    "validate_prefix",
]
