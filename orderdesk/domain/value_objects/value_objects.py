"""Domain value objects - pure Python immutable types."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
from uuid import UUID, uuid4

from ..exceptions import InvalidArgument

CENT = Decimal("0.01")
DEFAULT_CURRENCY = "PEN"


def to_decimal(value: Any) -> Decimal:
    """Convert user input to Decimal without going through binary floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidArgument(f"Not a number: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgument(f"Not a number: {value!r}")


def round2(value: Any) -> Decimal:
    """Round to cents, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary value with currency.

    CRITICAL: Always use Decimal, never float!
    """
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))

        if not isinstance(self.currency, str) or len(self.currency) != 3:
            raise InvalidArgument(
                f"Currency must be 3-letter ISO code, got: {self.currency}"
            )

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def is_negative(self) -> bool:
        """Check if amount is negative."""
        return self.amount < 0


@dataclass(frozen=True)
class ExecutionID:
    """Unique identifier tying together every write of one operation."""

    value: UUID

    @classmethod
    def generate(cls) -> "ExecutionID":
        """Generate a new ExecutionID."""
        return cls(value=uuid4())

    def __str__(self) -> str:
        """Return string representation."""
        return str(self.value)
