"""Order number value object."""
import re
from dataclasses import dataclass

from ..exceptions import InvalidArgument

ORDER_NUMBER_PREFIX = "ORD-"
_PREFIX = r"[A-Z]+-"
_PREFIX_PATTERN = re.compile(_PREFIX)
_PATTERN = re.compile(rf"^(?P<prefix>{_PREFIX})(?P<digits>\d{{3,}})$")


def validate_prefix(prefix: str) -> str:
    """Uppercase letters followed by one dash, e.g. ORD- or PED-."""
    if not isinstance(prefix, str) or not _PREFIX_PATTERN.fullmatch(prefix):
        raise InvalidArgument(
            f"Order number prefix must be uppercase letters and a trailing dash, got: {prefix!r}"
        )
    return prefix


def format_order_number(sequence: int, prefix: str = ORDER_NUMBER_PREFIX) -> str:
    """
    Render a correlative as the human-facing order number.

    Values below 1000 are zero-padded to three digits; larger values use
    their natural decimal form, so distinct sequences never collide:
        1 -> ORD-001, 42 -> ORD-042, 1000 -> ORD-1000
    """
    if isinstance(sequence, bool) or not isinstance(sequence, int):
        raise InvalidArgument(f"Order sequence must be an integer, got: {sequence!r}")
    if sequence < 1:
        raise InvalidArgument(f"Order sequence must be positive, got: {sequence}")
    return f"{prefix}{sequence:03d}"


@dataclass(frozen=True)
class OrderNumber:
    """
    Human-facing correlative order identifier.

    Format: PREFIX-### (at least three digits), ORD- by default
    Examples:
    - ORD-001
    - ORD-042
    - ORD-1000
    """
    value: str

    def __post_init__(self):
        if not self.value:
            raise InvalidArgument("Order number cannot be empty")

        match = _PATTERN.match(self.value)
        if not match:
            raise InvalidArgument(
                f"Invalid order number format (expected PREFIX-###): {self.value}"
            )

        digits = match.group("digits")
        # Padding is only ever applied below 1000, so "ORD-0042" is not canonical
        if len(digits) > 3 and digits.startswith("0"):
            raise InvalidArgument(
                f"Order number has non-canonical padding: {self.value}"
            )

    @classmethod
    def from_sequence(cls, sequence: int, prefix: str = ORDER_NUMBER_PREFIX) -> "OrderNumber":
        return cls(format_order_number(sequence, prefix))

    @property
    def sequence(self) -> int:
        return int(_PATTERN.match(self.value).group("digits"))

    def __str__(self) -> str:
        return self.value
