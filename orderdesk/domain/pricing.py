"""
Quantity-tier pricing engine.

Pure functions with no I/O and no hidden state: the same inputs always
produce the same outputs.

Rounding rule (MUST HOLD):
    total     = round2(base * quantity * (1 - discount))
    unitPrice = round2(total / quantity)
    savings   = round2(base * quantity - total)

The line total is rounded exactly once. Downstream sums add already
rounded totals and never round again.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_CEILING
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import InvalidArgument
from .value_objects.value_objects import round2, to_decimal

DEFAULT_STEP = 6
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class QtyDiscount:
    """
    Quantity discount tier.

    Attributes:
        min_quantity: Minimum quantity (inclusive) that unlocks the tier
        discount: Fraction off the base unit price, in [0, 1)
    """
    min_quantity: int
    discount: Decimal

    def __post_init__(self):
        if isinstance(self.min_quantity, bool) or not isinstance(self.min_quantity, int):
            raise InvalidArgument(f"Tier min_quantity must be an integer: {self.min_quantity!r}")
        if self.min_quantity < 0:
            raise InvalidArgument(f"Tier min_quantity cannot be negative: {self.min_quantity}")

        discount = to_decimal(self.discount)
        if not (Decimal("0") <= discount < Decimal("1")):
            raise InvalidArgument(f"Tier discount must be a fraction in [0, 1): {discount}")
        object.__setattr__(self, 'discount', discount)

    @classmethod
    def from_percent(cls, min_quantity: int, percent: Any) -> "QtyDiscount":
        """Build a tier from a 0-100 percentage."""
        return cls(min_quantity=min_quantity, discount=to_decimal(percent) / 100)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QtyDiscount":
        """
        Accept both stored documents and loose client payloads:
        {"minQuantity": 6, "discount": "0.05"} or {"from": 6, "discountPct": 5}
        """
        min_quantity = data.get("minQuantity", data.get("min_quantity", data.get("from")))
        if min_quantity is None:
            raise InvalidArgument(f"Tier is missing its minimum quantity: {dict(data)}")
        if "discountPct" in data:
            return cls.from_percent(int(min_quantity), data["discountPct"])
        if "discount" not in data:
            raise InvalidArgument(f"Tier is missing its discount: {dict(data)}")
        return cls(min_quantity=int(min_quantity), discount=data["discount"])

    @property
    def percent(self) -> Decimal:
        return (self.discount * 100).quantize(Decimal("0.01"))

    def to_dict(self) -> dict:
        return {"minQuantity": self.min_quantity, "discount": str(self.discount)}


TierInput = Union[QtyDiscount, Mapping[str, Any]]


def coerce_tiers(tiers: Optional[Iterable[TierInput]]) -> Tuple[QtyDiscount, ...]:
    """Normalize a tier table given as value objects or mappings."""
    if not tiers:
        return ()
    return tuple(
        tier if isinstance(tier, QtyDiscount) else QtyDiscount.from_dict(tier)
        for tier in tiers
    )


@dataclass(frozen=True)
class LineCalc:
    """Priced line: unit price after tier, total, savings and applied percentage."""
    unit_price: Decimal
    total: Decimal
    savings: Decimal
    discount_pct: Decimal
    base_total: Decimal

    def to_dict(self) -> dict:
        return {
            "unitPrice": str(self.unit_price),
            "total": str(self.total),
            "savings": str(self.savings),
            "discountPct": str(self.discount_pct),
            "baseTotal": str(self.base_total),
        }


EMPTY_LINE = LineCalc(
    unit_price=ZERO, total=ZERO, savings=ZERO, discount_pct=ZERO, base_total=ZERO
)


def _as_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(f"Quantity must be an integer: {value!r}")
    if isinstance(value, int):
        return value
    quantity = to_decimal(value)
    if quantity != quantity.to_integral_value():
        raise InvalidArgument(f"Quantity must be an integer: {value!r}")
    return int(quantity)


def best_discount_for(quantity: int, tiers: Optional[Iterable[TierInput]]) -> Optional[QtyDiscount]:
    """Tier with the greatest min_quantity not above `quantity`, if any."""
    best: Optional[QtyDiscount] = None
    for tier in coerce_tiers(tiers):
        if tier.min_quantity <= quantity and (best is None or tier.min_quantity > best.min_quantity):
            best = tier
    return best


def compute_line(
    base_unit_price: Any,
    tiers: Optional[Iterable[TierInput]],
    requested_quantity: Any,
) -> LineCalc:
    """
    Price one cart line.

    A non-positive quantity or base price yields an all-zero line.

    Example:
        compute_line(10, [{"minQuantity": 6, "discount": "0.05"}], 6)
        -> unit 9.50, total 57.00, savings 3.00, discountPct 5.00
    """
    base = to_decimal(base_unit_price)
    quantity = _as_quantity(requested_quantity)

    if base <= 0 or quantity <= 0:
        return EMPTY_LINE

    tier = best_discount_for(quantity, tiers)
    discount = tier.discount if tier else Decimal("0")

    gross = base * quantity
    total = round2(gross * (1 - discount))

    return LineCalc(
        unit_price=round2(total / quantity),
        total=total,
        savings=round2(gross - total),
        discount_pct=(discount * 100).quantize(Decimal("0.01")),
        base_total=round2(gross),
    )


def normalize_to_step(quantity: Any, step: Optional[int] = None) -> int:
    """
    Round a requested quantity UP to the nearest multiple of `step`.

    `step` defaults to 6 when the product defines none. Zero or negative
    quantities normalize to 0, which means "remove the line".
    """
    if step is None:
        step = DEFAULT_STEP
    if isinstance(step, bool) or not isinstance(step, int) or step <= 0:
        raise InvalidArgument(f"Step must be a positive integer, got: {step!r}")

    requested = to_decimal(quantity)
    if requested <= 0:
        return 0

    multiples = (requested / step).to_integral_value(rounding=ROUND_CEILING)
    return int(multiples) * step


@dataclass(frozen=True)
class NextTier:
    """Next tier the buyer can reach and how many units are still missing."""
    next_from: int
    missing: int
    discount: Decimal

    def to_dict(self) -> dict:
        return {
            "nextFrom": self.next_from,
            "missing": self.missing,
            "discountPct": str((self.discount * 100).quantize(Decimal("0.01"))),
        }


def next_tier_info(quantity: int, tiers: Optional[Iterable[TierInput]]) -> Optional[NextTier]:
    """Smallest tier above `quantity`, for "add N more to save X%" hints."""
    for tier in sorted(coerce_tiers(tiers), key=lambda t: t.min_quantity):
        if quantity < tier.min_quantity:
            return NextTier(
                next_from=tier.min_quantity,
                missing=tier.min_quantity - quantity,
                discount=tier.discount,
            )
    return None


@dataclass(frozen=True)
class CartLine:
    """Cart input line: wholesale base price, tier table and quantity."""
    base: Decimal
    quantity: int
    tiers: Tuple[QtyDiscount, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CartSummary:
    subtotal: Decimal
    volume_savings: Decimal
    extra_savings: Decimal
    total: Decimal
    lines: List[LineCalc]

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "volumeSavings": str(self.volume_savings),
            "extraSavings": str(self.extra_savings),
            "total": str(self.total),
            "lines": [line.to_dict() for line in self.lines],
        }


def compute_cart_summary(lines: Sequence[CartLine], extra_pct: Any = 0) -> CartSummary:
    """
    Price a whole cart.

    `extra_pct` is an additional fraction (e.g. 0.05 for a 5% promo code)
    applied after volume discounts.
    """
    extra = to_decimal(extra_pct or 0)
    if not (Decimal("0") <= extra < Decimal("1")):
        raise InvalidArgument(f"Extra discount must be a fraction in [0, 1): {extra}")

    priced = [compute_line(line.base, line.tiers, line.quantity) for line in lines]

    subtotal = sum((line.base_total for line in priced), ZERO)
    volume_savings = sum((line.savings for line in priced), ZERO)
    after_volume = subtotal - volume_savings
    extra_savings = round2(after_volume * extra)

    return CartSummary(
        subtotal=subtotal,
        volume_savings=volume_savings,
        extra_savings=extra_savings,
        total=after_volume - extra_savings,
        lines=priced,
    )
