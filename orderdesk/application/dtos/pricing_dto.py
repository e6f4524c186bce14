"""Application DTOs for price quotes."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .order_dto import TierDTO


class LineQuoteRequest(BaseModel):
    base_price: Decimal
    quantity: int
    tiers: List[TierDTO] = Field(default_factory=list)


class StepRequest(BaseModel):
    quantity: int
    step: Optional[int] = Field(None, description="Defaults to 6")


class CartLineRequest(BaseModel):
    base_price: Decimal
    quantity: int
    tiers: List[TierDTO] = Field(default_factory=list)


class CartSummaryRequest(BaseModel):
    lines: List[CartLineRequest]
    extra_pct: Decimal = Field(Decimal("0"), description="Additional fraction off, e.g. a promo code")
