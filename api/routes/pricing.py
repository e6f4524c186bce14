"""
Price quote endpoints.

Thin wrappers over the pure pricing engine so storefronts price lines
exactly the way orders are priced.
"""
from fastapi import APIRouter

from orderdesk.application.dtos import CartSummaryRequest, LineQuoteRequest, StepRequest
from orderdesk.domain.pricing import (
    CartLine,
    coerce_tiers,
    compute_cart_summary,
    compute_line,
    next_tier_info,
    normalize_to_step,
)
from orderdesk.settings import get_app_settings


router = APIRouter()


def _tiers(tiers):
    return coerce_tiers([{"minQuantity": t.min_quantity, "discount": t.discount} for t in tiers])


@router.post("/line", summary="Quote one line")
async def quote_line(request: LineQuoteRequest):
    tiers = _tiers(request.tiers)
    line = compute_line(request.base_price, tiers, request.quantity)
    next_tier = next_tier_info(request.quantity, tiers)
    return {
        **line.to_dict(),
        "nextTier": next_tier.to_dict() if next_tier else None,
    }


@router.post("/normalize", summary="Round a quantity up to its sale step")
async def normalize_quantity(request: StepRequest):
    step = get_app_settings().ordering.default_step if request.step is None else request.step
    return {"quantity": normalize_to_step(request.quantity, step)}


@router.post("/cart", summary="Quote a cart")
async def quote_cart(request: CartSummaryRequest):
    lines = [
        CartLine(base=line.base_price, quantity=line.quantity, tiers=_tiers(line.tiers))
        for line in request.lines
    ]
    return compute_cart_summary(lines, request.extra_pct).to_dict()
