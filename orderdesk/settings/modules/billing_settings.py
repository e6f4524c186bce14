from __future__ import annotations

from decimal import Decimal

from pydantic import Field

from orderdesk.settings.base import OrderDeskBaseSettings


class BillingSettings(OrderDeskBaseSettings):
    """
    Billing settings.
    Loaded from .env file with exact variable name matching.
    """

    default_terms_days: int = Field(7, alias="BILLING_DEFAULT_TERMS_DAYS", ge=0)
    igv_factor: Decimal = Field(Decimal("1.18"), alias="BILLING_IGV_FACTOR", gt=1)
    currency: str = Field("PEN", alias="BILLING_CURRENCY", min_length=3, max_length=3)
