from __future__ import annotations

from pydantic import Field, field_validator

from orderdesk.domain.value_objects.order_number import validate_prefix
from orderdesk.settings.base import OrderDeskBaseSettings


class OrderingSettings(OrderDeskBaseSettings):
    """
    Order numbering and lifecycle settings.
    Loaded from .env file with exact variable name matching.
    """

    order_number_prefix: str = Field("ORD-", alias="ORDER_NUMBER_PREFIX")
    counter_path: str = Field("counters/orders", alias="ORDER_COUNTER_PATH")
    default_step: int = Field(6, alias="ORDER_DEFAULT_STEP", gt=0)
    transaction_retries: int = Field(25, alias="ORDER_TRANSACTION_RETRIES", gt=0)

    @field_validator("order_number_prefix")
    @classmethod
    def _parseable_prefix(cls, value: str) -> str:
        # Numbers minted with this prefix must parse back as OrderNumber
        return validate_prefix(value.strip().upper())
