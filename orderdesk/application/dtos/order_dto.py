"""Application DTOs for Order operations."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orderdesk.domain.entities import ClientInfo, HistoryEntry, Order, OrderItem


class TierDTO(BaseModel):
    """Quantity discount tier."""

    min_quantity: int = Field(..., ge=0, description="Minimum quantity that unlocks the tier")
    discount: Decimal = Field(..., ge=0, lt=1, description="Fraction off the base price")

    model_config = {"frozen": True}


class ClientDTO(BaseModel):
    """Customer identity copied onto the order."""

    name: str = Field(..., description="Client or business name")
    address: Optional[str] = Field(None, description="Fiscal address")
    tax_id: Optional[str] = Field(None, description="RUC or DNI")
    client_id: Optional[str] = Field(None, description="Client record id")
    phone: Optional[str] = Field(None, description="Contact phone")

    model_config = {"frozen": True}

    def to_entity(self) -> ClientInfo:
        return ClientInfo(
            name=self.name,
            address=self.address,
            tax_id=self.tax_id,
            client_id=self.client_id,
            phone=self.phone,
        )

    @classmethod
    def from_entity(cls, client: ClientInfo) -> "ClientDTO":
        return cls(
            name=client.name,
            address=client.address,
            tax_id=client.tax_id,
            client_id=client.client_id,
            phone=client.phone,
        )


class OrderItemRequest(BaseModel):
    """Line item as sent by the cart or an operator."""

    name: str = Field(..., description="Product name")
    quantity: int = Field(..., description="Units ordered (integer > 0)")
    base_price: Decimal = Field(..., description="Base unit price before tiers")
    tiers: List[TierDTO] = Field(default_factory=list, description="Quantity discount table")
    step: Optional[int] = Field(None, description="Ordering multiple for wholesale lines")
    product_id: Optional[str] = Field(None, description="Catalog product id")

    model_config = {"frozen": True}


class CreateOrderRequest(BaseModel):
    """Request DTO for creating an order."""

    client: ClientDTO
    items: List[OrderItemRequest] = Field(..., description="Order items")
    payment_terms: str = Field(default="contado", description="contado, credito_7, credito_15 or credito_30")
    channel: str = Field(default="retail", description="retail or wholesale")
    notes: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = None

    model_config = {"frozen": True}


class EditOrderRequest(BaseModel):
    """
    Partial admin edit. Only fields explicitly sent are applied.

    Identity, number, status and timestamps are not editable.
    """

    items: Optional[List[OrderItemRequest]] = None
    total: Optional[Decimal] = None
    client: Optional[ClientDTO] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class RejectOrderRequest(BaseModel):
    reason: str = Field(..., description="Why the order is rejected")


class DeleteOrderRequest(BaseModel):
    reason: str = Field(..., description="Why the order is deleted")


class OrderItemDTO(BaseModel):
    """Response DTO for a priced order item."""

    name: str
    quantity: int
    base_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    tiers: List[TierDTO] = Field(default_factory=list)
    product_id: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, item: OrderItem) -> "OrderItemDTO":
        return cls(
            name=item.name,
            quantity=item.quantity,
            base_price=item.base_price,
            unit_price=item.unit_price,
            line_total=item.line_total,
            tiers=[TierDTO(min_quantity=t.min_quantity, discount=t.discount) for t in item.tiers],
            product_id=item.product_id,
        )


class OrderDTO(BaseModel):
    """Response DTO for order details."""

    id: str
    order_number: str
    status: str
    client: ClientDTO
    items: List[OrderItemDTO] = Field(default_factory=list)
    total: Decimal
    currency: str
    payment_terms: str
    channel: str
    notes: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    billed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, order: Order) -> "OrderDTO":
        return cls(
            id=order.id,
            order_number=order.order_number.value,
            status=order.status.value,
            client=ClientDTO.from_entity(order.client),
            items=[OrderItemDTO.from_entity(item) for item in order.items],
            total=order.total.amount,
            currency=order.total.currency,
            payment_terms=order.payment_terms,
            channel=order.channel,
            notes=order.notes,
            delivery_address=order.delivery_address,
            delivery_phone=order.delivery_phone,
            rejection_reason=order.rejection_reason,
            created_at=order.created_at,
            accepted_at=order.accepted_at,
            ready_at=order.ready_at,
            delivered_at=order.delivered_at,
            rejected_at=order.rejected_at,
            billed_at=order.billed_at,
            paid_at=order.paid_at,
            updated_at=order.updated_at,
        )


class OrderListDTO(BaseModel):
    """DTO for listing orders."""

    orders: List[OrderDTO] = Field(default_factory=list)
    total: int = Field(..., ge=0)

    model_config = {"frozen": True}


class DeletedOrderDTO(BaseModel):
    """Tombstone of a soft-deleted order."""

    order: OrderDTO
    status_index: List[str] = Field(default_factory=list)
    reason: str
    deleted_at: datetime
    deleted_by: Optional[str] = None

    model_config = {"frozen": True}


class HistoryEntryDTO(BaseModel):
    id: str
    order_id: str
    timestamp: datetime
    actor: str
    action: str
    previous_value: Any = None
    new_value: Any = None
    details: Optional[str] = None
    execution_id: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, entry: HistoryEntry) -> "HistoryEntryDTO":
        return cls(
            id=entry.id,
            order_id=entry.order_id,
            timestamp=entry.timestamp,
            actor=entry.actor,
            action=entry.action,
            previous_value=entry.previous_value,
            new_value=entry.new_value,
            details=entry.details,
            execution_id=entry.execution_id,
        )


class IndexReportDTO(BaseModel):
    """Memberships removed and added by an index repair."""

    removed: List[Dict[str, str]] = Field(default_factory=list)
    added: List[Dict[str, str]] = Field(default_factory=list)
