"""
Order aggregate root.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
- fastapi
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..enums import OrderStatus
from ..events.base import DomainEvent
from ..events.order_events import OrderCreatedEvent, OrderEditedEvent, OrderStatusChangedEvent
from ..exceptions import Conflict, InvalidArgument, InvalidTransition
from ..lifecycle import is_editable, timestamp_field_for, validate_transition
from ..pricing import QtyDiscount, coerce_tiers, compute_line
from ..value_objects import Money, OrderNumber, round2, to_decimal
from ..value_objects.value_objects import DEFAULT_CURRENCY
from orderdesk.utils.datetime import parse_iso, to_iso

PAYMENT_TERMS = ("contado", "credito_7", "credito_15", "credito_30")
CHANNELS = ("retail", "wholesale")

EDITABLE_FIELDS = frozenset({
    "items",
    "total",
    "client",
    "notes",
    "payment_terms",
    "delivery_address",
    "delivery_phone",
})

_TIMESTAMP_DOC_KEYS = {
    "created_at": "createdAt",
    "accepted_at": "acceptedAt",
    "ready_at": "readyAt",
    "delivered_at": "deliveredAt",
    "rejected_at": "rejectedAt",
    "billed_at": "billedAt",
    "paid_at": "paidAt",
    "updated_at": "updatedAt",
}

_REQUIRED_DOC_KEYS = ("id", "orderNumber", "status", "total")


@dataclass(frozen=True)
class ClientInfo:
    """Denormalized copy of the customer identity at ordering time."""
    name: str
    address: Optional[str] = None
    tax_id: Optional[str] = None
    client_id: Optional[str] = None
    phone: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidArgument("Client name cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "taxId": self.tax_id,
            "clientId": self.client_id,
            "phone": self.phone,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientInfo":
        return cls(
            name=data.get("name", ""),
            address=data.get("address"),
            tax_id=data.get("taxId"),
            client_id=data.get("clientId"),
            phone=data.get("phone"),
        )


@dataclass
class OrderItem:
    """Priced line item within an order."""
    name: str
    quantity: int
    base_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    tiers: Tuple[QtyDiscount, ...] = ()
    product_id: Optional[str] = None

    @classmethod
    def priced(
        cls,
        name: str,
        quantity: int,
        base_price: Any,
        tiers: Optional[Sequence[Any]] = None,
        product_id: Optional[str] = None,
    ) -> "OrderItem":
        """Build a line item, applying the quantity-tier discount."""
        if not name or not str(name).strip():
            raise InvalidArgument("Item name cannot be empty")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidArgument(f"Item quantity must be a positive integer: {quantity!r}")

        base = round2(base_price)
        if base < 0:
            raise InvalidArgument(f"Item price cannot be negative: {base}")

        tier_table = coerce_tiers(tiers)
        line = compute_line(base, tier_table, quantity)

        return cls(
            name=str(name).strip(),
            quantity=quantity,
            base_price=base,
            unit_price=line.unit_price,
            line_total=line.total,
            tiers=tier_table,
            product_id=product_id,
        )

    def repriced_total(self) -> Decimal:
        """Line total re-derived from base price, tiers and quantity."""
        return compute_line(self.base_price, self.tiers, self.quantity).total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "basePrice": str(self.base_price),
            "unitPrice": str(self.unit_price),
            "lineTotal": str(self.line_total),
            "tiers": [tier.to_dict() for tier in self.tiers],
            "productId": self.product_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderItem":
        return cls(
            name=data["name"],
            quantity=int(data["quantity"]),
            base_price=to_decimal(data["basePrice"]),
            unit_price=to_decimal(data["unitPrice"]),
            line_total=to_decimal(data["lineTotal"]),
            tiers=coerce_tiers(data.get("tiers") or ()),
            product_id=data.get("productId"),
        )


def compute_items_total(items: Sequence[OrderItem], currency: str = DEFAULT_CURRENCY) -> Money:
    """Sum of already-rounded line totals; never re-rounded."""
    return Money(
        amount=sum((item.line_total for item in items), Decimal("0.00")),
        currency=currency,
    )


@dataclass
class Order:
    """
    Order aggregate root.

    `order_number` is assigned once, before the first write, and never
    changes. `total` is derived from `items` at creation and on every
    item edit.
    """
    id: str
    order_number: OrderNumber
    client: ClientInfo
    items: List[OrderItem]
    total: Money
    status: OrderStatus = OrderStatus.PENDING
    payment_terms: str = "contado"
    channel: str = "retail"
    notes: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = None
    total_override: bool = False

    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    billed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    _domain_events: List[DomainEvent] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def create(
        cls,
        *,
        order_id: str,
        order_number: OrderNumber,
        client: ClientInfo,
        items: Sequence[OrderItem],
        created_at: datetime,
        payment_terms: str = "contado",
        channel: str = "retail",
        notes: Optional[str] = None,
        delivery_address: Optional[str] = None,
        delivery_phone: Optional[str] = None,
        currency: str = DEFAULT_CURRENCY,
        actor: Optional[str] = None,
        execution_id: Optional[str] = None,
    ) -> "Order":
        """
        Factory method to create a new, numbered Order.

        Records OrderCreatedEvent.
        """
        if not items:
            raise InvalidArgument("An order needs at least one item")
        _validate_terms(payment_terms)
        if channel not in CHANNELS:
            raise InvalidArgument(f"Unknown channel: {channel}")

        order = cls(
            id=order_id,
            order_number=order_number,
            client=client,
            items=list(items),
            total=compute_items_total(items, currency),
            payment_terms=payment_terms,
            channel=channel,
            notes=notes,
            delivery_address=delivery_address,
            delivery_phone=delivery_phone,
            created_at=created_at,
            updated_at=created_at,
        )
        order._record_event(
            OrderCreatedEvent(
                order_id=order_id,
                order_number=order_number.value,
                total=order.total.amount,
                item_count=len(order.items),
                channel=channel,
                user_id=actor,
                execution_id=execution_id,
                occurred_at=created_at,
            )
        )
        return order

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def transition_to(
        self,
        target: OrderStatus,
        *,
        at: datetime,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
        execution_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply a lifecycle transition.

        Returns the document fields that changed, so the caller can persist
        status and timestamp in one atomic update.

        Raises:
            InvalidTransition: target not reachable from current status
            InvalidArgument: rejection without a reason
        """
        validate_transition(order_id=self.id, from_status=self.status, to_status=target)

        if target is OrderStatus.REJECTED:
            reason = (reason or "").strip()
            if not reason:
                raise InvalidArgument("A rejection reason is required")

        previous = self.status
        self.status = target
        self.updated_at = at
        changed: Dict[str, Any] = {"status": target.value, "updatedAt": to_iso(at)}

        stamp = timestamp_field_for(target)
        if stamp:
            setattr(self, stamp, at)
            changed[_TIMESTAMP_DOC_KEYS[stamp]] = to_iso(at)

        if target is OrderStatus.REJECTED:
            self.rejection_reason = reason
            changed["rejectionReason"] = reason

        self._record_event(
            OrderStatusChangedEvent(
                order_id=self.id,
                previous_status=previous.value,
                new_status=target.value,
                reason=reason,
                user_id=actor,
                execution_id=execution_id,
                occurred_at=at,
            )
        )
        return changed

    def apply_edit(
        self,
        changes: Mapping[str, Any],
        *,
        at: datetime,
        actor: Optional[str] = None,
        execution_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply an administrative edit.

        `items` must already be priced OrderItem instances. When items are
        edited the total is recomputed and a caller-supplied total that
        disagrees is refused. A total-only edit is kept as an override.

        Returns the document fields that changed.
        """
        if not is_editable(self.status):
            raise InvalidTransition(
                f"Order {self.id} cannot be edited in status '{self.status.value}'"
            )
        if not changes:
            raise InvalidArgument("Nothing to edit")
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidArgument(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        # Validate everything before touching state
        new_items: Optional[List[OrderItem]] = None
        new_total: Optional[Money] = None
        if "items" in changes:
            new_items = list(changes["items"] or [])
            if not new_items:
                raise InvalidArgument("An order needs at least one item")
            if not all(isinstance(item, OrderItem) for item in new_items):
                raise InvalidArgument("Edited items must be priced order items")
            new_total = compute_items_total(new_items, self.total.currency)
            if changes.get("total") is not None and round2(changes["total"]) != new_total.amount:
                raise InvalidArgument(
                    f"Total {changes['total']} disagrees with recomputed total {new_total.amount}"
                )
        elif changes.get("total") is not None:
            new_total = Money(amount=round2(changes["total"]), currency=self.total.currency)
            if new_total.is_negative():
                raise InvalidArgument("Total cannot be negative")

        if "client" in changes and not isinstance(changes["client"], ClientInfo):
            raise InvalidArgument("Client must be a ClientInfo")
        if "payment_terms" in changes:
            _validate_terms(changes["payment_terms"])

        previous_values: Dict[str, Any] = {}
        new_values: Dict[str, Any] = {}
        fields: Dict[str, Any] = {}

        if new_items is not None:
            previous_values["items"] = [item.to_dict() for item in self.items]
            self.items = new_items
            new_values["items"] = fields["items"] = [item.to_dict() for item in new_items]
            self.total_override = False
            fields["totalOverride"] = False
        if new_total is not None:
            previous_values["total"] = str(self.total.amount)
            self.total = new_total
            new_values["total"] = fields["total"] = str(new_total.amount)
            if new_items is None:
                self.total_override = True
                fields["totalOverride"] = True
        if "client" in changes:
            previous_values["client"] = self.client.to_dict()
            self.client = changes["client"]
            new_values["client"] = fields["client"] = self.client.to_dict()
        for attr, key in (
            ("notes", "notes"),
            ("payment_terms", "paymentTerms"),
            ("delivery_address", "deliveryAddress"),
            ("delivery_phone", "deliveryPhone"),
        ):
            if attr in changes:
                previous_values[key] = getattr(self, attr)
                setattr(self, attr, changes[attr])
                new_values[key] = fields[key] = changes[attr]

        self.updated_at = at
        fields["updatedAt"] = to_iso(at)

        self._record_event(
            OrderEditedEvent(
                order_id=self.id,
                previous_values=previous_values,
                new_values=new_values,
                user_id=actor,
                execution_id=execution_id,
                occurred_at=at,
            )
        )
        return fields

    def verify_total(self) -> None:
        """
        Consistency check: re-derive every line and the order total.

        Raises:
            Conflict: stored totals drifted from their derivation
        """
        for item in self.items:
            if item.repriced_total() != item.line_total:
                raise Conflict(
                    f"Order {self.id}: line '{item.name}' total {item.line_total} "
                    f"!= repriced {item.repriced_total()}"
                )
        if self.total_override:
            return
        expected = compute_items_total(self.items, self.total.currency)
        if expected != self.total:
            raise Conflict(f"Order {self.id}: total {self.total} != recomputed {expected}")

    # =========================================================================
    # EVENT COLLECTION
    # =========================================================================

    def get_domain_events(self) -> List[DomainEvent]:
        """Get all domain events collected by this aggregate."""
        return list(self._domain_events)

    def clear_domain_events(self) -> None:
        """Clear all collected domain events (after recording)."""
        self._domain_events.clear()

    def _record_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    # =========================================================================
    # DOCUMENT MAPPING
    # =========================================================================

    def to_document(self) -> Dict[str, Any]:
        """Serialize Order state for document storage."""
        document = {
            "id": self.id,
            "orderNumber": self.order_number.value,
            "status": self.status.value,
            "client": self.client.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "total": str(self.total.amount),
            "currency": self.total.currency,
            "totalOverride": self.total_override,
            "paymentTerms": self.payment_terms,
            "channel": self.channel,
            "notes": self.notes,
            "deliveryAddress": self.delivery_address,
            "deliveryPhone": self.delivery_phone,
            "rejectionReason": self.rejection_reason,
        }
        for attr, key in _TIMESTAMP_DOC_KEYS.items():
            document[key] = to_iso(getattr(self, attr))
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Order":
        """Restore Order from a stored document (no events are recorded)."""
        missing = [key for key in _REQUIRED_DOC_KEYS if key not in document]
        if missing:
            raise Conflict(f"Order {document.get('id')} is incomplete: missing {', '.join(missing)}")

        try:
            status = OrderStatus(document["status"])
        except ValueError:
            raise Conflict(f"Order {document.get('id')} has unknown status: {document.get('status')}")

        order = cls(
            id=document["id"],
            order_number=OrderNumber(document["orderNumber"]),
            client=ClientInfo.from_dict(document.get("client") or {}),
            items=[OrderItem.from_dict(item) for item in document.get("items") or []],
            total=Money(
                amount=to_decimal(document["total"]),
                currency=document.get("currency") or DEFAULT_CURRENCY,
            ),
            status=status,
            payment_terms=document.get("paymentTerms") or "contado",
            channel=document.get("channel") or "retail",
            notes=document.get("notes"),
            delivery_address=document.get("deliveryAddress"),
            delivery_phone=document.get("deliveryPhone"),
            total_override=bool(document.get("totalOverride", False)),
            rejection_reason=document.get("rejectionReason"),
        )
        for attr, key in _TIMESTAMP_DOC_KEYS.items():
            setattr(order, attr, parse_iso(document.get(key)))
        return order


def _validate_terms(terms: str) -> None:
    if terms not in PAYMENT_TERMS:
        raise InvalidArgument(
            f"Unknown payment terms '{terms}' (expected one of: {', '.join(PAYMENT_TERMS)})"
        )
