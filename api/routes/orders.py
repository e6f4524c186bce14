"""
Orders management endpoints.

Lifecycle transitions, admin edits, soft deletion and index maintenance.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_actor, get_order_store
from orderdesk.application.dtos import (
    CreateOrderRequest,
    DeletedOrderDTO,
    DeleteOrderRequest,
    EditOrderRequest,
    HistoryEntryDTO,
    IndexReportDTO,
    OrderDTO,
    OrderListDTO,
    RejectOrderRequest,
)
from orderdesk.application.services import OrderStore
from orderdesk.domain.entities import Order
from orderdesk.domain.enums import OrderStatus


router = APIRouter()


def _tombstone_to_dto(tombstone: dict) -> DeletedOrderDTO:
    return DeletedOrderDTO(
        order=OrderDTO.from_entity(Order.from_document(tombstone["order"])),
        status_index=tombstone.get("statusIndex") or [],
        reason=tombstone["reason"],
        deleted_at=tombstone["deletedAt"],
        deleted_by=tombstone.get("deletedBy"),
    )


# =============================================================================
# CREATE / LIST / GET
# =============================================================================

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=OrderDTO,
    summary="Create order",
    description="Price the items, allocate the next order number and store the order as pending",
)
async def create_order(
    request: CreateOrderRequest,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    order = await orders.create_order(request, actor=actor)
    return OrderDTO.from_entity(order)


@router.get(
    "",
    response_model=OrderListDTO,
    summary="List orders",
    description="All live orders, optionally filtered by status through the status index",
)
async def list_orders(
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    orders: OrderStore = Depends(get_order_store),
):
    found = await orders.list_orders(order_status)
    return OrderListDTO(orders=[OrderDTO.from_entity(order) for order in found], total=len(found))


@router.get("/deleted", response_model=List[DeletedOrderDTO], summary="List deleted orders")
async def list_deleted(orders: OrderStore = Depends(get_order_store)):
    return [_tombstone_to_dto(tombstone) for tombstone in await orders.list_deleted()]


@router.get("/by-number/{order_number}", response_model=OrderDTO, summary="Get order by number")
async def get_by_number(order_number: str, orders: OrderStore = Depends(get_order_store)):
    return OrderDTO.from_entity(await orders.get_by_number(order_number))


@router.get("/{order_id}", response_model=OrderDTO, summary="Get order by id")
async def get_order(order_id: str, orders: OrderStore = Depends(get_order_store)):
    return OrderDTO.from_entity(await orders.get_order(order_id))


@router.get("/{order_id}/history", response_model=List[HistoryEntryDTO], summary="Order audit trail")
async def order_history(order_id: str, orders: OrderStore = Depends(get_order_store)):
    return [HistoryEntryDTO.from_entity(entry) for entry in await orders.history(order_id)]


# =============================================================================
# EDIT
# =============================================================================

@router.patch("/{order_id}", response_model=OrderDTO, summary="Edit order")
async def edit_order(
    order_id: str,
    request: EditOrderRequest,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    """
    Partial edit. Sending `items` re-prices them and recomputes the total;
    a `total` that disagrees with the recomputation is refused.
    """
    return OrderDTO.from_entity(await orders.edit_order(order_id, request, actor=actor))


# =============================================================================
# LIFECYCLE TRANSITIONS
# =============================================================================

@router.post("/{order_id}/accept", response_model=OrderDTO, summary="pending -> preparing")
async def accept_order(
    order_id: str,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return OrderDTO.from_entity(await orders.accept(order_id, actor=actor))


@router.post("/{order_id}/ready", response_model=OrderDTO, summary="preparing -> ready")
async def mark_ready(
    order_id: str,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return OrderDTO.from_entity(await orders.mark_ready(order_id, actor=actor))


@router.post("/{order_id}/deliver", response_model=OrderDTO, summary="ready -> delivered")
async def mark_delivered(
    order_id: str,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return OrderDTO.from_entity(await orders.mark_delivered(order_id, actor=actor))


@router.post("/{order_id}/reject", response_model=OrderDTO, summary="pending -> rejected")
async def reject_order(
    order_id: str,
    request: RejectOrderRequest,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return OrderDTO.from_entity(await orders.reject(order_id, request.reason, actor=actor))


@router.post("/{order_id}/recycle", response_model=OrderDTO, summary="rejected -> pending")
async def recycle_order(
    order_id: str,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return OrderDTO.from_entity(await orders.recycle(order_id, actor=actor))


# =============================================================================
# SOFT DELETE / RESTORE
# =============================================================================

@router.delete("/{order_id}", response_model=DeletedOrderDTO, summary="Soft-delete order")
async def delete_order(
    order_id: str,
    request: DeleteOrderRequest,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return _tombstone_to_dto(await orders.soft_delete(order_id, request.reason, actor=actor))


@router.post("/{order_id}/restore", response_model=OrderDTO, summary="Restore deleted order")
async def restore_order(
    order_id: str,
    orders: OrderStore = Depends(get_order_store),
    actor: Optional[str] = Depends(get_actor),
):
    return OrderDTO.from_entity(await orders.restore(order_id, actor=actor))


# =============================================================================
# INDEX MAINTENANCE
# =============================================================================

@router.post("/index/reconcile", response_model=IndexReportDTO, summary="Rebuild status index")
async def reconcile_index(orders: OrderStore = Depends(get_order_store)):
    """Finish interrupted transitions, then diff the whole index against the orders."""
    await orders.repair_pending()
    diff = await orders.reconcile_index()
    return IndexReportDTO(**diff.to_dict())
