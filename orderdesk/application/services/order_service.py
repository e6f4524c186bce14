"""
Application service for Order operations (the OrderStore).

Every status transition is a two-step write: the order record, then its
StatusIndex membership. A write-ahead marker under
`indexRepairs/{orderId}/{executionId}` brackets the pair so an interrupted
transition can be finished later by `repair_pending()`. Each transition owns
its marker; a concurrent transition never clears another's.
"""
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from orderdesk.application.dtos.order_dto import CreateOrderRequest, EditOrderRequest, OrderItemRequest
from orderdesk.application.services.history_recorder import HistoryRecorder
from orderdesk.application.services.sequence_allocator import SequenceAllocator
from orderdesk.domain.entities import ClientInfo, HistoryEntry, Order, OrderItem
from orderdesk.domain.entities.order import CHANNELS, PAYMENT_TERMS
from orderdesk.domain.enums import OrderStatus
from orderdesk.domain.events import DomainEvent, OrderDeletedEvent, OrderRestoredEvent
from orderdesk.domain.exceptions import (
    Conflict,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    OrderDeskError,
    PartiallyApplied,
    UpstreamFailure,
)
from orderdesk.domain.lifecycle import is_editable
from orderdesk.domain.repositories import DocumentStore
from orderdesk.domain.status_index import (
    INDEX_ROOT,
    IndexDiff,
    actual_memberships,
    bucket_path,
    diff_index,
    expected_memberships,
    membership_path,
)
from orderdesk.domain.value_objects import ExecutionID, OrderNumber
from orderdesk.domain.value_objects.order_number import ORDER_NUMBER_PREFIX, validate_prefix
from orderdesk.domain.value_objects.value_objects import DEFAULT_CURRENCY
from orderdesk.infrastructure.logging import get_logger
from orderdesk.utils.datetime import to_iso, utc_now

logger = get_logger(__name__)

ORDERS_ROOT = "orders"
REPAIRS_ROOT = "indexRepairs"
DELETED_ROOT = "deletedOrders"

# Re-reads of a moving order before a repair gives up
_REPAIR_ATTEMPTS = 5


def order_path(order_id: str) -> str:
    return f"{ORDERS_ROOT}/{order_id}"


def marker_root(order_id: str) -> str:
    return f"{REPAIRS_ROOT}/{order_id}"


def marker_path(order_id: str, execution_id: str) -> str:
    return f"{REPAIRS_ROOT}/{order_id}/{execution_id}"


def tombstone_path(order_id: str) -> str:
    return f"{DELETED_ROOT}/{order_id}"


class OrderStore:
    """
    Application service owning the order record and its lifecycle.

    Responsibilities:
    - Number new orders through the SequenceAllocator
    - Validate before writing (InvalidArgument / InvalidTransition leave
      state untouched)
    - Keep the StatusIndex equal to f(orders), repairing drift
    - Append one history entry per domain event
    """

    def __init__(
        self,
        store: DocumentStore,
        allocator: SequenceAllocator,
        history: HistoryRecorder,
        *,
        order_number_prefix: str = ORDER_NUMBER_PREFIX,
        currency: str = DEFAULT_CURRENCY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._history = history
        self._prefix = validate_prefix(order_number_prefix)
        self._currency = currency
        self._clock = clock

    # =========================================================================
    # CREATION
    # =========================================================================

    async def create_order(self, request: CreateOrderRequest, actor: Optional[str] = None) -> Order:
        """
        Price, number and persist a new order in `pending`.

        Input is fully validated before a number is allocated, so invalid
        requests never consume a correlative.
        """
        if not request.items:
            raise InvalidArgument("An order needs at least one item")
        if request.payment_terms not in PAYMENT_TERMS:
            raise InvalidArgument(f"Unknown payment terms: {request.payment_terms}")
        if request.channel not in CHANNELS:
            raise InvalidArgument(f"Unknown channel: {request.channel}")

        items = [self._price_item(item) for item in request.items]
        client = self._client(request.client)

        execution_id = str(ExecutionID.generate())
        sequence = await self._allocator.next()
        order_number = OrderNumber.from_sequence(sequence, self._prefix)

        order = Order.create(
            order_id=str(uuid.uuid4()),
            order_number=order_number,
            client=client,
            items=items,
            created_at=self._clock(),
            payment_terms=request.payment_terms,
            channel=request.channel,
            notes=request.notes,
            delivery_address=request.delivery_address,
            delivery_phone=request.delivery_phone,
            currency=self._currency,
            actor=actor,
            execution_id=execution_id,
        )

        await self._begin_index_move(order.id, execution_id, None, OrderStatus.PENDING)
        await self._store.set(order_path(order.id), order.to_document())
        await self._finish_index_move(order.id, execution_id, None, OrderStatus.PENDING)
        await self._record_history(order.id, order.get_domain_events())
        order.clear_domain_events()

        logger.info(
            f"Order {order.order_number} created ({order.id}): "
            f"{len(order.items)} item(s), total {order.total}"
        )
        return order

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def accept(self, order_id: str, actor: Optional[str] = None) -> Order:
        return await self._transition(order_id, OrderStatus.PREPARING, actor=actor)

    async def mark_ready(self, order_id: str, actor: Optional[str] = None) -> Order:
        return await self._transition(order_id, OrderStatus.READY, actor=actor)

    async def mark_delivered(self, order_id: str, actor: Optional[str] = None) -> Order:
        return await self._transition(order_id, OrderStatus.DELIVERED, actor=actor)

    async def reject(self, order_id: str, reason: str, actor: Optional[str] = None) -> Order:
        """Requires a non-empty reason; sets rejectedAt and rejectionReason."""
        return await self._transition(order_id, OrderStatus.REJECTED, actor=actor, reason=reason)

    async def recycle(self, order_id: str, actor: Optional[str] = None) -> Order:
        """Back to pending. rejectionReason is kept as a historical trace."""
        return await self._transition(order_id, OrderStatus.PENDING, actor=actor)

    async def mark_billed(self, order_id: str, actor: Optional[str] = None) -> Order:
        return await self._transition(order_id, OrderStatus.BILLED, actor=actor)

    async def mark_paid(self, order_id: str, actor: Optional[str] = None) -> Order:
        return await self._transition(order_id, OrderStatus.PAID, actor=actor)

    async def _transition(
        self,
        order_id: str,
        target: OrderStatus,
        *,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Order:
        order = await self.get_order(order_id)
        previous = order.status
        execution_id = str(ExecutionID.generate())

        # Validates; raises before anything is written
        fields = order.transition_to(
            target, at=self._clock(), actor=actor, reason=reason, execution_id=execution_id
        )

        await self._begin_index_move(order_id, execution_id, previous, target)

        def apply(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            if current is None:
                raise NotFound(f"Order {order_id} not found")
            if current.get("status") != previous.value:
                raise InvalidTransition(
                    f"Order {order_id} changed concurrently "
                    f"(expected '{previous.value}', found '{current.get('status')}')"
                )
            return {**current, **fields}

        try:
            await self._store.transaction(order_path(order_id), apply)
        except (NotFound, InvalidTransition, Conflict):
            await self._store.remove(marker_path(order_id, execution_id))
            raise

        await self._finish_index_move(order_id, execution_id, previous, target)
        await self._record_history(order_id, order.get_domain_events())
        order.clear_domain_events()

        logger.info(f"Order {order.order_number}: {previous.value} -> {target.value} (by {actor or 'system'})")
        return order

    # =========================================================================
    # EDITS, DELETION, RESTORE
    # =========================================================================

    async def edit_order(
        self,
        order_id: str,
        request: EditOrderRequest,
        actor: Optional[str] = None,
    ) -> Order:
        """
        Apply an admin edit. Item changes are re-priced and the total
        recomputed.

        The changed fields are merged into the latest stored record in one
        transaction: concurrent edits of different fields both survive, and
        an order deleted or paid in the meantime is left alone.
        """
        order = await self.get_order(order_id)

        changes: Dict[str, Any] = {}
        for name in request.model_fields_set:
            value = getattr(request, name)
            if name == "items":
                if value is None:
                    raise InvalidArgument("Items cannot be cleared")
                value = [self._price_item(item) for item in value]
            elif name == "client":
                if value is None:
                    raise InvalidArgument("Client cannot be cleared")
                value = self._client(value)
            changes[name] = value

        fields = order.apply_edit(
            changes, at=self._clock(), actor=actor, execution_id=str(ExecutionID.generate())
        )

        def apply(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            if current is None:
                raise NotFound(f"Order {order_id} was deleted before the edit was saved")
            if not is_editable(Order.from_document(current).status):
                raise InvalidTransition(
                    f"Order {order_id} cannot be edited in status '{current['status']}'"
                )
            merged = dict(current)
            for key, value in fields.items():
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            return merged

        stored = await self._store.transaction(order_path(order_id), apply)
        await self._record_history(order_id, order.get_domain_events())
        order.clear_domain_events()

        logger.info(f"Order {order.order_number} edited: {', '.join(sorted(changes))}")
        return Order.from_document(stored)

    async def soft_delete(self, order_id: str, reason: str, actor: Optional[str] = None) -> Dict[str, Any]:
        """
        Move an order to the deleted set.

        The tombstone keeps a verbatim copy of the order and the buckets
        it was indexed under. It is written first, so the order is never lost.
        """
        reason = (reason or "").strip()
        if not reason:
            raise InvalidArgument("A deletion reason is required")

        document = await self._store.get(order_path(order_id))
        if document is None:
            raise NotFound(f"Order {order_id} not found")

        memberships = await self._memberships_of(order_id)
        deleted_at = self._clock()
        tombstone = {
            "order": document,
            "statusIndex": sorted(memberships),
            "reason": reason,
            "deletedAt": to_iso(deleted_at),
            "deletedBy": actor,
        }

        await self._store.set(tombstone_path(order_id), tombstone)
        try:
            await self._store.remove(order_path(order_id))
            for status in memberships:
                await self._store.remove(membership_path(status, order_id))
        except UpstreamFailure as e:
            raise UpstreamFailure(
                f"Order {order_id} was tombstoned but not fully removed: {e.message}",
                partially_applied=True,
            ) from e

        await self._record_history(order_id, [
            OrderDeletedEvent(
                order_id=order_id,
                reason=reason,
                status=document.get("status", ""),
                user_id=actor,
                execution_id=str(ExecutionID.generate()),
                occurred_at=deleted_at,
            )
        ])

        logger.info(f"Order {document.get('orderNumber')} deleted by {actor or 'system'}: {reason}")
        return tombstone

    async def restore(self, order_id: str, actor: Optional[str] = None) -> Order:
        """
        Reinsert the tombstoned copy verbatim and index it under the status
        the copy held. Restored state is authoritative.
        """
        tombstone = await self._store.get(tombstone_path(order_id))
        if tombstone is None:
            raise NotFound(f"No deleted order {order_id}")
        if await self._store.get(order_path(order_id)) is not None:
            raise Conflict(f"Order {order_id} is live; refusing to overwrite it")

        document = tombstone["order"]
        order = Order.from_document(document)

        await self._store.set(order_path(order_id), document)
        try:
            await self.repair_index(order_id)
            await self._store.remove(tombstone_path(order_id))
        except UpstreamFailure as e:
            raise UpstreamFailure(
                f"Order {order_id} was restored but cleanup did not finish: {e.message}",
                partially_applied=True,
            ) from e

        await self._record_history(order_id, [
            OrderRestoredEvent(
                order_id=order_id,
                status=order.status.value,
                user_id=actor,
                execution_id=str(ExecutionID.generate()),
                occurred_at=self._clock(),
            )
        ])

        logger.info(f"Order {order.order_number} restored as {order.status.value}")
        return order

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        document = await self._store.get(order_path(order_id))
        if document is None:
            raise NotFound(f"Order {order_id} not found")
        return Order.from_document(document)

    async def get_by_number(self, order_number: str) -> Order:
        number = OrderNumber(order_number.strip().upper())
        for order in await self.list_orders():
            if order.order_number == number:
                return order
        raise NotFound(f"Order {number} not found")

    async def list_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """
        List orders, oldest number first.

        With a status filter the StatusIndex is read; entries whose order
        disagrees with the bucket are skipped and left for repair.
        """
        if status is None:
            tree = await self._store.get(ORDERS_ROOT) or {}
            orders = [order for order in map(self._load, tree.values()) if order is not None]
        else:
            try:
                status = OrderStatus(status)
            except ValueError:
                raise InvalidArgument(f"Unknown order status: {status!r}")
            bucket = await self._store.get(bucket_path(status.value)) or {}
            orders = []
            for order_id in bucket:
                document = await self._store.get(order_path(order_id))
                if document is None or document.get("status") != status.value:
                    logger.warning(f"Stale index entry {status.value}/{order_id}")
                    continue
                order = self._load(document)
                if order is not None:
                    orders.append(order)
        return sorted(orders, key=lambda order: order.order_number.sequence)

    @staticmethod
    def _load(document: Dict[str, Any]) -> Optional[Order]:
        try:
            return Order.from_document(document)
        except Conflict as e:
            logger.error(f"Skipping unreadable order record: {e.message}")
            return None

    async def list_deleted(self) -> List[Dict[str, Any]]:
        tree = await self._store.get(DELETED_ROOT) or {}
        return sorted(tree.values(), key=lambda tombstone: tombstone.get("deletedAt") or "")

    async def history(self, order_id: str) -> List[HistoryEntry]:
        return await self._history.entries_for(order_id)

    # =========================================================================
    # INDEX MAINTENANCE
    # =========================================================================

    async def repair_index(self, order_id: str) -> IndexDiff:
        """
        Make the order's index membership match the order record.

        Idempotent, and safe to run concurrently with itself and with
        transitions: after applying its diff the repair reads the order
        again and starts over if the status moved under it. Clears the
        repair markers that existed when it started. A missing order loses
        every membership.
        """
        markers = await self._store.get(marker_root(order_id)) or {}

        diff = await self._settle_memberships(order_id)
        for execution_id in sorted(markers):
            await self._store.remove(marker_path(order_id, execution_id))

        if not diff.is_clean:
            logger.warning(f"Repaired index for order {order_id}: {diff.to_dict()}")
        return diff

    async def repair_pending(self) -> Dict[str, IndexDiff]:
        """Finish every transition interrupted between its two writes."""
        markers = await self._store.get(REPAIRS_ROOT) or {}
        repaired = {}
        for order_id in sorted(markers):
            repaired[order_id] = await self.repair_index(order_id)
        if repaired:
            logger.info(f"Swept {len(repaired)} pending index repair(s)")
        return repaired

    async def reconcile_index(self) -> IndexDiff:
        """
        Full rebuild-by-diff of the StatusIndex from every live order.

        The bulk snapshot only nominates drifted orders; each one is then
        repaired against its live record, so a transition that lands while
        the snapshot is taken is never undone.
        """
        orders = await self._store.get(ORDERS_ROOT) or {}
        index = await self._store.get(INDEX_ROOT) or {}

        drift = diff_index(expected_memberships(orders.values()), actual_memberships(index))
        drifted = sorted({order_id for _, order_id in drift.removals + drift.additions})

        diff = IndexDiff()
        for order_id in drifted:
            diff.extend(await self._settle_memberships(order_id))

        if diff.is_clean:
            logger.info("StatusIndex reconciled: no drift")
        else:
            logger.warning(f"StatusIndex reconciled: {diff.to_dict()}")
        return diff

    async def _settle_memberships(self, order_id: str) -> IndexDiff:
        applied = IndexDiff()
        for attempt in range(1, _REPAIR_ATTEMPTS + 1):
            status = await self._live_status(order_id)
            expected = {order_id: status} if status is not None else {}
            diff = diff_index(expected, {order_id: await self._memberships_of(order_id)})
            await self._apply_diff(diff)
            applied.extend(diff)

            if await self._live_status(order_id) == status:
                return applied
            logger.info(f"Order {order_id} moved during index repair (attempt {attempt}); repairing again")

        raise Conflict(f"Order {order_id} kept changing status; index repair did not settle")

    async def _live_status(self, order_id: str) -> Optional[str]:
        document = await self._store.get(order_path(order_id))
        if document is None:
            return None
        try:
            return OrderStatus(document.get("status")).value
        except ValueError:
            logger.error(f"Order {order_id} has unknown status {document.get('status')!r}; index left as is")
            raise Conflict(f"Order {order_id} has unknown status: {document.get('status')!r}")

    async def _memberships_of(self, order_id: str) -> set:
        present = set()
        for status in OrderStatus:
            if await self._store.get(membership_path(status.value, order_id)):
                present.add(status.value)
        return present

    async def _apply_diff(self, diff: IndexDiff) -> None:
        for status, order_id in diff.removals:
            await self._store.remove(membership_path(status, order_id))
        for status, order_id in diff.additions:
            await self._store.set(membership_path(status, order_id), True)

    async def _begin_index_move(
        self,
        order_id: str,
        execution_id: str,
        previous: Optional[OrderStatus],
        target: OrderStatus,
    ) -> None:
        await self._store.set(marker_path(order_id, execution_id), {
            "from": previous.value if previous else None,
            "to": target.value,
            "startedAt": to_iso(self._clock()),
        })

    async def _finish_index_move(
        self,
        order_id: str,
        execution_id: str,
        previous: Optional[OrderStatus],
        target: OrderStatus,
    ) -> None:
        """
        Second step of a transition. On failure the index is repaired from
        the order right away; if that fails too the marker stays for the
        sweeper and PartiallyApplied is raised.
        """
        try:
            if previous is not None and previous is not target:
                await self._store.remove(membership_path(previous.value, order_id))
            await self._store.set(membership_path(target.value, order_id), True)
        except UpstreamFailure as e:
            logger.warning(f"Index move for order {order_id} failed ({e.message}); repairing")
            try:
                await self.repair_index(order_id)
            except OrderDeskError as repair_error:
                logger.error(f"Index repair for order {order_id} failed: {repair_error.message}")
                raise PartiallyApplied(
                    f"Order {order_id} is now '{target.value}' but its index entry is pending repair",
                    order_id=order_id,
                ) from repair_error
            return

        try:
            await self._store.remove(marker_path(order_id, execution_id))
        except UpstreamFailure as e:
            # Index is already correct; the sweeper clears the marker
            logger.warning(f"Could not clear repair marker for order {order_id}: {e.message}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _record_history(self, order_id: str, events: List[DomainEvent]) -> None:
        try:
            await self._history.record_events(events)
        except UpstreamFailure as e:
            raise UpstreamFailure(
                f"Order {order_id} changed but its history was not recorded: {e.message}",
                partially_applied=True,
            ) from e

    @staticmethod
    def _price_item(item: OrderItemRequest) -> OrderItem:
        if item.step is not None:
            if item.step <= 0:
                raise InvalidArgument(f"Step must be a positive integer, got: {item.step}")
            if item.quantity % item.step:
                raise InvalidArgument(
                    f"Quantity {item.quantity} of '{item.name}' is not a multiple of {item.step}"
                )
        return OrderItem.priced(
            name=item.name,
            quantity=item.quantity,
            base_price=item.base_price,
            tiers=[{"minQuantity": t.min_quantity, "discount": t.discount} for t in item.tiers],
            product_id=item.product_id,
        )

    @staticmethod
    def _client(client) -> ClientInfo:
        return client.to_entity()
