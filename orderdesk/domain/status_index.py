"""
StatusIndex as a materialized view of the order collection.

    index = f(orders)

`expected_memberships` computes the correct index from primary state and
`diff_index` compares it with what is stored. Both are pure; the order
service applies the resulting diff. The order record always wins.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .entities.order import Order

INDEX_ROOT = "ordersByStatus"

Membership = Tuple[str, str]  # (status, order_id)


def bucket_path(status: str) -> str:
    return f"{INDEX_ROOT}/{status}"


def membership_path(status: str, order_id: str) -> str:
    return f"{INDEX_ROOT}/{status}/{order_id}"


def _status_of(order: Union[Order, Mapping[str, Any]]) -> Tuple[str, str]:
    if isinstance(order, Order):
        return order.id, order.status.value
    return order["id"], order.get("status")


def expected_memberships(orders: Iterable[Union[Order, Mapping[str, Any]]]) -> Dict[str, str]:
    """Map every live order id to the one bucket it must be in."""
    return dict(_status_of(order) for order in orders)


def actual_memberships(index_tree: Optional[Mapping[str, Any]]) -> Dict[str, Set[str]]:
    """Map every indexed order id to the buckets it currently appears in."""
    actual: Dict[str, Set[str]] = {}
    for status, bucket in (index_tree or {}).items():
        if not isinstance(bucket, Mapping):
            continue
        for order_id, present in bucket.items():
            if present:
                actual.setdefault(order_id, set()).add(status)
    return actual


@dataclass
class IndexDiff:
    """Memberships to drop and to add so the index matches the orders."""
    removals: List[Membership] = field(default_factory=list)
    additions: List[Membership] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.removals and not self.additions

    def extend(self, other: "IndexDiff") -> None:
        self.removals.extend(other.removals)
        self.additions.extend(other.additions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "removed": [{"status": s, "orderId": o} for s, o in self.removals],
            "added": [{"status": s, "orderId": o} for s, o in self.additions],
        }


def diff_index(expected: Mapping[str, str], actual: Mapping[str, Set[str]]) -> IndexDiff:
    """
    Compare the expected index with the stored one.

    Stale buckets and memberships of orders that no longer exist are
    removed; a missing membership for a live order is added.
    """
    diff = IndexDiff()
    for order_id in sorted(actual):
        wanted = expected.get(order_id)
        for status in sorted(actual[order_id]):
            if status != wanted:
                diff.removals.append((status, order_id))
    for order_id in sorted(expected):
        if expected[order_id] not in actual.get(order_id, set()):
            diff.additions.append((expected[order_id], order_id))
    return diff
