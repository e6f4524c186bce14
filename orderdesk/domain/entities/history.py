"""
Audit trail entry.

History is append-only and only ever read for display.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional
import uuid

from ..events.base import DomainEvent
from orderdesk.utils.datetime import parse_iso, to_iso

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class HistoryEntry:
    order_id: str
    timestamp: datetime
    actor: str
    action: str
    previous_value: Any = None
    new_value: Any = None
    details: Optional[str] = None
    execution_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_event(cls, event: DomainEvent) -> "HistoryEntry":
        values = event.history_values()
        return cls(
            id=event.event_id,
            order_id=event.aggregate_id,
            timestamp=event.occurred_at,
            actor=event.user_id or SYSTEM_ACTOR,
            action=event.action,
            previous_value=values.get("previous_value"),
            new_value=values.get("new_value"),
            details=values.get("details"),
            execution_id=event.execution_id,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "timestamp": to_iso(self.timestamp),
            "actor": self.actor,
            "action": self.action,
            "previousValue": self.previous_value,
            "newValue": self.new_value,
            "details": self.details,
            "executionId": self.execution_id,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            id=document["id"],
            order_id=document["orderId"],
            timestamp=parse_iso(document["timestamp"]),
            actor=document.get("actor") or SYSTEM_ACTOR,
            action=document["action"],
            previous_value=document.get("previousValue"),
            new_value=document.get("newValue"),
            details=document.get("details"),
            execution_id=document.get("executionId"),
        )
