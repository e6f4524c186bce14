"""
Base Domain Event.

All domain events inherit from this base class. Aggregates collect events
while they change; the application layer turns them into history entries
after the corresponding writes have landed.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional
import uuid

from orderdesk.utils.datetime import utc_now


@dataclass
class DomainEvent:
    """
    Base class for all domain events.

    Events are immutable records of things that have happened.
    `user_id` carries the actor that caused the change.
    """

    # History action name recorded for this event type
    action: ClassVar[str] = "event"

    # Event metadata
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str = field(init=False)
    event_version: int = 1

    # Aggregate information
    aggregate_id: str = field(default="")
    aggregate_type: str = field(init=False)

    # Execution context
    execution_id: Optional[str] = None
    user_id: Optional[str] = None

    # Timestamp
    occurred_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Set event type and aggregate type from class name."""
        if not hasattr(self, 'event_type') or not self.event_type:
            object.__setattr__(self, 'event_type', self.__class__.__name__)

        if not hasattr(self, 'aggregate_type') or not self.aggregate_type:
            object.__setattr__(self, 'aggregate_type', self._get_aggregate_type())

    def _get_aggregate_type(self) -> str:
        """
        Extract aggregate type from event type.

        Example: OrderCreatedEvent -> Order
        """
        event_name = self.__class__.__name__

        if event_name.endswith('Event'):
            event_name = event_name[:-5]

        for i, char in enumerate(event_name):
            if i > 0 and char.isupper():
                return event_name[:i]

        return event_name

    def history_values(self) -> Dict[str, Any]:
        """
        Fields for the audit trail: previous value, new value and a
        human-readable detail line. Override in subclasses.
        """
        return {"previous_value": None, "new_value": None, "details": self.event_type}
