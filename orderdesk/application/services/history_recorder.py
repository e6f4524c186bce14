"""
HistoryRecorder - append-only audit log.

Entries are written under `history/{orderId}/{entryId}` and never
updated or deleted.
"""
from typing import Iterable, List

from orderdesk.domain.entities import HistoryEntry
from orderdesk.domain.events import DomainEvent
from orderdesk.domain.repositories import DocumentStore

HISTORY_ROOT = "history"


class HistoryRecorder:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def record(self, entry: HistoryEntry) -> HistoryEntry:
        await self._store.set(f"{HISTORY_ROOT}/{entry.order_id}/{entry.id}", entry.to_document())
        return entry

    async def record_events(self, events: Iterable[DomainEvent]) -> List[HistoryEntry]:
        """Turn each domain event into exactly one history entry."""
        entries = []
        for event in events:
            entries.append(await self.record(HistoryEntry.from_event(event)))
        return entries

    async def entries_for(self, order_id: str) -> List[HistoryEntry]:
        """All entries of an order, oldest first."""
        tree = await self._store.get(f"{HISTORY_ROOT}/{order_id}") or {}
        entries = [HistoryEntry.from_document(document) for document in tree.values()]
        return sorted(entries, key=lambda entry: (entry.timestamp, entry.id))
