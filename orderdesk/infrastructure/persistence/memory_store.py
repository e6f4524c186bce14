"""
In-memory DocumentStore.

Process-local storage for tests and local development. Values are deep
copied on the way in and out so callers never share state with the store.
"""
import asyncio
import copy
import itertools
import logging
from typing import Any, Dict, Optional, Tuple

from orderdesk.domain.exceptions import Conflict
from orderdesk.domain.repositories.document_store import (
    DEFAULT_MAX_RETRIES,
    DocumentStore,
    TransactionFn,
    join_path,
    split_path,
)
from .subscriptions import SubscriptionRegistry
from .tree import assemble_tree, merge_fields

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(SubscriptionRegistry, DocumentStore):
    """
    Flat dict of path -> (value, version).

    `transaction` is a real optimistic compare-and-set: it yields to the
    event loop between read and write, so concurrent callers interleave
    and retry exactly as they would against a remote store.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__()
        self._documents: Dict[str, Tuple[Any, int]] = {}
        self._clock = itertools.count(1)
        for path, value in (initial or {}).items():
            self._write(self._normalize(path), value)

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, path: str) -> Optional[Any]:
        path = self._normalize(path)
        if path in self._documents:
            return copy.deepcopy(self._documents[path][0])

        prefix = path + "/"
        rows = sorted(
            (key, value)
            for key, (value, _) in self._documents.items()
            if key.startswith(prefix)
        )
        return copy.deepcopy(assemble_tree(path, rows))

    def _version_of(self, path: str) -> int:
        entry = self._documents.get(path)
        return entry[1] if entry else 0

    # =========================================================================
    # WRITES
    # =========================================================================

    async def set(self, path: str, value: Any) -> None:
        path = self._normalize(path)
        if value is None:
            await self.remove(path)
            return
        self._drop_descendants(path)
        self._write(path, value)
        await self._notify(path, copy.deepcopy(value))

    async def update(self, path: str, fields: dict) -> None:
        path = self._normalize(path)
        current = self._documents.get(path, (None, 0))[0]
        merged = merge_fields(current, fields)
        self._write(path, merged)
        await self._notify(path, copy.deepcopy(merged))

    async def remove(self, path: str) -> None:
        path = self._normalize(path)
        existed = self._documents.pop(path, None) is not None
        existed = self._drop_descendants(path) or existed
        if existed:
            await self._notify(path, None)

    async def transaction(
        self,
        path: str,
        fn: TransactionFn,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> Any:
        path = self._normalize(path)

        for attempt in range(1, max_retries + 1):
            version = self._version_of(path)
            current = copy.deepcopy(self._documents.get(path, (None, 0))[0])
            new_value = fn(copy.deepcopy(current))

            # Give concurrent writers their chance to commit first
            await asyncio.sleep(0)

            if self._version_of(path) != version:
                logger.debug(f"Transaction on {path} lost race (attempt {attempt})")
                continue

            if new_value is None:
                return current

            self._write(path, new_value)
            await self._notify(path, copy.deepcopy(new_value))
            return copy.deepcopy(new_value)

        logger.error(f"Transaction on {path} exhausted {max_retries} retries")
        raise Conflict(f"Transaction on {path} did not commit after {max_retries} attempts")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _write(self, path: str, value: Any) -> None:
        self._documents[path] = (copy.deepcopy(value), next(self._clock))

    def _drop_descendants(self, path: str) -> bool:
        prefix = path + "/"
        stale = [key for key in self._documents if key.startswith(prefix)]
        for key in stale:
            del self._documents[key]
        return bool(stale)

    @staticmethod
    def _normalize(path: str) -> str:
        return join_path(*split_path(path))

    def clear(self) -> None:
        """Drop every document (test helper)."""
        self._documents.clear()
