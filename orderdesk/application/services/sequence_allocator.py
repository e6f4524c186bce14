"""
Sequence allocation for order numbers.

The counter lives in the document store and is only ever advanced
through `DocumentStore.transaction`, so every process sharing the store
shares one linearizable sequence.
"""
from orderdesk.domain.exceptions import Conflict
from orderdesk.domain.repositories import DocumentStore
from orderdesk.infrastructure.logging import get_logger

logger = get_logger(__name__)

DEFAULT_COUNTER_PATH = "counters/orders"


class SequenceAllocator:
    """
    Strictly increasing integer sequence.

    Under N concurrent callers the returned values are exactly
    k+1 .. k+N for the counter value k before the burst.
    """

    def __init__(
        self,
        store: DocumentStore,
        counter_path: str = DEFAULT_COUNTER_PATH,
        max_retries: int = 25,
    ) -> None:
        self._store = store
        self._counter_path = counter_path
        self._max_retries = max_retries

    async def next(self) -> int:
        """
        Allocate the next value.

        Raises:
            Conflict: retries exhausted or the stored counter is corrupt
            UpstreamFailure: store unreachable
        """
        value = await self._store.transaction(
            self._counter_path, self._increment, self._max_retries
        )
        logger.debug(f"Allocated sequence {value} from {self._counter_path}")
        return value

    async def current(self) -> int:
        """Last allocated value (0 when nothing was allocated yet)."""
        value = await self._store.get(self._counter_path)
        return self._validate(value) if value is not None else 0

    def _increment(self, current):
        if current is None:
            return 1
        return self._validate(current) + 1

    def _validate(self, value) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            logger.error(f"Counter at {self._counter_path} is corrupt: {value!r}")
            raise Conflict(f"Counter at {self._counter_path} holds a non-integer value: {value!r}")
        return value
