"""
Path subscriptions shared by the document store adapters.
"""
import asyncio
import inspect
import itertools
import logging
from typing import Any, Callable, Dict, Tuple

from orderdesk.domain.repositories.document_store import Subscriber, is_related, join_path

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """
    Mixin that keeps path watchers and notifies them after commits.

    Callback failures are logged and never fail the write that
    triggered them.
    """

    def __init__(self):
        self._subscribers: Dict[int, Tuple[str, Subscriber]] = {}
        self._subscription_ids = itertools.count(1)

    def subscribe(self, path: str, callback: Subscriber) -> Callable[[], None]:
        subscription_id = next(self._subscription_ids)
        self._subscribers[subscription_id] = (join_path(path), callback)
        logger.debug(f"Subscribed #{subscription_id} to {path}")

        def unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    async def _notify(self, changed_path: str, value: Any) -> None:
        if not self._subscribers:
            return

        for watched, callback in list(self._subscribers.values()):
            if not is_related(watched, changed_path):
                continue
            try:
                result = callback(changed_path, value)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Subscriber for {watched} failed on {changed_path}: {e}", exc_info=True)
