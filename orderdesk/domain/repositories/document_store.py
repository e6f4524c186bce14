"""
Document Store Interface.

This is a PORT in Hexagonal Architecture.
Infrastructure layer provides concrete implementations.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- any vendor database SDK
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

from ..exceptions import InvalidArgument

# Called with (changed_path, new_value) after every committed write.
Subscriber = Callable[[str, Any], Union[None, Awaitable[None]]]

# Transaction update function: receives the current value, returns the new one.
TransactionFn = Callable[[Any], Any]

DEFAULT_MAX_RETRIES = 25


def split_path(path: str) -> list:
    """Normalize a slash path into its segments."""
    segments = [segment for segment in str(path).split("/") if segment]
    if not segments:
        raise InvalidArgument(f"Empty document path: {path!r}")
    return segments


def join_path(*segments: str) -> str:
    return "/".join(str(segment).strip("/") for segment in segments if str(segment).strip("/"))


def is_related(watched: str, changed: str) -> bool:
    """True when `changed` is `watched`, one of its ancestors or descendants."""
    watched, changed = join_path(watched), join_path(changed)
    if watched == changed:
        return True
    return changed.startswith(watched + "/") or watched.startswith(changed + "/")


class DocumentStore(ABC):
    """
    Abstract persistence contract.

    Documents are JSON-compatible values addressed by slash paths
    (`orders/{id}`). Reading a path that has no document of its own but
    has descendants returns a nested dict assembled from them.

    All backend errors surface as UpstreamFailure.
    """

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """
        Read a document or subtree.

        Args:
            path: Document path

        Returns:
            The stored value, an assembled subtree, or None
        """
        pass

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """
        Replace the document at `path`, dropping its descendants.

        Setting None is equivalent to `remove`.
        """
        pass

    @abstractmethod
    async def update(self, path: str, fields: dict) -> None:
        """
        Shallow-merge `fields` into the document at `path`.

        The document is created when absent. A field value of None
        deletes that key.
        """
        pass

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Remove the document at `path` and all descendants."""
        pass

    @abstractmethod
    async def transaction(
        self,
        path: str,
        fn: TransactionFn,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> Any:
        """
        Optimistic read-modify-write on a single document.

        `fn(current)` is re-run with the fresh value whenever another
        writer commits in between. Returning None from `fn` aborts
        without writing.

        Returns:
            The committed value (or the current one on abort)

        Raises:
            Conflict: retries exhausted, nothing written
        """
        pass

    @abstractmethod
    def subscribe(self, path: str, callback: Subscriber) -> Callable[[], None]:
        """
        Watch a path.

        Returns:
            A function that cancels the subscription
        """
        pass
