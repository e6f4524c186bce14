"""
SQLAlchemy DocumentStore.

One `documents` row per path. Works with sqlite+aiosqlite and
postgresql+asyncpg.
"""
import copy
import logging
from contextlib import contextmanager
from typing import Any, Optional, Tuple

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderdesk.domain.exceptions import Conflict, UpstreamFailure
from orderdesk.domain.repositories.document_store import (
    DEFAULT_MAX_RETRIES,
    DocumentStore,
    TransactionFn,
    join_path,
    split_path,
)
from orderdesk.infrastructure.database.models import DocumentModel
from .subscriptions import SubscriptionRegistry
from .tree import assemble_tree, merge_fields

logger = logging.getLogger(__name__)

# `set` races only on first insert of a path
_WRITE_ATTEMPTS = 3


@contextmanager
def _upstream(operation: str, path: str):
    """Translate backend errors into UpstreamFailure."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Document store {operation} failed for {path}: {e}")
        raise UpstreamFailure(f"Document store {operation} failed for {path}: {e}") from e


def _descendants_of(path: str):
    return DocumentModel.path.startswith(path + "/", autoescape=True)


class SqlAlchemyDocumentStore(SubscriptionRegistry, DocumentStore):
    """
    Relational DocumentStore.

    `transaction` and `update` are an optimistic compare-and-set on the row
    version: UPDATE ... WHERE path = :p AND version = :v, retried when no
    row matched or when a concurrent first insert won the primary key.
    `set` overwrites unconditionally but always bumps the version.
    """

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__()
        self._session_factory = session_factory

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, path: str) -> Optional[Any]:
        path = self._normalize(path)
        with _upstream("get", path):
            async with self._session_factory() as session:
                row = await session.get(DocumentModel, path)
                if row is not None:
                    return copy.deepcopy(row.value)

                result = await session.execute(
                    select(DocumentModel.path, DocumentModel.value)
                    .where(_descendants_of(path))
                    .order_by(DocumentModel.path)
                )
                return assemble_tree(path, [(p, v) for p, v in result.all()])

    # =========================================================================
    # WRITES
    # =========================================================================

    async def set(self, path: str, value: Any) -> None:
        path = self._normalize(path)
        if value is None:
            await self.remove(path)
            return

        async def write(session: AsyncSession) -> None:
            await session.execute(
                delete(DocumentModel)
                .where(_descendants_of(path))
                .execution_options(synchronize_session=False)
            )
            await self._put(session, path, value)

        await self._write(path, "set", write)
        await self._notify(path, copy.deepcopy(value))

    async def update(self, path: str, fields: dict) -> None:
        """Merge `fields` into the current row under the same version check as `transaction`."""
        await self.transaction(path, lambda current: merge_fields(current, fields))

    async def remove(self, path: str) -> None:
        path = self._normalize(path)
        with _upstream("remove", path):
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(DocumentModel)
                        .where(or_(DocumentModel.path == path, _descendants_of(path)))
                        .execution_options(synchronize_session=False)
                    )
        if result.rowcount:
            await self._notify(path, None)

    async def transaction(
        self,
        path: str,
        fn: TransactionFn,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> Any:
        path = self._normalize(path)

        for attempt in range(1, max_retries + 1):
            current, version = await self._read(path)

            new_value = fn(copy.deepcopy(current))
            if new_value is None:
                return current

            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        if version == 0:
                            session.add(DocumentModel(path=path, value=new_value, version=1))
                            committed = True
                        else:
                            result = await session.execute(
                                update(DocumentModel)
                                .where(DocumentModel.path == path, DocumentModel.version == version)
                                .values(value=new_value, version=version + 1)
                                .execution_options(synchronize_session=False)
                            )
                            committed = result.rowcount == 1
            except IntegrityError:
                committed = False
            except SQLAlchemyError as e:
                logger.error(f"Document store transaction failed for {path}: {e}")
                raise UpstreamFailure(f"Document store transaction failed for {path}: {e}") from e

            if committed:
                await self._notify(path, copy.deepcopy(new_value))
                return copy.deepcopy(new_value)

            logger.debug(f"Transaction on {path} lost race (attempt {attempt})")

        logger.error(f"Transaction on {path} exhausted {max_retries} retries")
        raise Conflict(f"Transaction on {path} did not commit after {max_retries} attempts")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _read(self, path: str) -> Tuple[Optional[Any], int]:
        """Current value and row version; version 0 means no row."""
        with _upstream("transaction read", path):
            async with self._session_factory() as session:
                row = await session.get(DocumentModel, path)
                if row is None:
                    return None, 0
                return copy.deepcopy(row.value), row.version

    async def _write(self, path: str, operation: str, write) -> None:
        for attempt in range(1, _WRITE_ATTEMPTS + 1):
            try:
                with _upstream(operation, path):
                    async with self._session_factory() as session:
                        async with session.begin():
                            await write(session)
                return
            except UpstreamFailure as e:
                if isinstance(e.__cause__, IntegrityError) and attempt < _WRITE_ATTEMPTS:
                    continue
                raise

    @staticmethod
    async def _put(session: AsyncSession, path: str, value: Any) -> None:
        # Version is bumped in SQL so a transaction that read the old row cannot commit over it
        result = await session.execute(
            update(DocumentModel)
            .where(DocumentModel.path == path)
            .values(value=value, version=DocumentModel.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            session.add(DocumentModel(path=path, value=value, version=1))

    @staticmethod
    def _normalize(path: str) -> str:
        return join_path(*split_path(path))
