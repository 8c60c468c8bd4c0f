# This project was developed with assistance from AI tools.
"""Document store interface: CRUD, batched writes, optimistic transactions.

Backends implement :meth:`DocumentStore.get`, :meth:`DocumentStore.query`
and :meth:`DocumentStore._commit`; everything else is shared.

Two write paths exist and they are deliberately different:

* :class:`WriteBatch` -- buffered writes committed together with no reads and
  no version checks. The commit succeeds or raises as a whole.
* :meth:`DocumentStore.run_transaction` -- reads record the version they saw;
  at commit every read document is re-checked and a mismatch re-runs the
  whole callback (optimistic concurrency).
"""

import abc
import enum
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any, TypeVar

from .documents import DocumentSnapshot, FieldFilter, Order, WriteOp, new_document_id
from .errors import TransactionConflictError, TransactionUsageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocKey = tuple[str, str]


def _name(collection: str | enum.Enum) -> str:
    return collection.value if isinstance(collection, enum.Enum) else collection


class WriteBatch:
    """Non-transactional group of writes, committed as one unit."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: list[WriteOp] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def create(self, collection: str | enum.Enum, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        self._ops.append(WriteOp("create", _name(collection), doc_id, dict(data)))
        return doc_id

    def set(self, collection: str | enum.Enum, doc_id: str, data: dict[str, Any]) -> None:
        self._ops.append(WriteOp("set", _name(collection), doc_id, dict(data)))

    def update(self, collection: str | enum.Enum, doc_id: str, data: dict[str, Any]) -> None:
        self._ops.append(WriteOp("update", _name(collection), doc_id, dict(data)))

    async def commit(self) -> None:
        if self._committed:
            raise TransactionUsageError("Batch has already been committed")
        self._committed = True
        if self._ops:
            await self._store._commit(self._ops, {})


class Transaction(WriteBatch):
    """Read-then-write unit of work used by :meth:`DocumentStore.run_transaction`.

    All reads must happen before the first write.
    """

    def __init__(self, store: "DocumentStore"):
        super().__init__(store)
        self._reads: dict[DocKey, int | None] = {}

    async def get(self, collection: str | enum.Enum, doc_id: str) -> DocumentSnapshot | None:
        if self._ops:
            raise TransactionUsageError("Transaction reads must happen before writes")
        snapshot = await self._store.get(collection, doc_id)
        self._reads[(_name(collection), doc_id)] = snapshot.version if snapshot else None
        return snapshot

    async def commit(self) -> None:
        if self._committed:
            raise TransactionUsageError("Transaction has already been committed")
        self._committed = True
        if self._ops:
            await self._store._commit(self._ops, dict(self._reads))


class DocumentStore(abc.ABC):
    """Abstract document store.

    Args:
        max_attempts: Default number of times a transaction callback is run
            before a conflict is reported to the caller.
    """

    def __init__(self, *, max_attempts: int = 5):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts

    # -- reads --

    @abc.abstractmethod
    async def get(self, collection: str | enum.Enum, doc_id: str) -> DocumentSnapshot | None:
        """Return the document or None when it does not exist."""

    @abc.abstractmethod
    async def query(
        self,
        collection: str | enum.Enum,
        filters: Iterable[FieldFilter] = (),
        order_by: Sequence[Order] = (),
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Return documents matching every filter, sorted and limited."""

    async def ping(self) -> None:
        """Raise StoreError when the backend is unreachable."""

    # -- single writes --

    async def add(self, collection: str | enum.Enum, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        await self._commit([WriteOp("create", _name(collection), doc_id, dict(data))], {})
        return doc_id

    async def set(self, collection: str | enum.Enum, doc_id: str, data: dict[str, Any]) -> None:
        await self._commit([WriteOp("set", _name(collection), doc_id, dict(data))], {})

    async def update(self, collection: str | enum.Enum, doc_id: str, data: dict[str, Any]) -> None:
        await self._commit([WriteOp("update", _name(collection), doc_id, dict(data))], {})

    # -- grouped writes --

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        *,
        max_attempts: int | None = None,
    ) -> T:
        """Run ``fn`` inside an optimistic transaction, retrying on conflict.

        ``fn`` may be called several times and must not have side effects
        outside the transaction it receives.

        Raises:
            TransactionConflictError: every attempt hit a conflicting write.
        """
        attempts = max_attempts or self.max_attempts
        for attempt in range(1, attempts + 1):
            txn = Transaction(self)
            result = await fn(txn)
            try:
                await txn.commit()
            except TransactionConflictError as exc:
                logger.warning(
                    "Transaction conflict on attempt %d/%d: %s", attempt, attempts, exc
                )
                continue
            return result
        raise TransactionConflictError(
            f"Transaction aborted after {attempts} conflicting attempts"
        )

    @abc.abstractmethod
    async def _commit(self, ops: list[WriteOp], expected: dict[DocKey, int | None]) -> None:
        """Apply ``ops`` atomically.

        ``expected`` maps every document read by a transaction to the version
        it was read at (None when it did not exist). Any mismatch raises
        TransactionConflictError and nothing is written.
        """
