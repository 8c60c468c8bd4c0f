# This project was developed with assistance from AI tools.
"""In-process document store for local development and tests.

Every read yields to the event loop once, so concurrent coroutines interleave
between a transaction's reads and its commit the same way they would against
a networked backend. Commits never await, which makes each one atomic with
respect to other coroutines.
"""

import asyncio
import copy
import enum
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from .documents import DocumentSnapshot, FieldFilter, Order, WriteOp
from .errors import DocumentExistsError, DocumentNotFoundError, TransactionConflictError
from .store import DocKey, DocumentStore, _name

logger = logging.getLogger(__name__)

_MISSING = object()


def _compare(actual: Any, op: str, expected: Any) -> bool:
    if op == "==":
        return actual == expected
    if op == "!=":
        if expected is None:
            return actual is not None
        return actual is not None and actual != expected
    if op == "in":
        return actual in expected
    if actual is None:
        return False
    try:
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator: {op}")


def matches(data: dict[str, Any], filters: Iterable[FieldFilter]) -> bool:
    """Return True when ``data`` satisfies every filter."""
    for f in filters:
        expected = f.value.value if isinstance(f.value, enum.Enum) else f.value
        if f.op == "in":
            expected = [v.value if isinstance(v, enum.Enum) else v for v in expected]
        if not _compare(data.get(f.field), f.op, expected):
            return False
    return True


def _sort(snapshots: list[DocumentSnapshot], order_by: Sequence[Order]) -> list[DocumentSnapshot]:
    # Stable sorts applied from the last key to the first.
    result = list(snapshots)
    for order in reversed(order_by):
        present = [s for s in result if s.data.get(order.field) is not None]
        missing = [s for s in result if s.data.get(order.field) is None]
        present.sort(
            key=lambda s: float(s.data[order.field]) if order.numeric else s.data[order.field],
            reverse=order.descending,
        )
        result = present + missing
    return result


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store keyed by ``(collection, id)``."""

    def __init__(self, *, max_attempts: int = 5):
        super().__init__(max_attempts=max_attempts)
        self._docs: dict[DocKey, tuple[dict[str, Any], int]] = {}

    def load(self, collection: str | enum.Enum, documents: dict[str, dict[str, Any]]) -> None:
        """Seed documents directly, bypassing write semantics."""
        for doc_id, data in documents.items():
            self._docs[(_name(collection), doc_id)] = (copy.deepcopy(data), 1)

    async def get(self, collection: str | enum.Enum, doc_id: str) -> DocumentSnapshot | None:
        await asyncio.sleep(0)
        entry = self._docs.get((_name(collection), doc_id))
        if entry is None:
            return None
        data, version = entry
        return DocumentSnapshot(_name(collection), doc_id, copy.deepcopy(data), version)

    async def query(
        self,
        collection: str | enum.Enum,
        filters: Iterable[FieldFilter] = (),
        order_by: Sequence[Order] = (),
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        name = _name(collection)
        filters = list(filters)
        found = [
            DocumentSnapshot(name, doc_id, copy.deepcopy(data), version)
            for (coll, doc_id), (data, version) in self._docs.items()
            if coll == name and matches(data, filters)
        ]
        found = _sort(found, order_by)
        return found[:limit] if limit is not None else found

    async def _commit(self, ops: list[WriteOp], expected: dict[DocKey, int | None]) -> None:
        for key, version in expected.items():
            entry = self._docs.get(key)
            current = entry[1] if entry else None
            if current != version:
                raise TransactionConflictError(
                    f"{key[0]}/{key[1]} changed (read version {version}, now {current})"
                )

        # Validate against a staged copy so a failing op leaves nothing applied.
        staged = dict(self._docs)
        for op in ops:
            key = (op.collection, op.doc_id)
            entry = staged.get(key, _MISSING)
            if op.kind == "create":
                if entry is not _MISSING:
                    raise DocumentExistsError(op.collection, op.doc_id)
                staged[key] = (copy.deepcopy(op.data), 1)
            elif op.kind == "set":
                version = entry[1] + 1 if entry is not _MISSING else 1
                staged[key] = (copy.deepcopy(op.data), version)
            else:
                if entry is _MISSING:
                    raise DocumentNotFoundError(op.collection, op.doc_id)
                data, version = entry
                staged[key] = ({**data, **copy.deepcopy(op.data)}, version + 1)
        self._docs = staged
