# This project was developed with assistance from AI tools.
"""PostgreSQL document store backed by the ``documents`` JSONB table.

Transaction commits lock every document the transaction read
(``SELECT ... FOR UPDATE``, in key order) and compare versions before
applying writes, so a concurrent commit that got there first turns into a
TransactionConflictError and the caller's callback is re-run.
"""

import enum
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import and_, cast, func, insert, literal, select, text, tuple_, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .documents import DocumentSnapshot, FieldFilter, Order, WriteOp
from .errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    StoreError,
    StoreUnavailableError,
    TransactionConflictError,
)
from .models import DocumentRecord
from .store import DocKey, DocumentStore, _name

logger = logging.getLogger(__name__)

_documents = DocumentRecord.__table__

# serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _field(name: str, sample: Any = None, *, numeric: bool = False):
    """JSONB accessor for a top-level field, cast to suit the compared value."""
    element = _documents.c.data[name]
    if numeric or (isinstance(sample, (int, float)) and not isinstance(sample, bool)):
        return element.as_float()
    if isinstance(sample, bool):
        return element.as_boolean()
    return element.as_string()


def compile_filter(f: FieldFilter):
    """Translate a FieldFilter into a SQL expression on ``documents.data``."""
    if f.op == "in":
        values = [_plain(v) for v in f.value]
        return _field(f.field, values[0] if values else None).in_(values)

    value = _plain(f.value)
    if value is None:
        column = _field(f.field)
        if f.op == "==":
            return column.is_(None)
        if f.op == "!=":
            return column.is_not(None)
        raise ValueError(f"Operator {f.op} cannot compare against None")

    column = _field(f.field, value)
    if f.op == "==":
        return column == value
    if f.op == "!=":
        return and_(column.is_not(None), column != value)
    if f.op == "<":
        return column < value
    if f.op == "<=":
        return column <= value
    if f.op == ">":
        return column > value
    if f.op == ">=":
        return column >= value
    raise ValueError(f"Unsupported filter operator: {f.op}")


def compile_order(order: Order):
    column = _field(order.field, numeric=order.numeric)
    return (column.desc() if order.descending else column.asc()).nulls_last()


def _is_conflict(exc: DBAPIError) -> bool:
    return getattr(exc.orig, "sqlstate", None) in _CONFLICT_SQLSTATES


class PostgresDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, max_attempts: int = 5):
        super().__init__(max_attempts=max_attempts)
        self._session_factory = session_factory

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (OSError, OperationalError) as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def get(self, collection: str | enum.Enum, doc_id: str) -> DocumentSnapshot | None:
        stmt = select(_documents.c.data, _documents.c.version).where(
            _documents.c.collection == _name(collection),
            _documents.c.id == doc_id,
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).one_or_none()
        except (OSError, OperationalError) as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        if row is None:
            return None
        return DocumentSnapshot(_name(collection), doc_id, dict(row.data), row.version)

    async def query(
        self,
        collection: str | enum.Enum,
        filters: Iterable[FieldFilter] = (),
        order_by: Sequence[Order] = (),
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        name = _name(collection)
        stmt = select(_documents.c.id, _documents.c.data, _documents.c.version).where(
            _documents.c.collection == name
        )
        for f in filters:
            stmt = stmt.where(compile_filter(f))
        for order in order_by:
            stmt = stmt.order_by(compile_order(order))
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except (OSError, OperationalError) as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return [DocumentSnapshot(name, row.id, dict(row.data), row.version) for row in rows]

    async def _commit(self, ops: list[WriteOp], expected: dict[DocKey, int | None]) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await self._check_versions(session, expected)
                for op in ops:
                    await self._apply(session, op)
        except IntegrityError as exc:
            # A concurrent insert of a document this transaction saw as missing.
            if expected:
                raise TransactionConflictError(str(exc)) from exc
            raise StoreError(str(exc)) from exc
        except DBAPIError as exc:
            if _is_conflict(exc):
                raise TransactionConflictError(str(exc)) from exc
            if exc.connection_invalidated:
                raise StoreUnavailableError(str(exc)) from exc
            raise StoreError(str(exc)) from exc
        except OSError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def _check_versions(self, session: AsyncSession, expected: dict[DocKey, int | None]) -> None:
        if not expected:
            return
        keys = sorted(expected)
        stmt = (
            select(_documents.c.collection, _documents.c.id, _documents.c.version)
            .where(tuple_(_documents.c.collection, _documents.c.id).in_(keys))
            .order_by(_documents.c.collection, _documents.c.id)
            .with_for_update()
        )
        current = {(row.collection, row.id): row.version for row in await session.execute(stmt)}
        for key in keys:
            if current.get(key) != expected[key]:
                raise TransactionConflictError(
                    f"{key[0]}/{key[1]} changed (read version {expected[key]}, "
                    f"now {current.get(key)})"
                )

    async def _apply(self, session: AsyncSession, op: WriteOp) -> None:
        where = and_(_documents.c.collection == op.collection, _documents.c.id == op.doc_id)
        if op.kind == "create":
            exists = await session.execute(select(_documents.c.id).where(where))
            if exists.first() is not None:
                raise DocumentExistsError(op.collection, op.doc_id)
            await session.execute(
                insert(_documents).values(
                    collection=op.collection, id=op.doc_id, data=op.data, version=1
                )
            )
        elif op.kind == "set":
            stmt = pg_insert(_documents).values(
                collection=op.collection, id=op.doc_id, data=op.data, version=1
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[_documents.c.collection, _documents.c.id],
                set_={
                    "data": stmt.excluded.data,
                    "version": _documents.c.version + 1,
                    "updated_at": func.now(),
                },
            )
            await session.execute(stmt)
        else:
            result = await session.execute(
                update(_documents)
                .where(where)
                .values(
                    data=_documents.c.data.op("||")(cast(literal(op.data, JSONB), JSONB)),
                    version=_documents.c.version + 1,
                    updated_at=func.now(),
                )
            )
            if result.rowcount == 0:
                raise DocumentNotFoundError(op.collection, op.doc_id)
