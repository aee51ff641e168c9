"""
SQL-backed document store adapter.

Each collection is a slice of the ``documents`` table; payloads are JSON.
Every public call runs in its own transaction, and ``batch_write`` applies
all of its operations in one transaction (all-or-nothing per batch).
"""

from datetime import datetime
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from investbridge.config import settings
from investbridge.db.models import DocumentRow
from investbridge.errors import BatchLimitExceeded, NotFound
from investbridge.store.base import (
    Document,
    Filter,
    WriteOp,
    apply_patch,
    new_document_id,
    utcnow,
)

logger = structlog.get_logger(__name__)

_TIMESTAMP_FIELDS = ("created_at", "updated_at")


def _to_document(row: DocumentRow) -> Document:
    return Document(
        id=row.id,
        data=dict(row.data or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _column(field: str, sample):
    """Resolve a filter/order field to a SQL expression."""
    if field in _TIMESTAMP_FIELDS:
        return getattr(DocumentRow, field)
    element = DocumentRow.data[field]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, (int, float)):
        return element.as_float()
    return element.as_string()


def _clause(flt: Filter):
    if flt.op == "in":
        values = list(flt.value)
        col = _column(flt.field, values[0] if values else "")
        return col.in_(values)
    col = _column(flt.field, flt.value)
    if flt.op == "==":
        return col == flt.value
    if flt.op == "!=":
        return col != flt.value
    if flt.op == "<":
        return col < flt.value
    if flt.op == "<=":
        return col <= flt.value
    if flt.op == ">":
        return col > flt.value
    if flt.op == ">=":
        return col >= flt.value
    raise ValueError(f"Unsupported filter operator: {flt.op}")


class SqlDocumentStore:
    """DocumentStore implementation on async SQLAlchemy."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_batch_size: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._max_batch_size = max_batch_size or settings.store_max_batch_size

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        async with self._session_factory() as session:
            row = await session.get(DocumentRow, (collection, doc_id))
            return _to_document(row) if row is not None else None

    async def create(
        self,
        collection: str,
        data: dict,
        doc_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        op = WriteOp.create(collection, data, doc_id=doc_id, created_at=created_at)
        async with self._session_factory() as session:
            async with session.begin():
                await self._apply(session, op)
        return op.doc_id

    async def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(DocumentRow, (collection, doc_id))
                now = utcnow()
                if row is None:
                    session.add(DocumentRow(
                        collection=collection,
                        id=doc_id,
                        data=apply_patch({}, data),
                        created_at=now,
                        updated_at=now,
                    ))
                else:
                    row.data = apply_patch(row.data or {}, data) if merge else apply_patch({}, data)
                    row.updated_at = now

    async def update(self, collection: str, doc_id: str, patch: dict) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await self._apply(session, WriteOp.update(collection, doc_id, patch))

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        stmt = select(DocumentRow).where(DocumentRow.collection == collection)
        for flt in filters:
            stmt = stmt.where(_clause(flt))
        if order_by:
            col = _column(order_by, "")
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_document(row) for row in result.scalars().all()]

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        if len(ops) > self._max_batch_size:
            raise BatchLimitExceeded(
                f"Batch of {len(ops)} operations exceeds limit {self._max_batch_size}"
            )
        if not ops:
            return
        async with self._session_factory() as session:
            async with session.begin():
                for op in ops:
                    await self._apply(session, op)
        logger.debug("batch_committed", operations=len(ops))

    async def _apply(self, session: AsyncSession, op: WriteOp) -> None:
        now = utcnow()
        if op.kind == "create":
            session.add(DocumentRow(
                collection=op.collection,
                id=op.doc_id or new_document_id(),
                data=apply_patch({}, op.data),
                created_at=op.created_at or now,
                updated_at=now,
            ))
            await session.flush()
            return

        if op.kind == "delete":
            await session.execute(
                delete(DocumentRow).where(
                    DocumentRow.collection == op.collection,
                    DocumentRow.id == op.doc_id,
                )
            )
            return

        row = await session.get(DocumentRow, (op.collection, op.doc_id))
        if op.kind == "set":
            if row is None:
                session.add(DocumentRow(
                    collection=op.collection,
                    id=op.doc_id,
                    data=apply_patch({}, op.data),
                    created_at=now,
                    updated_at=now,
                ))
            else:
                row.data = apply_patch({}, op.data)
                row.updated_at = now
            return

        if row is None:
            raise NotFound(f"Document in {op.collection}", op.doc_id)
        row.data = apply_patch(row.data or {}, op.data)
        row.updated_at = now
