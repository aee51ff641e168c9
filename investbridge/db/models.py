"""
Row models for the SQL-backed document store and identity claims.

A document is a JSON payload addressed by (collection, id). Creation and
update times live in real columns so retention and ordering queries do not
depend on JSON path support.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, String, TypeDecorator
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from investbridge.db.engine import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JSONType(TypeDecorator):
    """JSONB on PostgreSQL, JSON elsewhere."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.JSONB)
        return dialect.type_descriptor(JSON)


class DocumentRow(Base):
    """One document in a named collection."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_collection_created", "collection", "created_at"),
    )

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict] = mapped_column(JSONType(), nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class IdentityClaimRow(Base):
    """Server-side custom claims for an identity (embedded in new tokens)."""

    __tablename__ = "identity_claims"

    subject_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    claims: Mapped[dict] = mapped_column(JSONType(), nullable=False, default=dict)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=_utcnow)
