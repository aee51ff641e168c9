"""
Document store interface.

The decision engine only talks to the managed document store through this
protocol: get / create / set / update / query on named collections, plus
atomic batch writes bounded by ``max_batch_size``. Updates are
last-write-wins; there are no optimistic concurrency tokens.

``Increment`` and ``ArrayUnion`` are patch sentinels applied by the store
against the current document value.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Literal, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")

FilterOp = Literal["==", "!=", "in", "<", "<=", ">", ">="]


class Collections:
    """Collection names used by the engine."""

    USERS = "users"
    BUSINESS_IDEAS = "businessIdeas"
    INVESTMENT_PROPOSALS = "investmentProposals"
    QUERIES = "queries"
    RESPONSES = "responses"
    ADVISOR_SUGGESTIONS = "advisorSuggestions"
    LOAN_SCHEMES = "loanSchemes"
    NOTIFICATIONS = "notifications"
    PORTFOLIOS = "portfolios"
    RISK_ASSESSMENTS = "riskAssessments"
    LOGS = "logs"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the store's DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_document_id() -> str:
    """20-char random id for generated-key collections."""
    return uuid.uuid4().hex[:20]


@dataclass(frozen=True)
class Increment:
    amount: float = 1


@dataclass(frozen=True)
class ArrayUnion:
    items: tuple

    def __init__(self, *items: Any):
        object.__setattr__(self, "items", tuple(items))


@dataclass(frozen=True)
class Filter:
    """A single ``field op value`` condition.

    ``created_at`` / ``updated_at`` refer to store-managed timestamps; every
    other field is a top-level key of the document payload.
    """

    field: str
    op: FilterOp
    value: Any


@dataclass
class Document:
    id: str
    data: dict
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict:
        payload = {"id": self.id, **self.data}
        if self.created_at is not None:
            payload["createdAt"] = self.created_at.isoformat()
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at.isoformat()
        return payload


@dataclass
class WriteOp:
    """One operation inside an atomic batch write."""

    kind: Literal["create", "set", "update", "delete"]
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        collection: str,
        data: dict,
        doc_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "WriteOp":
        return cls("create", collection, doc_id or new_document_id(), dict(data), created_at)

    @classmethod
    def set(cls, collection: str, doc_id: str, data: dict) -> "WriteOp":
        return cls("set", collection, doc_id, dict(data))

    @classmethod
    def update(cls, collection: str, doc_id: str, patch: dict) -> "WriteOp":
        return cls("update", collection, doc_id, dict(patch))

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> "WriteOp":
        return cls("delete", collection, doc_id)


class DocumentStore(Protocol):
    """Protocol for the managed document store."""

    @property
    def max_batch_size(self) -> int:
        ...

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    async def create(
        self,
        collection: str,
        data: dict,
        doc_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        ...

    async def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        ...

    async def update(self, collection: str, doc_id: str, patch: dict) -> None:
        """Patch an existing document. Raises NotFound when it does not exist."""
        ...

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        ...

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        """Apply ops atomically. Raises BatchLimitExceeded above max_batch_size."""
        ...


def apply_patch(current: dict, patch: dict) -> dict:
    """Return a new payload with ``patch`` applied, resolving sentinels."""
    merged = dict(current)
    for key, value in patch.items():
        if isinstance(value, Increment):
            merged[key] = (merged.get(key) or 0) + value.amount
        elif isinstance(value, ArrayUnion):
            existing = list(merged.get(key) or [])
            for item in value.items:
                if item not in existing:
                    existing.append(item)
            merged[key] = existing
        else:
            merged[key] = value
    return merged


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])

