"""Document store protocol and the SQL reference adapter."""

from investbridge.store.base import (
    ArrayUnion,
    Collections,
    Document,
    DocumentStore,
    Filter,
    Increment,
    WriteOp,
    chunked,
    utcnow,
)
from investbridge.store.sql import SqlDocumentStore

__all__ = [
    "ArrayUnion",
    "Collections",
    "Document",
    "DocumentStore",
    "Filter",
    "Increment",
    "SqlDocumentStore",
    "WriteOp",
    "chunked",
    "utcnow",
]
