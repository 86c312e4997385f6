"""
PetProject Backend - Document Store Package
=============================================

Abstract interface plus two backends:
    - memory.MemoryDocumentStore: in-process (tests, local development)
    - firestore.FirestoreDocumentStore: Cloud Firestore (production)

The Firestore backend is imported lazily by petproject.database so the
in-memory backend works without Google client libraries being importable.
"""

from petproject.store.base import (
    ASCENDING,
    DESCENDING,
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    CreateOp,
    DeleteOp,
    DocumentStore,
    Filter,
    Increment,
    Order,
    SetOp,
    Snapshot,
    UpdateOp,
    WriteOp,
    join_path,
)
from petproject.store.memory import MemoryDocumentStore

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "SERVER_TIMESTAMP",
    "ArrayRemove",
    "ArrayUnion",
    "CreateOp",
    "DeleteOp",
    "DocumentStore",
    "Filter",
    "Increment",
    "MemoryDocumentStore",
    "Order",
    "SetOp",
    "Snapshot",
    "UpdateOp",
    "WriteOp",
    "join_path",
]
