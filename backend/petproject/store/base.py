"""
PetProject Backend - Abstract Document Store Interface
========================================================

What:  The contract every document store backend implements, plus the value
       types (snapshots, filters, write operations, field transforms) that
       services use to talk to it.
How:   Concrete backends inherit from DocumentStore. Services only ever see
       this module, so the same service code runs against the in-memory
       backend in tests and against Cloud Firestore in production.
Who:   Used by every service in petproject.services.

Paths:
    Documents live at slash-separated paths with an even number of segments
    ("users/u1", "users/u1/following/u2"); collections have an odd number
    ("posts", "users/u1/followers").

Atomicity:
    commit() applies a list of write operations as one unit. Preconditions are
    part of the unit: a CreateOp on an existing document, an UpdateOp on a
    missing one, or a must-exist DeleteOp on a missing one rejects the whole
    batch and nothing is written. Multi-document invariants (follow counters,
    username reservation, answer counts) rely on this and nothing else.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union


# ══════════════════════════════════════════════════════════════════════════
# Field Transforms
# ══════════════════════════════════════════════════════════════════════════

class _ServerTimestamp:
    """Sentinel resolved by the backend to its own commit time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class ArrayUnion:
    """Adds each value to an array field unless already present."""

    values: Tuple[Any, ...]

    def __init__(self, *values: Any):
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Removes every occurrence of each value from an array field."""

    values: Tuple[Any, ...]

    def __init__(self, *values: Any):
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Increment:
    """Adds `amount` to a numeric field (missing fields count as 0)."""

    amount: Union[int, float] = 1


# ══════════════════════════════════════════════════════════════════════════
# Reads
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class Snapshot:
    """
    Point-in-time view of a single document.

    `data` is None when the document does not exist. Snapshots are copies:
    mutating `data` never affects the store.
    """

    path: str
    data: Optional[Dict[str, Any]] = None

    @property
    def id(self) -> str:
        return doc_id(self.path)

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Document fields plus its id, the shape models are validated from."""
        return {"id": self.id, **(self.data or {})}


FILTER_OPERATORS = ("==", "!=", "<", "<=", ">", ">=")


@dataclass(frozen=True)
class Filter:
    """A single field comparison; all filters of a query are ANDed."""

    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator '{self.op}'")


ASCENDING = "asc"
DESCENDING = "desc"


@dataclass(frozen=True)
class Order:
    field: str
    direction: str = ASCENDING

    def __post_init__(self):
        if self.direction not in (ASCENDING, DESCENDING):
            raise ValueError(f"Unsupported order direction '{self.direction}'")


# ══════════════════════════════════════════════════════════════════════════
# Writes
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateOp:
    """Create-if-absent. Rejected with ConflictError when the document exists."""

    path: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SetOp:
    """Overwrite the document, or merge top-level fields when merge=True."""

    path: str
    data: Dict[str, Any] = field(default_factory=dict)
    merge: bool = False


@dataclass(frozen=True)
class UpdateOp:
    """Merge top-level fields into an existing document (NotFoundError if missing)."""

    path: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteOp:
    """Delete the document. With must_exist=True a missing document rejects the batch."""

    path: str
    must_exist: bool = False


WriteOp = Union[CreateOp, SetOp, UpdateOp, DeleteOp]


# ══════════════════════════════════════════════════════════════════════════
# Path Helpers
# ══════════════════════════════════════════════════════════════════════════

def join_path(*segments: str) -> str:
    """Join path segments, rejecting empty ids and ids containing '/'."""
    for segment in segments:
        if not segment or "/" in segment:
            raise ValueError(f"Invalid path segment {segment!r}")
    return "/".join(segments)


def split_path(path: str) -> List[str]:
    parts = path.strip("/").split("/")
    if any(not p for p in parts):
        raise ValueError(f"Invalid path {path!r}")
    return parts


def is_document_path(path: str) -> bool:
    return len(split_path(path)) % 2 == 0


def parent_collection(path: str) -> str:
    """Collection path that contains the document at `path`."""
    return path.strip("/").rsplit("/", 1)[0]


def doc_id(path: str) -> str:
    return path.strip("/").rsplit("/", 1)[-1]


def new_document_id() -> str:
    """Random 20-character id, the same length as Firestore auto-ids."""
    return uuid.uuid4().hex[:20]


# ══════════════════════════════════════════════════════════════════════════
# Store Contract
# ══════════════════════════════════════════════════════════════════════════

class DocumentStore(ABC):
    """
    Abstract async document store.

    Contract:
        - get() never raises for a missing document; it returns a snapshot
          with exists=False.
        - Every write method is a one-operation commit() and has the same
          precondition semantics.
        - query() orders by the given fields and then by document id, in the
          direction of the last order clause. `start_after` holds one value per
          order clause followed by the document id of the last item already
          seen; only items strictly after that position are returned.
        - Errors: ConflictError, NotFoundError, TransientStoreError and
          PermissionDeniedError from petproject.exceptions. Backends translate
          their native errors and never retry.

    Implementations:
        - MemoryDocumentStore: in-process, for tests and local development
        - FirestoreDocumentStore: Cloud Firestore via firebase-admin
    """

    @abstractmethod
    async def get(self, path: str) -> Snapshot:
        ...

    @abstractmethod
    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id in `collection`; returns the id."""
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[Order] = (),
        start_after: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Snapshot]:
        ...

    @abstractmethod
    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply all operations atomically, or none of them."""
        ...

    async def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self.commit([SetOp(path, data, merge=merge)])

    async def create(self, path: str, data: Dict[str, Any]) -> None:
        await self.commit([CreateOp(path, data)])

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        await self.commit([UpdateOp(path, data)])

    async def delete(self, path: str, must_exist: bool = False) -> None:
        await self.commit([DeleteOp(path, must_exist=must_exist)])

    @abstractmethod
    async def ping(self) -> bool:
        """Lightweight reachability check used by the health endpoint."""
        ...

    async def close(self) -> None:
        """Release client resources. Default: nothing to release."""
        return None
