"""
PetProject Backend - In-Memory Document Store
===============================================

What:  A DocumentStore held entirely in process memory.
How:   Documents are kept in a dict keyed by path. Every write goes through
       commit(), which holds an asyncio.Lock, applies the batch to a staged
       copy of the path map, and swaps the copy in only if every operation
       succeeded. A failed precondition leaves the store untouched.
Who:   The test suite and local development (DOCUMENT_STORE_BACKEND=memory).

Timestamps:
    SERVER_TIMESTAMP resolves to the store clock, forced to be strictly
    increasing so documents written one after another never share a
    createdAt value.
"""

import asyncio
import copy
import logging
from datetime import datetime, timedelta, timezone
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional, Sequence

from petproject.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from petproject.store.base import (
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
    doc_id,
    is_document_path,
    join_path,
    new_document_id,
    parent_collection,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryDocumentStore(DocumentStore):
    """
    Lock-guarded in-process document store.

    Reads take the same lock as writes so a query never observes a batch
    half-applied.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or _utcnow
        self._last_timestamp: Optional[datetime] = None

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, path: str) -> Snapshot:
        self._check_document_path(path)
        async with self._lock:
            data = self._docs.get(path)
            return Snapshot(path=path, data=copy.deepcopy(data) if data is not None else None)

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[Order] = (),
        start_after: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Snapshot]:
        if start_after is not None and len(start_after) != len(order_by) + 1:
            raise InvalidArgumentError(
                "Cursor must hold one value per order clause plus the document id",
                field="start_after",
            )
        if limit is not None and limit < 0:
            raise InvalidArgumentError("limit must not be negative", field="limit")

        async with self._lock:
            candidates = [
                (path, data)
                for path, data in self._docs.items()
                if parent_collection(path) == collection and is_document_path(path)
            ]

        matched = [
            (path, data)
            for path, data in candidates
            if all(_matches(data, f) for f in filters)
            and all(o.field in data for o in order_by)
        ]

        directions = [o.direction for o in order_by]
        id_direction = directions[-1] if directions else "asc"
        all_directions = directions + [id_direction]

        def sort_key(item):
            path, data = item
            return [data[o.field] for o in order_by] + [doc_id(path)]

        def compare(a, b):
            return _compare_keys(sort_key(a), sort_key(b), all_directions)

        matched.sort(key=cmp_to_key(compare))

        if start_after is not None:
            cursor = list(start_after)
            matched = [
                item for item in matched
                if _compare_keys(sort_key(item), cursor, all_directions) > 0
            ]

        if limit is not None:
            matched = matched[:limit]

        return [Snapshot(path=path, data=copy.deepcopy(data)) for path, data in matched]

    # ── Writes ────────────────────────────────────────────────────────────

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        new_id = new_document_id()
        await self.create(join_path(collection, new_id), data)
        return new_id

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        for op in ops:
            self._check_document_path(op.path)

        async with self._lock:
            staged = dict(self._docs)
            now = self._next_timestamp()
            for op in ops:
                self._apply(staged, op, now)
            self._docs = staged

        logger.debug("Committed batch of %d operation(s)", len(ops))

    async def ping(self) -> bool:
        return True

    # ── Internals ─────────────────────────────────────────────────────────

    def _apply(self, staged: Dict[str, Dict[str, Any]], op: WriteOp, now: datetime) -> None:
        existing = staged.get(op.path)

        if isinstance(op, CreateOp):
            if existing is not None:
                raise ConflictError(
                    f"Document '{op.path}' already exists", context={"path": op.path}
                )
            staged[op.path] = _resolve({}, op.data, now)

        elif isinstance(op, SetOp):
            base = existing if (op.merge and existing is not None) else {}
            staged[op.path] = _resolve(base, op.data, now)

        elif isinstance(op, UpdateOp):
            if existing is None:
                raise NotFoundError("document", op.path)
            staged[op.path] = _resolve(existing, op.data, now)

        elif isinstance(op, DeleteOp):
            if existing is None:
                if op.must_exist:
                    raise NotFoundError("document", op.path)
                return
            del staged[op.path]

        else:
            raise TypeError(f"Unsupported write operation: {op!r}")

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    @staticmethod
    def _check_document_path(path: str) -> None:
        if not is_document_path(path):
            raise InvalidArgumentError(f"'{path}' is not a document path", field="path")


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def _resolve(base: Dict[str, Any], data: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Return a new dict: `base` with `data` merged in and transforms applied."""
    result = copy.deepcopy(base)
    for key, value in data.items():
        current = result.get(key, _MISSING)

        if value is SERVER_TIMESTAMP:
            result[key] = now
        elif isinstance(value, Increment):
            start = current if isinstance(current, (int, float)) else 0
            result[key] = start + value.amount
        elif isinstance(value, ArrayUnion):
            items = list(current) if isinstance(current, list) else []
            for v in value.values:
                if v not in items:
                    items.append(v)
            result[key] = items
        elif isinstance(value, ArrayRemove):
            items = list(current) if isinstance(current, list) else []
            result[key] = [v for v in items if v not in value.values]
        else:
            result[key] = copy.deepcopy(value)
    return result


def _matches(data: Dict[str, Any], flt: Filter) -> bool:
    if flt.field not in data:
        return False
    value = data[flt.field]

    if flt.value is None:
        if flt.op == "==":
            return value is None
        if flt.op == "!=":
            return value is not None
        return False
    if value is None:
        return False

    try:
        if flt.op == "==":
            return value == flt.value
        if flt.op == "!=":
            return value != flt.value
        if flt.op == "<":
            return value < flt.value
        if flt.op == "<=":
            return value <= flt.value
        if flt.op == ">":
            return value > flt.value
        if flt.op == ">=":
            return value >= flt.value
    except TypeError:
        # Mismatched types never match, as in Firestore
        return False
    return False


def _compare_keys(a: Sequence[Any], b: Sequence[Any], directions: Sequence[str]) -> int:
    for left, right, direction in zip(a, b, directions):
        if left == right:
            continue
        result = -1 if left < right else 1
        return -result if direction == DESCENDING else result
    return 0
