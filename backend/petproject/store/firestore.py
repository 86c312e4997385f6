"""
PetProject Backend - Cloud Firestore Document Store
=====================================================

What:  DocumentStore backed by Cloud Firestore through firebase-admin's async
       client (google.cloud.firestore.AsyncClient).
How:   Paths map one-to-one onto Firestore document paths. commit() builds an
       AsyncWriteBatch, so multi-document writes keep Firestore's all-or-nothing
       guarantee. Store-neutral transforms (ArrayUnion, Increment, ...) are
       swapped for their Firestore counterparts at the last moment.
Who:   Production deployments (DOCUMENT_STORE_BACKEND=firestore).

Error translation (google.api_core.exceptions → petproject.exceptions):
    AlreadyExists                         → ConflictError
    NotFound                              → NotFoundError
    PermissionDenied                      → PermissionDeniedError
    ServiceUnavailable, DeadlineExceeded,
    InternalServerError, Aborted          → TransientStoreError
Nothing is retried here.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from petproject.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientStoreError,
)
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
    join_path,
)

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(path: str = ""):
    """Re-raise google.api_core errors as petproject exceptions."""
    try:
        yield
    except gcp_exceptions.AlreadyExists as e:
        raise ConflictError(
            f"Document '{path}' already exists" if path else "Document already exists",
            context={"path": path, "detail": str(e)},
        ) from e
    except gcp_exceptions.NotFound as e:
        raise NotFoundError("document", path or None, context={"detail": str(e)}) from e
    except gcp_exceptions.PermissionDenied as e:
        raise PermissionDeniedError(context={"path": path, "detail": str(e)}) from e
    except (
        gcp_exceptions.ServiceUnavailable,
        gcp_exceptions.DeadlineExceeded,
        gcp_exceptions.InternalServerError,
        gcp_exceptions.Aborted,
    ) as e:
        logger.warning("Firestore transient failure on '%s': %s", path, e)
        raise TransientStoreError(context={"path": path, "detail": str(e)}) from e


def _to_firestore_value(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, Increment):
        return firestore.Increment(value.amount)
    if isinstance(value, ArrayUnion):
        return firestore.ArrayUnion(list(value.values))
    if isinstance(value, ArrayRemove):
        return firestore.ArrayRemove(list(value.values))
    return value


def _to_firestore_data(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _to_firestore_value(value) for key, value in data.items()}


class FirestoreDocumentStore(DocumentStore):
    """
    Firestore-backed document store.

    The client is injected so tests can pass a MagicMock and the app can share
    one AsyncClient per process (see petproject.database).
    """

    def __init__(self, client: "firestore.AsyncClient"):
        self._client = client

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, path: str) -> Snapshot:
        with translate_errors(path):
            snap = await self._client.document(path).get()
        return Snapshot(path=path, data=snap.to_dict() if snap.exists else None)

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[Order] = (),
        start_after: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Snapshot]:
        collection_ref = self._client.collection(collection)
        query = collection_ref

        for flt in filters:
            query = query.where(filter=FieldFilter(flt.field, flt.op, flt.value))

        id_direction = firestore.Query.ASCENDING
        for order in order_by:
            direction = (
                firestore.Query.DESCENDING
                if order.direction == DESCENDING
                else firestore.Query.ASCENDING
            )
            query = query.order_by(order.field, direction=direction)
            id_direction = direction
        query = query.order_by(FieldPath.document_id(), direction=id_direction)

        if start_after is not None:
            *values, last_id = start_after
            query = query.start_after(list(values) + [collection_ref.document(last_id)])

        if limit is not None:
            query = query.limit(limit)

        results = []
        with translate_errors(collection):
            async for snap in query.stream():
                results.append(
                    Snapshot(path=join_path(collection, snap.id), data=snap.to_dict() or {})
                )
        return results

    # ── Writes ────────────────────────────────────────────────────────────

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        ref = self._client.collection(collection).document()
        await self.create(join_path(collection, ref.id), data)
        return ref.id

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        batch = self._client.batch()
        for op in ops:
            ref = self._client.document(op.path)
            if isinstance(op, CreateOp):
                batch.create(ref, _to_firestore_data(op.data))
            elif isinstance(op, SetOp):
                batch.set(ref, _to_firestore_data(op.data), merge=op.merge)
            elif isinstance(op, UpdateOp):
                batch.update(ref, _to_firestore_data(op.data))
            elif isinstance(op, DeleteOp):
                option = self._client.write_option(exists=True) if op.must_exist else None
                batch.delete(ref, option=option)
            else:
                raise TypeError(f"Unsupported write operation: {op!r}")

        # A single-op batch can name the offending document in errors
        label = ops[0].path if len(ops) == 1 else f"batch of {len(ops)}"
        with translate_errors(label):
            await batch.commit()
        logger.debug("Committed Firestore batch of %d operation(s)", len(ops))

    async def ping(self) -> bool:
        with translate_errors("_health/ping"):
            await self._client.document("_health/ping").get()
        return True

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            result = close()
            if hasattr(result, "__await__"):
                await result
        logger.info("Firestore client closed")
