"""
PetProject Backend - Firestore Document Store Tests (Mocked)
==============================================================

What:  FirestoreDocumentStore against a MagicMock AsyncClient.
How:   The client, batch and query objects are mocks; assertions check which
       Firestore calls were made and how google.api_core errors surface.

What we test:
    ✅ Transforms become their Firestore counterparts
    ✅ Batch operations map to create/set/update/delete(+exists precondition)
    ✅ Error translation to petproject exceptions
    ✅ Query building: filters, id tie-break ordering, start_after cursor
    ❌ A real Firestore emulator (integration tests)
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from petproject.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientStoreError,
)
from petproject.store.base import (
    DESCENDING,
    SERVER_TIMESTAMP,
    ArrayUnion,
    CreateOp,
    DeleteOp,
    Filter,
    Increment,
    Order,
    SetOp,
    UpdateOp,
)
from petproject.store.firestore import FirestoreDocumentStore


def _snapshot(doc_id, data):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = data is not None
    snap.to_dict.return_value = data
    return snap


@pytest.fixture
def client():
    mock = MagicMock()
    mock.batch.return_value.commit = AsyncMock()
    return mock


class TestFirestoreReads:

    @pytest.mark.asyncio
    async def test_get_existing(self, client):
        client.document.return_value.get = AsyncMock(return_value=_snapshot("u1", {"bio": "hi"}))
        store = FirestoreDocumentStore(client)

        snapshot = await store.get("users/u1")

        client.document.assert_called_with("users/u1")
        assert snapshot.exists
        assert snapshot.to_dict() == {"id": "u1", "bio": "hi"}

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        client.document.return_value.get = AsyncMock(return_value=_snapshot("u1", None))
        store = FirestoreDocumentStore(client)

        snapshot = await store.get("users/u1")
        assert snapshot.exists is False

    @pytest.mark.asyncio
    async def test_get_unavailable_is_transient(self, client):
        client.document.return_value.get = AsyncMock(
            side_effect=gcp_exceptions.ServiceUnavailable("backend down")
        )
        store = FirestoreDocumentStore(client)

        with pytest.raises(TransientStoreError):
            await store.get("users/u1")

    @pytest.mark.asyncio
    async def test_query_builds_ordered_cursor_query(self, client):
        query = MagicMock()
        query.where.return_value = query
        query.order_by.return_value = query
        query.start_after.return_value = query
        query.limit.return_value = query

        async def stream():
            yield _snapshot("p2", {"createdAt": 2})
            yield _snapshot("p1", {"createdAt": 1})

        query.stream = stream
        client.collection.return_value = query
        store = FirestoreDocumentStore(client)

        results = await store.query(
            "posts",
            filters=[Filter("userId", "==", "u1")],
            order_by=[Order("createdAt", DESCENDING)],
            start_after=[3, "p3"],
            limit=2,
        )

        assert [s.path for s in results] == ["posts/p2", "posts/p1"]
        query.where.assert_called_once()
        # createdAt desc, then document id in the same direction
        assert query.order_by.call_count == 2
        first, second = query.order_by.call_args_list
        assert first.args == ("createdAt",)
        assert first.kwargs["direction"] == firestore.Query.DESCENDING
        assert second.kwargs["direction"] == firestore.Query.DESCENDING
        cursor = query.start_after.call_args.args[0]
        assert cursor[0] == 3
        query.document.assert_called_with("p3")
        query.limit.assert_called_once_with(2)


class TestFirestoreWrites:

    @pytest.mark.asyncio
    async def test_commit_maps_operations(self, client):
        batch = client.batch.return_value
        store = FirestoreDocumentStore(client)

        await store.commit([
            CreateOp("users/u1/following/u2", {"followedAt": SERVER_TIMESTAMP}),
            SetOp("users/u1", {"username": "rex"}, merge=True),
            UpdateOp("users/u2", {"followersCount": Increment(1)}),
            DeleteOp("users/u3/following/u4", must_exist=True),
        ])

        created = batch.create.call_args.args[1]
        assert created["followedAt"] is firestore.SERVER_TIMESTAMP
        assert batch.set.call_args.kwargs["merge"] is True
        updated = batch.update.call_args.args[1]
        assert isinstance(updated["followersCount"], firestore.Increment)
        client.write_option.assert_called_once_with(exists=True)
        assert batch.delete.call_args.kwargs["option"] is client.write_option.return_value
        batch.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_array_union_converted(self, client):
        batch = client.batch.return_value
        store = FirestoreDocumentStore(client)

        await store.update("posts/p1", {"likes": ArrayUnion("u1")})

        assert isinstance(batch.update.call_args.args[1]["likes"], firestore.ArrayUnion)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, expected",
        [
            (gcp_exceptions.AlreadyExists("exists"), ConflictError),
            (gcp_exceptions.NotFound("missing"), NotFoundError),
            (gcp_exceptions.PermissionDenied("rules"), PermissionDeniedError),
            (gcp_exceptions.DeadlineExceeded("slow"), TransientStoreError),
            (gcp_exceptions.Aborted("contention"), TransientStoreError),
        ],
    )
    async def test_commit_error_translation(self, client, error, expected):
        client.batch.return_value.commit = AsyncMock(side_effect=error)
        store = FirestoreDocumentStore(client)

        with pytest.raises(expected):
            await store.create("usernames/rex", {"uid": "u1"})

    @pytest.mark.asyncio
    async def test_add_uses_generated_id(self, client):
        client.collection.return_value.document.return_value.id = "auto123"
        store = FirestoreDocumentStore(client)

        new_id = await store.add("posts", {"caption": "hi"})

        assert new_id == "auto123"
        client.document.assert_called_with("posts/auto123")
