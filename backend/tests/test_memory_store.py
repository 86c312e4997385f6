"""
PetProject Backend - In-Memory Document Store Tests
=====================================================

What we test:
    ✅ Point reads, create-if-absent, update/delete preconditions
    ✅ Field transforms (server timestamp, increment, array union/remove)
    ✅ Batch atomicity: a failed precondition writes nothing
    ✅ Queries: filters, ordering with id tie-break, start_after, limit
"""

from datetime import datetime, timedelta, timezone

import pytest

from petproject.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from petproject.store.base import (
    ASCENDING,
    DESCENDING,
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    CreateOp,
    DeleteOp,
    Filter,
    Increment,
    Order,
    UpdateOp,
    join_path,
)
from petproject.store.memory import MemoryDocumentStore


class TestPointOperations:

    @pytest.mark.asyncio
    async def test_get_missing_document(self, store):
        snapshot = await store.get("users/nobody")
        assert snapshot.exists is False
        assert snapshot.id == "nobody"
        assert snapshot.get("username", "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_create_then_get(self, store):
        await store.create("users/u1", {"bio": "hi"})
        snapshot = await store.get("users/u1")
        assert snapshot.exists
        assert snapshot.to_dict() == {"id": "u1", "bio": "hi"}

    @pytest.mark.asyncio
    async def test_create_existing_raises_conflict(self, store):
        await store.create("users/u1", {"bio": "first"})
        with pytest.raises(ConflictError):
            await store.create("users/u1", {"bio": "second"})
        assert (await store.get("users/u1")).get("bio") == "first"

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.update("users/ghost", {"bio": "x"})

    @pytest.mark.asyncio
    async def test_set_merge_keeps_other_fields(self, store):
        await store.create("users/u1", {"bio": "hi", "followersCount": 3})
        await store.set("users/u1", {"username": "rex"}, merge=True)
        data = (await store.get("users/u1")).data
        assert data == {"bio": "hi", "followersCount": 3, "username": "rex"}

    @pytest.mark.asyncio
    async def test_set_without_merge_replaces(self, store):
        await store.create("users/u1", {"bio": "hi"})
        await store.set("users/u1", {"username": "rex"})
        assert (await store.get("users/u1")).data == {"username": "rex"}

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop_unless_must_exist(self, store):
        await store.delete("posts/p1")
        with pytest.raises(NotFoundError):
            await store.delete("posts/p1", must_exist=True)

    @pytest.mark.asyncio
    async def test_snapshots_are_copies(self, store):
        await store.create("posts/p1", {"likes": ["a"]})
        snapshot = await store.get("posts/p1")
        snapshot.data["likes"].append("b")
        assert (await store.get("posts/p1")).get("likes") == ["a"]

    @pytest.mark.asyncio
    async def test_collection_path_rejected(self, store):
        with pytest.raises(InvalidArgumentError):
            await store.get("users")

    @pytest.mark.asyncio
    async def test_add_generates_id(self, store):
        new_id = await store.add("posts", {"caption": "walk"})
        assert len(new_id) == 20
        assert (await store.get(join_path("posts", new_id))).get("caption") == "walk"


class TestTransforms:

    @pytest.mark.asyncio
    async def test_server_timestamps_strictly_increase(self):
        fixed = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store = MemoryDocumentStore(clock=lambda: fixed)
        await store.create("posts/a", {"createdAt": SERVER_TIMESTAMP})
        await store.create("posts/b", {"createdAt": SERVER_TIMESTAMP})
        a = (await store.get("posts/a")).get("createdAt")
        b = (await store.get("posts/b")).get("createdAt")
        assert a == fixed
        assert b == fixed + timedelta(microseconds=1)

    @pytest.mark.asyncio
    async def test_increment_missing_field_starts_at_zero(self, store):
        await store.create("users/u1", {})
        await store.update("users/u1", {"followersCount": Increment(1)})
        await store.update("users/u1", {"followersCount": Increment(1)})
        await store.update("users/u1", {"followersCount": Increment(-1)})
        assert (await store.get("users/u1")).get("followersCount") == 1

    @pytest.mark.asyncio
    async def test_array_union_is_idempotent(self, store):
        await store.create("posts/p1", {"likes": []})
        await store.update("posts/p1", {"likes": ArrayUnion("u1")})
        await store.update("posts/p1", {"likes": ArrayUnion("u1", "u2")})
        assert (await store.get("posts/p1")).get("likes") == ["u1", "u2"]

    @pytest.mark.asyncio
    async def test_array_remove(self, store):
        await store.create("posts/p1", {"likes": ["u1", "u2"]})
        await store.update("posts/p1", {"likes": ArrayRemove("u1", "u9")})
        assert (await store.get("posts/p1")).get("likes") == ["u2"]


class TestBatches:

    @pytest.mark.asyncio
    async def test_failed_precondition_writes_nothing(self, store):
        await store.create("usernames/rex", {"uid": "u1"})
        with pytest.raises(ConflictError):
            await store.commit([
                CreateOp("users/u2", {"username": "rex"}),
                CreateOp("usernames/rex", {"uid": "u2"}),
            ])
        assert (await store.get("users/u2")).exists is False

    @pytest.mark.asyncio
    async def test_must_exist_delete_rejects_whole_batch(self, store):
        await store.create("users/u1", {"followingCount": 1})
        with pytest.raises(NotFoundError):
            await store.commit([
                UpdateOp("users/u1", {"followingCount": Increment(-1)}),
                DeleteOp("users/u1/following/u2", must_exist=True),
            ])
        assert (await store.get("users/u1")).get("followingCount") == 1

    @pytest.mark.asyncio
    async def test_batch_shares_one_timestamp(self, store):
        await store.commit([
            CreateOp("a/1", {"t": SERVER_TIMESTAMP}),
            CreateOp("a/2", {"t": SERVER_TIMESTAMP}),
        ])
        assert (await store.get("a/1")).get("t") == (await store.get("a/2")).get("t")


class TestQueries:

    async def _seed(self, store):
        await store.create("posts/a", {"userId": "u1", "rank": 2})
        await store.create("posts/b", {"userId": "u2", "rank": 1})
        await store.create("posts/c", {"userId": "u1", "rank": 2})
        await store.create("posts/d", {"userId": "u1"})
        await store.create("posts/a/comments/x", {"userId": "u1", "rank": 9})

    @pytest.mark.asyncio
    async def test_query_only_direct_children(self, store):
        await self._seed(store)
        ids = [s.id for s in await store.query("posts")]
        assert sorted(ids) == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_equality_filter(self, store):
        await self._seed(store)
        results = await store.query("posts", filters=[Filter("userId", "==", "u1")])
        assert sorted(s.id for s in results) == ["a", "c", "d"]

    @pytest.mark.asyncio
    async def test_order_excludes_missing_field_and_breaks_ties_by_id(self, store):
        await self._seed(store)
        results = await store.query("posts", order_by=[Order("rank", DESCENDING)])
        assert [s.id for s in results] == ["c", "a", "b"]

        results = await store.query("posts", order_by=[Order("rank", ASCENDING)])
        assert [s.id for s in results] == ["b", "a", "c"]

    @pytest.mark.asyncio
    async def test_start_after_and_limit(self, store):
        await self._seed(store)
        results = await store.query(
            "posts",
            order_by=[Order("rank", DESCENDING)],
            start_after=[2, "c"],
            limit=1,
        )
        assert [s.id for s in results] == ["a"]

    @pytest.mark.asyncio
    async def test_start_after_wrong_length_rejected(self, store):
        with pytest.raises(InvalidArgumentError):
            await store.query("posts", order_by=[Order("rank")], start_after=[1])

    @pytest.mark.asyncio
    async def test_not_none_filter(self, store):
        await store.create("users/u1", {"username": "rex"})
        await store.create("users/u2", {"username": None})
        await store.create("users/u3", {})
        results = await store.query("users", filters=[Filter("username", "!=", None)])
        assert [s.id for s in results] == ["u1"]

    @pytest.mark.asyncio
    async def test_range_filter(self, store):
        for name in ("bella", "buddy", "buddy_lover", "charlie"):
            await store.create(join_path("users", name), {"username": name})
        results = await store.query(
            "users",
            filters=[Filter("username", ">=", "bud"), Filter("username", "<", "bud\uf8ff")],
            order_by=[Order("username")],
        )
        assert [s.id for s in results] == ["buddy", "buddy_lover"]
