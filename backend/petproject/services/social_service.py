"""
PetProject Backend - Social Graph Store
=========================================

What:  Follow/unfollow with denormalized counters, follower/following lists,
       suggestions and username prefix search.
How:   A follow relation is stored from both ends:
           users/{actor}/following/{target}   {followedAt}
           users/{target}/followers/{actor}   {followedAt}
       and mirrored in users/{uid}.followingCount / followersCount. Both
       edges and both counter changes are written in one batch, so the
       counters always equal the number of edges.
Who:   Social routes.

Idempotency:
    follow() creates the edges with a create-if-absent precondition. When the
    edge already exists the whole batch is rejected, counters included, and
    follow() returns False. unfollow() deletes with a must-exist precondition
    and returns False when there was nothing to delete. Neither can drive a
    counter negative or double count.
"""

import logging
from typing import List, Optional

from petproject.config import settings
from petproject.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from petproject.models.account import Account, FollowEdge
from petproject.services.username_service import username_service
from petproject.store.base import (
    ASCENDING,
    DESCENDING,
    SERVER_TIMESTAMP,
    CreateOp,
    DeleteOp,
    DocumentStore,
    Filter,
    Increment,
    Order,
    UpdateOp,
    join_path,
)

logger = logging.getLogger(__name__)

# Upper end of a username prefix range: [prefix, prefix + PREFIX_RANGE_END)
PREFIX_RANGE_END = "\uf8ff"


def _following_path(actor: str, target: str) -> str:
    return join_path("users", actor, "following", target)


def _follower_path(target: str, actor: str) -> str:
    return join_path("users", target, "followers", actor)


class SocialService:

    @staticmethod
    def _check_pair(actor: str, target: str) -> None:
        if not actor or not target:
            raise InvalidArgumentError(message="Both account ids are required")
        if actor == target:
            raise InvalidArgumentError(
                message="An account cannot follow itself",
                field="target",
                context={"account_id": actor},
            )

    async def follow(self, store: DocumentStore, actor: str, target: str) -> bool:
        """
        Make `actor` follow `target`. Returns True if a new edge was written,
        False if actor already followed target.

        Raises:
            InvalidArgumentError: actor == target (nothing is written).
            NotFoundError: target account does not exist.
        """
        self._check_pair(actor, target)

        target_snapshot = await store.get(join_path("users", target))
        if not target_snapshot.exists:
            raise NotFoundError(resource="account", resource_id=target)

        try:
            await store.commit([
                CreateOp(_following_path(actor, target), {"followedAt": SERVER_TIMESTAMP}),
                CreateOp(_follower_path(target, actor), {"followedAt": SERVER_TIMESTAMP}),
                UpdateOp(join_path("users", actor), {"followingCount": Increment(1)}),
                UpdateOp(join_path("users", target), {"followersCount": Increment(1)}),
            ])
        except ConflictError:
            logger.debug("%s already follows %s", actor, target)
            return False

        logger.info("%s followed %s", actor, target)
        return True

    async def unfollow(self, store: DocumentStore, actor: str, target: str) -> bool:
        """Returns True if an edge was removed, False if actor was not following."""
        self._check_pair(actor, target)

        try:
            await store.commit([
                DeleteOp(_following_path(actor, target), must_exist=True),
                DeleteOp(_follower_path(target, actor), must_exist=True),
                UpdateOp(join_path("users", actor), {"followingCount": Increment(-1)}),
                UpdateOp(join_path("users", target), {"followersCount": Increment(-1)}),
            ])
        except NotFoundError:
            logger.debug("%s does not follow %s; nothing to undo", actor, target)
            return False

        logger.info("%s unfollowed %s", actor, target)
        return True

    async def is_following(self, store: DocumentStore, actor: str, target: str) -> bool:
        if not actor or not target or actor == target:
            return False
        snapshot = await store.get(_following_path(actor, target))
        return snapshot.exists

    async def _edges(self, store: DocumentStore, collection: str, limit: int) -> List[FollowEdge]:
        snapshots = await store.query(
            collection,
            order_by=[Order("followedAt", DESCENDING)],
            limit=limit,
        )
        return [FollowEdge.from_snapshot(s) for s in snapshots]

    async def list_followers(
        self, store: DocumentStore, account_id: str, limit: Optional[int] = None
    ) -> List[FollowEdge]:
        """Accounts following `account_id`, most recent first."""
        return await self._edges(
            store,
            join_path("users", account_id, "followers"),
            limit or settings.follow_list_limit,
        )

    async def list_following(
        self, store: DocumentStore, account_id: str, limit: Optional[int] = None
    ) -> List[FollowEdge]:
        """Accounts `account_id` follows, most recent first."""
        return await self._edges(
            store,
            join_path("users", account_id, "following"),
            limit or settings.follow_list_limit,
        )

    async def suggest(
        self, store: DocumentStore, account_id: str, limit: Optional[int] = None
    ) -> List[Account]:
        """
        Accounts with a username that `account_id` does not follow yet,
        ordered by username. The account itself is never suggested.
        """
        limit = limit or settings.suggestion_limit
        following = await store.query(join_path("users", account_id, "following"))
        exclude = {s.id for s in following} | {account_id}

        candidates = await store.query(
            "users",
            filters=[Filter("username", "!=", None)],
            order_by=[Order("username", ASCENDING)],
            limit=limit + len(exclude),
        )
        suggestions = [
            Account.from_snapshot(s) for s in candidates if s.id not in exclude
        ]
        return suggestions[:limit]

    async def search(
        self, store: DocumentStore, prefix: str, limit: Optional[int] = None
    ) -> List[Account]:
        """Accounts whose username starts with the normalized `prefix`."""
        normalized = username_service.normalize(prefix)
        if not normalized:
            return []
        snapshots = await store.query(
            "users",
            filters=[
                Filter("username", ">=", normalized),
                Filter("username", "<", normalized + PREFIX_RANGE_END),
            ],
            order_by=[Order("username", ASCENDING)],
            limit=limit or settings.search_limit,
        )
        return [Account.from_snapshot(s) for s in snapshots]


# ── Singleton Instance ────────────────────────────────────────────────────
social_service = SocialService()
