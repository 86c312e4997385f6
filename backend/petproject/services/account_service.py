"""
PetProject Backend - Accounts, Profiles and Pets
==================================================

What:  First-login account creation, profile reads/updates, and the pets
       that belong to an account.
How:   users/{uid} is created with create-if-absent semantics so repeated
       sign-ins never reset counters or usernames. Profile updates go through
       an allow-list of mutable fields.
Who:   Account and pet routes; QA routes look pets up for AI answers.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from petproject.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from petproject.models.account import Account, Pet, PetDraft
from petproject.store.base import (
    DESCENDING,
    SERVER_TIMESTAMP,
    DocumentStore,
    Order,
    join_path,
)

logger = logging.getLogger(__name__)

# Stored field names that update_profile() may change.
# username and the follow counters are owned by other services.
MUTABLE_PROFILE_FIELDS = {
    "fullName",
    "address",
    "phoneNumber",
    "displayName",
    "photoURL",
    "bio",
}


class AccountService:

    async def ensure_account(
        self,
        store: DocumentStore,
        uid: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Account:
        """Create users/{uid} on first authentication; no-op when it exists."""
        path = join_path("users", uid)
        data = {
            "uid": uid,
            "email": email,
            "displayName": display_name,
            "photoURL": photo_url,
            "role": "customer",
            "bio": "",
            "followingCount": 0,
            "followersCount": 0,
            "createdAt": SERVER_TIMESTAMP,
        }
        data = {key: value for key, value in data.items() if value is not None}
        try:
            await store.create(path, data)
            logger.info("Created account %s", uid)
        except ConflictError:
            logger.debug("Account %s already exists", uid)
        return await self.get_account(store, uid)

    async def get_account(self, store: DocumentStore, uid: str) -> Account:
        snapshot = await store.get(join_path("users", uid))
        if not snapshot.exists:
            raise NotFoundError(resource="account", resource_id=uid)
        return Account.from_snapshot(snapshot)

    async def update_profile(
        self, store: DocumentStore, uid: str, fields: Dict[str, Any]
    ) -> Account:
        """
        Merge allowed profile fields plus updatedAt.

        Raises:
            InvalidArgumentError: A field outside MUTABLE_PROFILE_FIELDS, or nothing to update.
            NotFoundError: No such account.
        """
        rejected = sorted(set(fields) - MUTABLE_PROFILE_FIELDS)
        if rejected:
            raise InvalidArgumentError(
                message=f"These fields cannot be changed: {', '.join(rejected)}",
                field=rejected[0],
                context={"rejected": rejected},
            )
        if not fields:
            raise InvalidArgumentError(message="No profile fields to update")

        await store.update(join_path("users", uid), {**fields, "updatedAt": SERVER_TIMESTAMP})
        logger.info("Updated profile of %s (%s)", uid, ", ".join(sorted(fields)))
        return await self.get_account(store, uid)

    async def author_identity(
        self, store: DocumentStore, uid: str
    ) -> Tuple[str, Optional[str]]:
        """
        (authorName, authorPhoto) stamped on posts, comments, questions and
        answers. Prefers the display name, then the username; accounts that
        were never created post as "Anonymous".
        """
        snapshot = await store.get(join_path("users", uid))
        if not snapshot.exists:
            return "Anonymous", None
        name = snapshot.get("displayName") or snapshot.get("username") or "Anonymous"
        return name, snapshot.get("photoURL")

    # ── Pets ──────────────────────────────────────────────────────────────

    async def add_pet(self, store: DocumentStore, uid: str, draft: PetDraft) -> Pet:
        await self.get_account(store, uid)
        collection = join_path("users", uid, "pets")
        data = {**draft.to_document(), "ownerId": uid, "createdAt": SERVER_TIMESTAMP}
        # Lists are always stored, even when empty
        data.setdefault("weightTracker", [])
        data.setdefault("upcomingReminders", [])
        pet_id = await store.add(collection, data)
        logger.info("Account %s added pet %s (%s)", uid, pet_id, draft.name)
        return await self.get_pet(store, uid, pet_id)

    async def get_pet(self, store: DocumentStore, uid: str, pet_id: str) -> Pet:
        snapshot = await store.get(join_path("users", uid, "pets", pet_id))
        if not snapshot.exists:
            raise NotFoundError(resource="pet", resource_id=pet_id)
        return Pet.from_snapshot(snapshot)

    async def list_pets(self, store: DocumentStore, uid: str) -> List[Pet]:
        snapshots = await store.query(
            join_path("users", uid, "pets"),
            order_by=[Order("createdAt", DESCENDING)],
        )
        return [Pet.from_snapshot(s) for s in snapshots]


# ── Singleton Instance ────────────────────────────────────────────────────
account_service = AccountService()
