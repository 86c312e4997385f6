"""
PetProject Backend - Username Registry
========================================

What:  Normalization, availability checks and one-time claiming of usernames.
How:   usernames/{normalized} holds {uid}. Its existence is the only
       availability signal. Claiming creates that document with a
       create-if-absent precondition in the same batch that writes the
       username onto users/{uid}, so two concurrent claims of one name
       cannot both succeed. usernameClaims/{uid} is created in the same
       batch, so one account cannot win two names either.
Who:   Onboarding routes; SocialService reads usernames for suggestions/search.

Format:
    After normalize() (trim + lowercase) a username is 3-20 characters from
    [a-z0-9_]. Usernames are permanent: an account that already has one gets
    ConflictError on a second claim.
"""

import logging
import re
from typing import Optional

from petproject.exceptions import ConflictError, InvalidArgumentError
from petproject.store.base import CreateOp, DocumentStore, SetOp, join_path

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,20}$")


class UsernameService:
    """Stateless; the store is passed to every call."""

    @staticmethod
    def normalize(name: Optional[str]) -> str:
        return (name or "").strip().lower()

    @staticmethod
    def is_well_formed(normalized: str) -> bool:
        return bool(USERNAME_PATTERN.match(normalized))

    async def is_available(self, store: DocumentStore, name: str) -> bool:
        """False for malformed names; otherwise True iff nobody has reserved it."""
        normalized = self.normalize(name)
        if not self.is_well_formed(normalized):
            return False
        snapshot = await store.get(join_path("usernames", normalized))
        return not snapshot.exists

    async def owner_of(self, store: DocumentStore, name: str) -> Optional[str]:
        normalized = self.normalize(name)
        if not self.is_well_formed(normalized):
            return None
        snapshot = await store.get(join_path("usernames", normalized))
        return snapshot.get("uid") if snapshot.exists else None

    async def claim(
        self,
        store: DocumentStore,
        account_id: str,
        name: str,
        bio: Optional[str] = None,
    ) -> str:
        """
        Reserve `name` for `account_id` and return the normalized username.

        One atomic batch:
            create usernames/{name} {uid}              (fails if reserved)
            create usernameClaims/{uid} {username}     (fails if the account claimed before)
            merge  users/{uid} {username, bio, followingCount: 0, followersCount: 0}

        Raises:
            InvalidArgumentError: Malformed name or account id.
            ConflictError: Name already reserved (by anyone, including this
                account), or the account already has a username.
        """
        normalized = self.normalize(name)
        if not self.is_well_formed(normalized):
            raise InvalidArgumentError(
                message="Username must be 3-20 characters: lowercase letters, digits or underscores",
                field="username",
                context={"username": normalized},
            )
        if not account_id or "/" in account_id:
            raise InvalidArgumentError(message="Invalid account id", field="account_id")

        account_path = join_path("users", account_id)
        account = await store.get(account_path)
        if account.get("username"):
            raise self._already_named(account_id, account.get("username"))

        try:
            await store.commit([
                CreateOp(join_path("usernames", normalized), {"uid": account_id}),
                # One marker per account: a second claim fails this precondition
                CreateOp(join_path("usernameClaims", account_id), {"username": normalized}),
                SetOp(
                    account_path,
                    {
                        "uid": account_id,
                        "username": normalized,
                        "bio": bio or "",
                        "followingCount": 0,
                        "followersCount": 0,
                    },
                    merge=True,
                ),
            ])
        except ConflictError as e:
            marker = await store.get(join_path("usernameClaims", account_id))
            if marker.exists and marker.get("username") != normalized:
                raise self._already_named(account_id, marker.get("username")) from e
            logger.info("Username '%s' already taken (claim by %s)", normalized, account_id)
            raise ConflictError(
                message=f"Username '{normalized}' is already taken",
                context={"username": normalized},
            ) from e

        logger.info("Account %s claimed username '%s'", account_id, normalized)
        return normalized

    @staticmethod
    def _already_named(account_id: str, username: Optional[str]) -> ConflictError:
        return ConflictError(
            message="This account already has a username",
            context={"account_id": account_id, "username": username},
        )


# ── Singleton Instance ────────────────────────────────────────────────────
username_service = UsernameService()
