"""
PetProject Backend - Account, Follow Edge and Pet Models
==========================================================

Stored at:
    users/{uid}                        Account
    users/{uid}/following/{targetUid}  FollowEdge (and its mirror under followers)
    users/{uid}/pets/{petId}           Pet
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from petproject.models.base import DocumentModel
from petproject.store.base import Snapshot

Role = Literal["customer", "admin"]


class Account(DocumentModel):
    """
    A user account. Created on first authentication, never hard-deleted.

    username is optional until claimed, lowercase, and immutable afterwards.
    following_count/followers_count are denormalized from the follow edges.
    """

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    role: Role = "customer"
    username: Optional[str] = None
    bio: str = ""
    following_count: int = 0
    followers_count: int = 0
    full_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "Account":
        # A username claim can create the account document before ensure_account
        data = snapshot.to_dict()
        data.setdefault("uid", snapshot.id)
        return cls.model_validate(data)


class FollowEdge(DocumentModel):
    """One side of a follow relation; the document id is the other account's uid."""

    id: str
    followed_at: Optional[datetime] = None


class WeightEntry(DocumentModel):
    date: str
    weight: float = Field(gt=0)


class PetDraft(DocumentModel):
    name: str = Field(min_length=1, max_length=60)
    species: str = Field(default="", max_length=40)
    breed: str = Field(default="", max_length=60)
    birth_date: str = ""
    weight_tracker: List[WeightEntry] = Field(default_factory=list)
    upcoming_reminders: List[str] = Field(default_factory=list)
    photo_url: Optional[str] = None


class Pet(PetDraft):
    id: str
    owner_id: str
    created_at: Optional[datetime] = None
