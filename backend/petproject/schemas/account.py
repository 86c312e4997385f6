"""
PetProject Backend - Account, Username and Social Schemas
===========================================================

Request bodies and small result shapes for the account, username and
follow endpoints. Stored documents (Account, Pet, FollowEdge) are returned
as-is from petproject.models.
"""

from typing import Optional

from pydantic import BaseModel, Field

from petproject.schemas.common import ApiRequest


class EnsureAccountRequest(ApiRequest):
    """Identity details from the auth provider, sent on every sign-in."""
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, max_length=100)
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class ProfileUpdateRequest(ApiRequest):
    """
    Editable profile fields. Only fields present in the body are written;
    username and follow counters are not accepted here.
    """
    full_name: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=300)
    phone_number: Optional[str] = Field(default=None, max_length=30)
    display_name: Optional[str] = Field(default=None, max_length=100)
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    bio: Optional[str] = Field(default=None, max_length=500)


class UsernameClaimRequest(ApiRequest):
    username: str = Field(description="Desired username; normalized to lowercase")
    bio: Optional[str] = Field(default=None, max_length=500)


class UsernameClaimResponse(BaseModel):
    username: str = Field(description="The normalized username now owned by the caller")


class AvailabilityResponse(BaseModel):
    """
    What:  Username availability.
    Who:   GET /api/usernames/{name}/availability, polled while the user types.
    """
    username: str = Field(description="Normalized form of the requested name")
    available: bool


class FollowResponse(BaseModel):
    """
    following: whether the caller follows the target after the call.
    changed:   whether this call wrote anything (False for repeated follows
               and for unfollowing someone not followed).
    """
    following: bool
    changed: bool = False
