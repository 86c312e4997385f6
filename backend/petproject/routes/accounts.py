"""
PetProject Backend - Account, Username and Pet Routes
=======================================================

What:  Sign-in bookkeeping, profiles, username claiming and pets.
How:   Thin handlers: read the caller from X-Account-ID, delegate to
       account_service / username_service, return stored models.

Endpoints:
    POST  /api/me                         create account on first sign-in
    GET   /api/me                         caller's account
    PATCH /api/me                         update profile fields
    POST  /api/me/username                claim a permanent username
    POST  /api/me/pets                    add a pet
    GET   /api/accounts/{uid}             any account
    GET   /api/accounts/{uid}/pets        an account's pets
    GET   /api/accounts/{uid}/pets/{id}   one pet
    GET   /api/usernames/{name}/availability
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from petproject.database import get_document_store
from petproject.models.account import Account, Pet, PetDraft
from petproject.routes.deps import get_account_id
from petproject.schemas.account import (
    AvailabilityResponse,
    EnsureAccountRequest,
    ProfileUpdateRequest,
    UsernameClaimRequest,
    UsernameClaimResponse,
)
from petproject.schemas.common import ErrorResponse
from petproject.services.account_service import account_service
from petproject.services.username_service import username_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Accounts"])


# ── Caller's Account ──────────────────────────────────────────────────────

@router.post(
    "/me",
    response_model=Account,
    summary="Create the caller's account if it does not exist",
    description=(
        "Called by the client after every sign-in. The first call creates the "
        "account with zeroed counters; later calls return it unchanged."
    ),
)
async def ensure_account(
    body: EnsureAccountRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Account:
    return await account_service.ensure_account(
        store,
        account_id,
        email=body.email,
        display_name=body.display_name,
        photo_url=body.photo_url,
    )


@router.get(
    "/me",
    response_model=Account,
    responses={404: {"description": "Account not created yet", "model": ErrorResponse}},
    summary="Get the caller's account",
)
async def get_me(
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Account:
    return await account_service.get_account(store, account_id)


@router.patch(
    "/me",
    response_model=Account,
    responses={400: {"description": "No editable fields given", "model": ErrorResponse}},
    summary="Update profile fields",
)
async def update_profile(
    body: ProfileUpdateRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Account:
    # Only the fields the client actually sent, under their stored names
    fields = body.model_dump(by_alias=True, exclude_unset=True)
    return await account_service.update_profile(store, account_id, fields)


# ── Usernames ─────────────────────────────────────────────────────────────

@router.get(
    "/usernames/{name}/availability",
    response_model=AvailabilityResponse,
    summary="Check whether a username can be claimed",
    description="Malformed names (not 3-20 of a-z, 0-9, _) are reported as unavailable.",
)
async def username_availability(
    name: str,
    store: DocumentStore = Depends(get_document_store),
) -> AvailabilityResponse:
    return AvailabilityResponse(
        username=username_service.normalize(name),
        available=await username_service.is_available(store, name),
    )


@router.post(
    "/me/username",
    status_code=201,
    response_model=UsernameClaimResponse,
    responses={
        400: {"description": "Malformed username", "model": ErrorResponse},
        409: {"description": "Username taken, or the account already has one", "model": ErrorResponse},
    },
    summary="Claim a permanent username",
)
async def claim_username(
    body: UsernameClaimRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> UsernameClaimResponse:
    username = await username_service.claim(store, account_id, body.username, body.bio)
    return UsernameClaimResponse(username=username)


# ── Other Accounts ────────────────────────────────────────────────────────

@router.get(
    "/accounts/{uid}",
    response_model=Account,
    responses={404: {"description": "Account not found", "model": ErrorResponse}},
    summary="Get an account",
)
async def get_account(
    uid: str,
    store: DocumentStore = Depends(get_document_store),
) -> Account:
    return await account_service.get_account(store, uid)


# ── Pets ──────────────────────────────────────────────────────────────────

@router.post(
    "/me/pets",
    status_code=201,
    response_model=Pet,
    summary="Add a pet to the caller's account",
)
async def add_pet(
    body: PetDraft,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Pet:
    return await account_service.add_pet(store, account_id, body)


@router.get(
    "/accounts/{uid}/pets",
    response_model=List[Pet],
    summary="List an account's pets, newest first",
)
async def list_pets(
    uid: str,
    store: DocumentStore = Depends(get_document_store),
) -> List[Pet]:
    return await account_service.list_pets(store, uid)


@router.get(
    "/accounts/{uid}/pets/{pet_id}",
    response_model=Pet,
    responses={404: {"description": "Pet not found", "model": ErrorResponse}},
    summary="Get one pet",
)
async def get_pet(
    uid: str,
    pet_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Pet:
    return await account_service.get_pet(store, uid, pet_id)
