"""
PetProject Backend - Social Graph Routes
==========================================

What:  Follow/unfollow, follower lists, suggestions and username search.

Idempotency:
    Following twice or unfollowing someone not followed is not an error.
    The response reports the resulting state and whether anything changed,
    so double-taps on the client are harmless.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from petproject.database import get_document_store
from petproject.models.account import Account, FollowEdge
from petproject.routes.deps import get_account_id
from petproject.schemas.account import FollowResponse
from petproject.schemas.common import ErrorResponse
from petproject.services.social_service import social_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Social"])


@router.post(
    "/accounts/{uid}/follow",
    response_model=FollowResponse,
    responses={
        400: {"description": "Attempt to follow yourself", "model": ErrorResponse},
        404: {"description": "Target account not found", "model": ErrorResponse},
    },
    summary="Follow an account",
)
async def follow(
    uid: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> FollowResponse:
    changed = await social_service.follow(store, account_id, uid)
    return FollowResponse(following=True, changed=changed)


@router.delete(
    "/accounts/{uid}/follow",
    response_model=FollowResponse,
    summary="Unfollow an account",
)
async def unfollow(
    uid: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> FollowResponse:
    changed = await social_service.unfollow(store, account_id, uid)
    return FollowResponse(following=False, changed=changed)


@router.get(
    "/accounts/{uid}/follow",
    response_model=FollowResponse,
    summary="Whether the caller follows an account",
)
async def is_following(
    uid: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> FollowResponse:
    return FollowResponse(following=await social_service.is_following(store, account_id, uid))


@router.get(
    "/accounts/{uid}/followers",
    response_model=List[FollowEdge],
    summary="Accounts following uid, most recent first",
)
async def list_followers(
    uid: str,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    store: DocumentStore = Depends(get_document_store),
) -> List[FollowEdge]:
    return await social_service.list_followers(store, uid, limit)


@router.get(
    "/accounts/{uid}/following",
    response_model=List[FollowEdge],
    summary="Accounts uid follows, most recent first",
)
async def list_following(
    uid: str,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    store: DocumentStore = Depends(get_document_store),
) -> List[FollowEdge]:
    return await social_service.list_following(store, uid, limit)


@router.get(
    "/me/suggestions",
    response_model=List[Account],
    summary="Accounts the caller might want to follow",
)
async def suggestions(
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> List[Account]:
    return await social_service.suggest(store, account_id, limit)


@router.get(
    "/search/accounts",
    response_model=List[Account],
    summary="Find accounts by username prefix",
)
async def search_accounts(
    q: str = Query(default="", max_length=20, description="Username prefix"),
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    store: DocumentStore = Depends(get_document_store),
) -> List[Account]:
    return await social_service.search(store, q, limit)
