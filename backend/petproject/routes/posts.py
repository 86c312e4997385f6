"""
PetProject Backend - Petbook Routes (Posts, Likes, Comments, Media)
=====================================================================

What:  The photo/video feed.
How:   Media is uploaded first (POST /api/media returns a URL), then the
       post references the URLs. Author name and photo come from the
       caller's account, never from the request body.

Pagination:
    GET /api/posts?limit=5                     first page
    GET /api/posts?limit=5&cursor=<nextCursor> next page
    A page with nextCursor = null is the last one.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from petproject.database import get_document_store
from petproject.models.base import Page
from petproject.models.post import Comment, CommentDraft, Post, PostDraft
from petproject.routes.deps import get_account_id
from petproject.schemas.common import ErrorResponse, ToggleResponse, UploadResponse
from petproject.schemas.content import CommentCreateRequest, PostCreateRequest
from petproject.services.account_service import account_service
from petproject.services.feed_service import feed_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Petbook"])


# ── Posts ─────────────────────────────────────────────────────────────────

@router.post(
    "/posts",
    status_code=201,
    response_model=Post,
    responses={400: {"description": "Invalid media list or field", "model": ErrorResponse}},
    summary="Create a post",
)
async def create_post(
    body: PostCreateRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Post:
    author_name, author_photo = await account_service.author_identity(store, account_id)
    draft = PostDraft.from_input({
        **body.model_dump(),
        "user_id": account_id,
        "author_name": author_name,
        "author_photo": author_photo,
    })
    return await feed_service.create_post(store, draft)


@router.get(
    "/posts",
    response_model=Page[Post],
    responses={400: {"description": "Malformed cursor", "model": ErrorResponse}},
    summary="Newest-first feed page",
)
async def list_posts(
    cursor: Optional[str] = Query(default=None, description="nextCursor from the previous page"),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    store: DocumentStore = Depends(get_document_store),
) -> Page[Post]:
    return await feed_service.list_posts(store, cursor=cursor, page_size=limit)


@router.get(
    "/accounts/{uid}/posts",
    response_model=Page[Post],
    summary="One account's posts, newest first",
)
async def list_posts_by_user(
    uid: str,
    cursor: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    store: DocumentStore = Depends(get_document_store),
) -> Page[Post]:
    return await feed_service.list_posts_by_user(store, uid, cursor=cursor, page_size=limit)


@router.get(
    "/posts/{post_id}",
    response_model=Post,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Get a post",
)
async def get_post(
    post_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Post:
    return await feed_service.get_post(store, post_id)


@router.post(
    "/posts/{post_id}/like",
    response_model=ToggleResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> ToggleResponse:
    return ToggleResponse(active=await feed_service.toggle_like(store, post_id, account_id))


@router.delete(
    "/posts/{post_id}",
    status_code=204,
    responses={
        403: {"description": "Caller is not the author", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Delete a post and its media",
)
async def delete_post(
    post_id: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Response:
    await feed_service.delete_post(store, post_id, account_id)
    return Response(status_code=204)


# ── Comments ──────────────────────────────────────────────────────────────

@router.post(
    "/posts/{post_id}/comments",
    status_code=201,
    response_model=Comment,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    body: CommentCreateRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Comment:
    author_name, author_photo = await account_service.author_identity(store, account_id)
    draft = CommentDraft.from_input({
        "post_id": post_id,
        "user_id": account_id,
        "author_name": author_name,
        "author_photo": author_photo,
        "content": body.content,
    })
    return await feed_service.add_comment(store, draft)


@router.get(
    "/posts/{post_id}/comments",
    response_model=List[Comment],
    summary="Comments on a post, oldest first",
)
async def list_comments(
    post_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> List[Comment]:
    return await feed_service.list_comments(store, post_id)


# ── Media ─────────────────────────────────────────────────────────────────

@router.post(
    "/media",
    status_code=201,
    response_model=UploadResponse,
    responses={400: {"description": "Unsupported type or too large", "model": ErrorResponse}},
    summary="Upload a photo or video for a post",
    description="JPEG, PNG, WebP, MP4 or WebM. Returns the URL to put in mediaUrls.",
)
async def upload_media(
    file: UploadFile = File(..., description="Photo or video file"),
    account_id: str = Depends(get_account_id),
) -> UploadResponse:
    content = await file.read()
    logger.info(
        "Received media upload: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )
    try:
        url = await feed_service.upload_media(
            account_id,
            file.filename,
            content,
            file.content_type,
            content_length=file.size,
        )
    finally:
        await file.close()
    return UploadResponse(url=url, size=len(content))
