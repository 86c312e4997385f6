"""
PetProject Backend - Feed / Content Store (Petbook)
=====================================================

What:  Posts, likes, comments, media uploads and the reverse-chronological
       feed.
How:   Posts live in posts/{id} with a server-assigned createdAt and a
       `likes` array used as a set. The feed is cursor-paginated newest first
       (see services.pagination). Likes flip with ArrayUnion/ArrayRemove so
       concurrent likers never overwrite each other.
Who:   Post routes.

Deletion:
    delete_post() removes the document first and then deletes each media
    blob best-effort. A failed blob delete is logged and leaves an orphaned
    object; the post stays deleted.
"""

import logging
from typing import List, Optional

from petproject.config import settings
from petproject.exceptions import BlobStorageError, NotFoundError, PermissionDeniedError
from petproject.models.base import Page
from petproject.models.post import Comment, CommentDraft, Post, PostDraft
from petproject.services.blob_service import (
    ALLOWED_MEDIA_TYPES,
    blob_service,
    build_media_path,
    validate_upload,
)
from petproject.services.pagination import newest_first_page
from petproject.store.base import (
    ASCENDING,
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    DocumentStore,
    Filter,
    Order,
    join_path,
)

logger = logging.getLogger(__name__)


class FeedService:

    # ── Posts ─────────────────────────────────────────────────────────────

    async def create_post(self, store: DocumentStore, draft: PostDraft) -> Post:
        """Persist a post with no likes and a server timestamp; absent optionals are not stored."""
        data = {**draft.to_document(), "likes": [], "createdAt": SERVER_TIMESTAMP}
        post_id = await store.add("posts", data)
        logger.info(
            "Post %s created by %s (%s, %d media)",
            post_id,
            draft.user_id,
            draft.media_type,
            len(draft.media_urls),
        )
        return await self.get_post(store, post_id)

    async def get_post(self, store: DocumentStore, post_id: str) -> Post:
        snapshot = await store.get(join_path("posts", post_id))
        if not snapshot.exists:
            raise NotFoundError(resource="post", resource_id=post_id)
        return Post.from_snapshot(snapshot)

    async def list_posts(
        self,
        store: DocumentStore,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Page[Post]:
        """
        Newest-first feed page.

        Usage:
            page = await feed_service.list_posts(store)
            while page.next_cursor:
                page = await feed_service.list_posts(store, cursor=page.next_cursor)
        """
        return await newest_first_page(
            store, "posts", Post, page_size or settings.feed_page_size, cursor
        )

    async def list_posts_by_user(
        self,
        store: DocumentStore,
        user_id: str,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Page[Post]:
        return await newest_first_page(
            store,
            "posts",
            Post,
            page_size or settings.feed_page_size,
            cursor,
            filters=[Filter("userId", "==", user_id)],
        )

    async def toggle_like(self, store: DocumentStore, post_id: str, account_id: str) -> bool:
        """Flip account_id's like on the post. Returns True if the post is now liked."""
        path = join_path("posts", post_id)
        snapshot = await store.get(path)
        if not snapshot.exists:
            raise NotFoundError(resource="post", resource_id=post_id)

        if account_id in (snapshot.get("likes") or []):
            await store.update(path, {"likes": ArrayRemove(account_id)})
            logger.debug("%s unliked post %s", account_id, post_id)
            return False

        await store.update(path, {"likes": ArrayUnion(account_id)})
        logger.debug("%s liked post %s", account_id, post_id)
        return True

    async def delete_post(
        self,
        store: DocumentStore,
        post_id: str,
        requester_id: str,
        media_urls: Optional[List[str]] = None,
    ) -> None:
        """
        Delete a post owned by requester_id, then its media.

        Args:
            media_urls: Blobs to delete. Defaults to the post's stored mediaUrls.

        Raises:
            NotFoundError: No such post.
            PermissionDeniedError: requester_id is not the owner.
        """
        post = await self.get_post(store, post_id)
        if post.user_id != requester_id:
            logger.warning("%s tried to delete post %s owned by %s", requester_id, post_id, post.user_id)
            raise PermissionDeniedError(
                message="Only the author can delete this post",
                context={"post_id": post_id},
            )

        await store.delete(join_path("posts", post_id))
        logger.info("Post %s deleted by %s", post_id, requester_id)

        for url in media_urls if media_urls is not None else post.media_urls:
            try:
                await blob_service.delete(url)
            except BlobStorageError as e:
                logger.warning(
                    "Orphaned media after deleting post %s: %s (%s)", post_id, url, e.message
                )

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(self, store: DocumentStore, draft: CommentDraft) -> Comment:
        await self.get_post(store, draft.post_id)
        data = {**draft.to_document(), "createdAt": SERVER_TIMESTAMP}
        comment_id = await store.add("comments", data)
        logger.info("Comment %s added to post %s by %s", comment_id, draft.post_id, draft.user_id)
        snapshot = await store.get(join_path("comments", comment_id))
        return Comment.from_snapshot(snapshot)

    async def list_comments(self, store: DocumentStore, post_id: str) -> List[Comment]:
        """Comments on a post, oldest first."""
        snapshots = await store.query(
            "comments",
            filters=[Filter("postId", "==", post_id)],
            order_by=[Order("createdAt", ASCENDING)],
        )
        return [Comment.from_snapshot(s) for s in snapshots]

    # ── Media ─────────────────────────────────────────────────────────────

    async def upload_media(
        self,
        account_id: str,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
        content_length: Optional[int] = None,
    ) -> str:
        """Validate and store a photo or video under petbook/{uid}/; returns its URL."""
        normalized = validate_upload(content, content_type, ALLOWED_MEDIA_TYPES, content_length)
        path = build_media_path("petbook", account_id, filename)
        return await blob_service.upload(path, content, normalized)


# ── Singleton Instance ────────────────────────────────────────────────────
feed_service = FeedService()
