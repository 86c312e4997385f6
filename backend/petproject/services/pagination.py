"""
PetProject Backend - Cursor Pagination
========================================

What:  Opaque page cursors and the shared "newest first" page query.
How:   A cursor is the URL-safe base64 (unpadded) of a small JSON object
       holding the last item's createdAt (ISO 8601) and document id. Pages
       are ordered createdAt DESC, then id DESC, and continue strictly after
       the cursor position, so posts created after a cursor was issued sort
       before it and never shift the pages that follow.
Who:   FeedService.list_posts / list_posts_by_user, QAService.list_questions.

"Has more" signal:
    A page shorter than page_size is the last one. No count query is made.
    A full page always carries next_cursor, even when it happens to be the
    last one; the following request then returns an empty page.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from typing import Optional, Sequence, Tuple, Type, TypeVar

from petproject.exceptions import InvalidArgumentError
from petproject.models.base import DocumentModel, Page
from petproject.store.base import DESCENDING, DocumentStore, Filter, Order

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=DocumentModel)

MAX_PAGE_SIZE = 100


def encode_cursor(created_at: datetime, doc_id: str) -> str:
    payload = json.dumps({"t": created_at.isoformat(), "id": doc_id}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    """Inverse of encode_cursor. Raises InvalidArgumentError on any malformed token."""
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        created_at = datetime.fromisoformat(payload["t"])
        doc_id = payload["id"]
        if not isinstance(doc_id, str) or not doc_id:
            raise ValueError("empty id")
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as e:
        raise InvalidArgumentError(
            message="Malformed pagination cursor",
            field="cursor",
            context={"error": type(e).__name__},
        ) from e
    return created_at, doc_id


def check_page_size(page_size: int) -> int:
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidArgumentError(
            message=f"page_size must be between 1 and {MAX_PAGE_SIZE}",
            field="page_size",
        )
    return page_size


async def newest_first_page(
    store: DocumentStore,
    collection: str,
    model: Type[M],
    page_size: int,
    cursor: Optional[str] = None,
    filters: Sequence[Filter] = (),
) -> Page[M]:
    """Fetch one createdAt-descending page of `collection` as `model` instances."""
    check_page_size(page_size)
    start_after = None
    if cursor:
        created_at, last_id = decode_cursor(cursor)
        start_after = [created_at, last_id]

    snapshots = await store.query(
        collection,
        filters=filters,
        order_by=[Order("createdAt", DESCENDING)],
        start_after=start_after,
        limit=page_size,
    )
    items = [model.from_snapshot(snap) for snap in snapshots]

    next_cursor = None
    if len(snapshots) == page_size:
        last = snapshots[-1]
        next_cursor = encode_cursor(last.get("createdAt"), last.id)

    logger.debug(
        "Page of %s: %d item(s), more=%s", collection, len(items), next_cursor is not None
    )
    return Page[model](items=items, next_cursor=next_cursor)
