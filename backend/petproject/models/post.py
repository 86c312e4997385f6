"""
PetProject Backend - Post and Comment Models (Petbook)
========================================================

Stored at:
    posts/{postId}        Post
    comments/{commentId}  Comment (immutable, linked by postId)
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, model_validator

from petproject.models.base import DocumentModel

MediaType = Literal["image", "video", "carousel"]
Visibility = Literal["public", "friends", "private"]

MAX_MEDIA_PER_POST = 5


class PostDraft(DocumentModel):
    """
    Everything needed to create a post except the server-assigned fields
    (id, likes, createdAt).

    Media rules:
        image / video: exactly one URL
        carousel:      2..5 URLs
    """

    user_id: str = Field(min_length=1)
    author_name: str = "Anonymous"
    author_photo: Optional[str] = None
    media_urls: List[str] = Field(min_length=1, max_length=MAX_MEDIA_PER_POST)
    media_type: MediaType
    media_width: Optional[int] = Field(default=None, gt=0)
    media_height: Optional[int] = Field(default=None, gt=0)
    caption: str = Field(default="", max_length=2200)
    visibility: Visibility = "public"
    tags: Optional[List[str]] = None
    pet_id: Optional[str] = None

    @model_validator(mode="after")
    def check_media_count(self):
        count = len(self.media_urls)
        if self.media_type == "carousel" and count < 2:
            raise ValueError("a carousel needs at least two media URLs")
        if self.media_type != "carousel" and count != 1:
            raise ValueError(f"a {self.media_type} post takes exactly one media URL")
        if any(not url for url in self.media_urls):
            raise ValueError("media URLs must not be empty")
        return self


class Post(PostDraft):
    id: str
    likes: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def like_count(self) -> int:
        return len(self.likes)


class CommentDraft(DocumentModel):
    post_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    author_name: str = "Anonymous"
    author_photo: Optional[str] = None
    content: str = Field(min_length=1, max_length=2000)


class Comment(CommentDraft):
    id: str
    created_at: Optional[datetime] = None
