"""
PetProject Backend - Post, Comment, Question and Answer Schemas
=================================================================

What:  Request bodies for Petbook (posts, comments) and Petora (questions,
       answers).
How:   Author fields (userId, authorName, authorPhoto) are never taken from
       the body. Routes fill them in from the caller's account before
       building the corresponding draft model.
"""

from typing import List, Optional

from pydantic import Field

from petproject.models.post import MediaType, Visibility
from petproject.schemas.common import ApiRequest


class PostCreateRequest(ApiRequest):
    media_urls: List[str] = Field(description="1 URL for image/video posts, 2-5 for carousels")
    media_type: MediaType
    media_width: Optional[int] = None
    media_height: Optional[int] = None
    caption: str = ""
    visibility: Visibility = "public"
    tags: Optional[List[str]] = None
    pet_id: Optional[str] = None


class CommentCreateRequest(ApiRequest):
    content: str


class QuestionCreateRequest(ApiRequest):
    pet_id: str = Field(description="The pet the question is about")
    title: str
    content: str
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class AnswerCreateRequest(ApiRequest):
    content: str
