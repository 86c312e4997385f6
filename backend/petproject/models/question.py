"""
PetProject Backend - Question and Answer Models (Petora)
==========================================================

Stored at:
    questions/{questionId}  Question (answerCount is denormalized)
    answers/{answerId}      Answer (linked by questionId)
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from petproject.models.base import DocumentModel


class QuestionDraft(DocumentModel):
    user_id: str = Field(min_length=1)
    author_name: str = "Anonymous"
    author_photo: Optional[str] = None
    # Every question is about a specific pet
    pet_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=5000)
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class Question(QuestionDraft):
    id: str
    upvotes: List[str] = Field(default_factory=list)
    answer_count: int = 0
    created_at: Optional[datetime] = None


class AnswerDraft(DocumentModel):
    question_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    author_name: str = "Anonymous"
    author_photo: Optional[str] = None
    content: str = Field(min_length=1, max_length=10000)
    is_ai_generated: bool = False


class Answer(AnswerDraft):
    id: str
    upvotes: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
