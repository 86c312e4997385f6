from petproject.models.account import Account, FollowEdge, Pet, PetDraft, WeightEntry
from petproject.models.base import DocumentModel, Page
from petproject.models.medical import (
    ExtractedRecord,
    MedicalRecord,
    MedicalRecordDraft,
    StructuredData,
)
from petproject.models.post import Comment, CommentDraft, Post, PostDraft
from petproject.models.question import Answer, AnswerDraft, Question, QuestionDraft

__all__ = [
    "Account",
    "Answer",
    "AnswerDraft",
    "Comment",
    "CommentDraft",
    "DocumentModel",
    "ExtractedRecord",
    "FollowEdge",
    "MedicalRecord",
    "MedicalRecordDraft",
    "Page",
    "Pet",
    "PetDraft",
    "Post",
    "PostDraft",
    "Question",
    "QuestionDraft",
    "StructuredData",
    "WeightEntry",
]
