"""
PetProject Backend - Petora Routes (Questions, Answers, Upvotes)
==================================================================

What:  The pet-care Q&A board.
How:   Creating a question schedules a background task that asks Gemini for
       an answer and stores it as the "Petora AI" account. The question is
       returned immediately; the AI answer shows up in the answer list once
       the task finishes. A failed AI answer never affects the question.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Response, UploadFile

from petproject.config import settings
from petproject.database import get_document_store
from petproject.models.base import Page
from petproject.models.question import Answer, AnswerDraft, Question, QuestionDraft
from petproject.routes.deps import get_account_id
from petproject.schemas.common import ErrorResponse, ToggleResponse, UploadResponse
from petproject.schemas.content import AnswerCreateRequest, QuestionCreateRequest
from petproject.services.account_service import account_service
from petproject.services.ai_answer_service import ai_answer_service
from petproject.services.qa_service import qa_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Petora"])


# ── Questions ─────────────────────────────────────────────────────────────

@router.post(
    "/questions",
    status_code=201,
    response_model=Question,
    responses={400: {"description": "Missing pet or invalid field", "model": ErrorResponse}},
    summary="Ask a question about a pet",
)
async def create_question(
    body: QuestionCreateRequest,
    background_tasks: BackgroundTasks,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Question:
    author_name, author_photo = await account_service.author_identity(store, account_id)
    draft = QuestionDraft.from_input({
        **body.model_dump(),
        "user_id": account_id,
        "author_name": author_name,
        "author_photo": author_photo,
    })
    question = await qa_service.create_question(store, draft)

    if settings.gemini_api_key:
        background_tasks.add_task(ai_answer_service.answer_in_background, store, question.id)
    else:
        logger.info("GEMINI_API_KEY not set; no AI answer for question %s", question.id)

    return question


@router.get(
    "/questions",
    response_model=Page[Question],
    responses={400: {"description": "Malformed cursor", "model": ErrorResponse}},
    summary="Newest-first question page",
)
async def list_questions(
    cursor: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    store: DocumentStore = Depends(get_document_store),
) -> Page[Question]:
    return await qa_service.list_questions(store, cursor=cursor, page_size=limit)


@router.get(
    "/questions/{question_id}",
    response_model=Question,
    responses={404: {"description": "Question not found", "model": ErrorResponse}},
    summary="Get a question",
)
async def get_question(
    question_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Question:
    return await qa_service.get_question(store, question_id)


@router.delete(
    "/questions/{question_id}",
    status_code=204,
    responses={
        403: {"description": "Caller is not the author", "model": ErrorResponse},
        404: {"description": "Question not found", "model": ErrorResponse},
    },
    summary="Delete a question",
)
async def delete_question(
    question_id: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Response:
    await qa_service.delete_question(store, question_id, account_id)
    return Response(status_code=204)


@router.post(
    "/questions/{question_id}/upvote",
    response_model=ToggleResponse,
    summary="Upvote or un-upvote a question",
)
async def toggle_question_upvote(
    question_id: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> ToggleResponse:
    active = await qa_service.toggle_question_upvote(store, question_id, account_id)
    return ToggleResponse(active=active)


# ── Answers ───────────────────────────────────────────────────────────────

@router.post(
    "/questions/{question_id}/answers",
    status_code=201,
    response_model=Answer,
    responses={404: {"description": "Question not found", "model": ErrorResponse}},
    summary="Answer a question",
)
async def add_answer(
    question_id: str,
    body: AnswerCreateRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> Answer:
    author_name, author_photo = await account_service.author_identity(store, account_id)
    draft = AnswerDraft.from_input({
        "question_id": question_id,
        "user_id": account_id,
        "author_name": author_name,
        "author_photo": author_photo,
        "content": body.content,
    })
    return await qa_service.add_answer(store, draft)


@router.get(
    "/questions/{question_id}/answers",
    response_model=List[Answer],
    summary="Answers to a question, oldest first",
)
async def list_answers(
    question_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> List[Answer]:
    return await qa_service.list_answers(store, question_id)


@router.post(
    "/answers/{answer_id}/upvote",
    response_model=ToggleResponse,
    summary="Upvote or un-upvote an answer",
)
async def toggle_answer_upvote(
    answer_id: str,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> ToggleResponse:
    active = await qa_service.toggle_answer_upvote(store, answer_id, account_id)
    return ToggleResponse(active=active)


# ── Images ────────────────────────────────────────────────────────────────

@router.post(
    "/question-images",
    status_code=201,
    response_model=UploadResponse,
    responses={400: {"description": "Unsupported type or too large", "model": ErrorResponse}},
    summary="Upload an image to attach to a question",
)
async def upload_question_image(
    file: UploadFile = File(...),
    account_id: str = Depends(get_account_id),
) -> UploadResponse:
    content = await file.read()
    try:
        url = await qa_service.upload_question_image(
            account_id,
            file.filename,
            content,
            file.content_type,
            content_length=file.size,
        )
    finally:
        await file.close()
    return UploadResponse(url=url, size=len(content))
