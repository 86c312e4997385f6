"""
PetProject Backend - Q&A Store (Petora)
=========================================

What:  Questions about a pet, answers from people or the AI assistant, and
       upvotes on both.
How:   questions/{id} carries a denormalized answerCount. add_answer() writes
       the answer and increments answerCount in one atomic batch, so the count
       always equals the number of stored answers.
Who:   Question routes and AIAnswerService.
"""

import logging
from typing import List, Optional

from petproject.config import settings
from petproject.exceptions import BlobStorageError, NotFoundError, PermissionDeniedError
from petproject.models.base import Page
from petproject.models.question import Answer, AnswerDraft, Question, QuestionDraft
from petproject.services.blob_service import (
    ALLOWED_IMAGE_TYPES,
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
    CreateOp,
    DocumentStore,
    Filter,
    Increment,
    Order,
    UpdateOp,
    join_path,
    new_document_id,
)

logger = logging.getLogger(__name__)


class QAService:

    # ── Questions ─────────────────────────────────────────────────────────

    async def create_question(self, store: DocumentStore, draft: QuestionDraft) -> Question:
        data = {
            **draft.to_document(),
            "upvotes": [],
            "answerCount": 0,
            "createdAt": SERVER_TIMESTAMP,
        }
        question_id = await store.add("questions", data)
        logger.info("Question %s created by %s about pet %s", question_id, draft.user_id, draft.pet_id)
        return await self.get_question(store, question_id)

    async def get_question(self, store: DocumentStore, question_id: str) -> Question:
        snapshot = await store.get(join_path("questions", question_id))
        if not snapshot.exists:
            raise NotFoundError(resource="question", resource_id=question_id)
        return Question.from_snapshot(snapshot)

    async def list_questions(
        self,
        store: DocumentStore,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Page[Question]:
        return await newest_first_page(
            store, "questions", Question, page_size or settings.questions_page_size, cursor
        )

    async def delete_question(
        self, store: DocumentStore, question_id: str, requester_id: str
    ) -> None:
        """Owner-only delete; the attached image is removed best-effort afterwards."""
        question = await self.get_question(store, question_id)
        if question.user_id != requester_id:
            raise PermissionDeniedError(
                message="Only the author can delete this question",
                context={"question_id": question_id},
            )

        await store.delete(join_path("questions", question_id))
        logger.info("Question %s deleted by %s", question_id, requester_id)

        if question.image_url:
            try:
                await blob_service.delete(question.image_url)
            except BlobStorageError as e:
                logger.warning(
                    "Orphaned image after deleting question %s: %s (%s)",
                    question_id,
                    question.image_url,
                    e.message,
                )

    async def upload_question_image(
        self,
        account_id: str,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
        content_length: Optional[int] = None,
    ) -> str:
        normalized = validate_upload(content, content_type, ALLOWED_IMAGE_TYPES, content_length)
        path = build_media_path("petora", account_id, filename)
        return await blob_service.upload(path, content, normalized)

    # ── Answers ───────────────────────────────────────────────────────────

    async def add_answer(self, store: DocumentStore, draft: AnswerDraft) -> Answer:
        """
        Store an answer and bump the question's answerCount, atomically.

        Raises:
            NotFoundError: The question does not exist; no answer is written.
        """
        answer_id = new_document_id()
        answer_path = join_path("answers", answer_id)
        data = {**draft.to_document(), "upvotes": [], "createdAt": SERVER_TIMESTAMP}

        try:
            await store.commit([
                CreateOp(answer_path, data),
                UpdateOp(join_path("questions", draft.question_id), {"answerCount": Increment(1)}),
            ])
        except NotFoundError as e:
            raise NotFoundError(resource="question", resource_id=draft.question_id) from e

        logger.info(
            "Answer %s added to question %s by %s%s",
            answer_id,
            draft.question_id,
            draft.user_id,
            " (AI)" if draft.is_ai_generated else "",
        )
        return Answer.from_snapshot(await store.get(answer_path))

    async def list_answers(self, store: DocumentStore, question_id: str) -> List[Answer]:
        """Answers to a question, oldest first."""
        snapshots = await store.query(
            "answers",
            filters=[Filter("questionId", "==", question_id)],
            order_by=[Order("createdAt", ASCENDING)],
        )
        return [Answer.from_snapshot(s) for s in snapshots]

    # ── Upvotes ───────────────────────────────────────────────────────────

    async def _toggle_upvote(
        self, store: DocumentStore, resource: str, path: str, account_id: str
    ) -> bool:
        snapshot = await store.get(path)
        if not snapshot.exists:
            raise NotFoundError(resource=resource, resource_id=snapshot.id)

        if account_id in (snapshot.get("upvotes") or []):
            await store.update(path, {"upvotes": ArrayRemove(account_id)})
            return False
        await store.update(path, {"upvotes": ArrayUnion(account_id)})
        return True

    async def toggle_question_upvote(
        self, store: DocumentStore, question_id: str, account_id: str
    ) -> bool:
        """Returns True if the question is upvoted by account_id after the call."""
        return await self._toggle_upvote(
            store, "question", join_path("questions", question_id), account_id
        )

    async def toggle_answer_upvote(
        self, store: DocumentStore, answer_id: str, account_id: str
    ) -> bool:
        return await self._toggle_upvote(
            store, "answer", join_path("answers", answer_id), account_id
        )


# ── Singleton Instance ────────────────────────────────────────────────────
qa_service = QAService()
