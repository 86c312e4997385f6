"""
PetProject Backend - AI Answer Task
=====================================

What:  Writes an answer from the "Petora AI" assistant for a new question.
How:   Builds a prompt from the pet's details and the question, asks the
       text-generation client for JSON {"answer": "..."}, and stores the
       result through QAService.add_answer under the assistant identity.
       Output that is not JSON (or has no "answer" key) is used verbatim.
Who:   Scheduled by POST /api/questions as a FastAPI background task.
When:  After the question has been stored and the response sent.

Failure policy:
    Generation or storage failures are logged. The question is unaffected and
    simply has no AI answer.
"""

import json
import logging
from typing import Optional

from petproject.config import settings
from petproject.exceptions import LLMServiceError, NotFoundError, PetProjectError
from petproject.models.account import Pet
from petproject.models.question import Answer, AnswerDraft, Question
from petproject.services.account_service import account_service
from petproject.services.gemini_service import gemini_service
from petproject.services.qa_service import qa_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)


class AIAnswerService:

    SYSTEM_INSTRUCTION = """You are an AI veterinary assistant named "Petora AI".
You help pet owners with safe, practical, context-aware advice.

You will be given:
1. Details about the pet (name, species, breed, birth date)
2. The owner's question

Guidelines:
- Use the pet's name and specifics ("For a Golden Retriever like Buddy...")
- If the issue sounds serious, say so clearly and recommend seeing a vet
- Give concrete, actionable steps
- Keep the tone warm and professional

Output format:
Return a JSON object with a single key "answer" (string). The answer may use markdown."""

    @staticmethod
    def build_prompt(question: Question, pet: Optional[Pet] = None) -> str:
        return (
            f"Pet Name: {(pet.name if pet else None) or 'the pet'}\n"
            f"Species: {(pet.species if pet else None) or 'Unknown'}\n"
            f"Breed: {(pet.breed if pet else None) or 'Unknown'}\n"
            f"Age/BirthDate: {(pet.birth_date if pet else None) or 'Unknown'}\n"
            f"\n"
            f"Question Title: {question.title}\n"
            f"Question Content: {question.content}\n"
        )

    @staticmethod
    def parse_answer(text: str) -> str:
        """The "answer" field of a JSON reply, or the raw text when there is none."""
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            payload = None

        if isinstance(payload, dict):
            answer = payload.get("answer")
            if isinstance(answer, str) and answer.strip():
                return answer.strip()

        raw = (text or "").strip()
        if not raw:
            raise LLMServiceError(message="The AI assistant returned an empty answer.")
        return raw

    async def answer_question(
        self,
        store: DocumentStore,
        question: Question,
        pet: Optional[Pet] = None,
    ) -> Answer:
        """Generate and store the assistant's answer to `question`."""
        text = await gemini_service.generate(
            self.build_prompt(question, pet),
            system_instruction=self.SYSTEM_INSTRUCTION,
            json_output=True,
        )
        draft = AnswerDraft(
            question_id=question.id,
            user_id=settings.ai_assistant_uid,
            author_name=settings.ai_assistant_name,
            author_photo=settings.ai_assistant_photo,
            content=self.parse_answer(text),
            is_ai_generated=True,
        )
        return await qa_service.add_answer(store, draft)

    async def answer_in_background(self, store: DocumentStore, question_id: str) -> Optional[Answer]:
        """
        Background-task entry point: load the question and its pet, then answer.

        Never raises; returns None when no answer was stored.
        """
        try:
            question = await qa_service.get_question(store, question_id)
            try:
                pet = await account_service.get_pet(store, question.user_id, question.pet_id)
            except NotFoundError:
                logger.info("Pet %s not found; answering question %s without pet details",
                            question.pet_id, question_id)
                pet = None
            answer = await self.answer_question(store, question, pet)
        except PetProjectError as e:
            logger.error("AI answer for question %s failed: %s", question_id, e.message)
            return None
        except Exception as e:
            logger.error(
                "Unexpected error generating AI answer for question %s: %s",
                question_id,
                str(e),
                exc_info=True,
            )
            return None

        logger.info("AI answer %s stored for question %s", answer.id, question_id)
        return answer


# ── Singleton Instance ────────────────────────────────────────────────────
ai_answer_service = AIAnswerService()
