"""
PetProject Backend - Medical Record Scanner
=============================================

What:  Extracts structured data from a vet document (PDF or photo) and
       stores medical records under the owner's account.
How:   The document is sent inline to the text-generation client with a
       system instruction asking for strict JSON. The reply is validated into
       an ExtractedRecord; draft_record() turns that into an editable
       MedicalRecordDraft which the owner confirms with save_record().
Who:   Scan and medical-record routes.

Flow:
    upload → scan() → ExtractedRecord → draft_record() → (owner edits) → save_record()
"""

import base64
import binascii
import json
import logging
from datetime import date
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from petproject.exceptions import LLMServiceError, ValidationError
from petproject.models.medical import (
    ExtractedRecord,
    MedicalRecord,
    MedicalRecordDraft,
    StructuredData,
)
from petproject.services.account_service import account_service
from petproject.services.blob_service import (
    ALLOWED_DOCUMENT_TYPES,
    blob_service,
    build_media_path,
    validate_upload,
)
from petproject.services.gemini_service import gemini_service
from petproject.store.base import (
    DESCENDING,
    SERVER_TIMESTAMP,
    DocumentStore,
    Filter,
    Order,
    join_path,
)

logger = logging.getLogger(__name__)


class ScanService:

    SYSTEM_INSTRUCTION = """You are an AI medical assistant for veterinary records.
Extract the following information from the provided medical record (PDF or image).

- Pet name: the field labelled "Pet Name" or similar.
- Diagnosis: prefer the medical history section.
- Medications: vaccines or medications from the immunization or medication tables.
- Dates: the main date of the record, and the next scheduled vaccination.

Return a JSON object with exactly these keys:
- petName (string or null)
- dateOfVisit (string, ISO 8601 YYYY-MM-DD, or null)
- diagnosis (string or null)
- medications (array of strings, empty if none)
- nextVaccinationDate (string, ISO 8601 YYYY-MM-DD, or null)
- suggestedReminderDate (string, ISO 8601 YYYY-MM-DD, two weeks before nextVaccinationDate, or null)

Use null for anything not found. Return strict JSON only."""

    SCAN_PROMPT = "Extract the medical data from this document."

    DEFAULT_SUMMARY = "Routine Checkup"

    @staticmethod
    def decode_document(data: Union[str, bytes]) -> bytes:
        """
        Raw bytes of an uploaded document.

        Strings are treated as base64, optionally prefixed with a data URL
        header ("data:application/pdf;base64,...").
        """
        if isinstance(data, bytes):
            return data
        encoded = data.split(",", 1)[1] if data.startswith("data:") and "," in data else data
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                message="Document is not valid base64 data",
                field="document",
            ) from e

    @staticmethod
    def parse_extraction(text: str) -> ExtractedRecord:
        try:
            payload = json.loads(text)
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
            return ExtractedRecord.model_validate(payload)
        except (ValueError, PydanticValidationError) as e:
            logger.warning("Unparseable scan output (%d chars): %s", len(text or ""), str(e))
            raise LLMServiceError(
                message="Could not read the extracted data. Please try another scan.",
                context={"error_type": type(e).__name__},
            ) from e

    async def scan(
        self,
        content: Union[str, bytes],
        mime_type: Optional[str] = "application/pdf",
    ) -> ExtractedRecord:
        """
        Raises:
            ValidationError: Unsupported type, empty, oversized or undecodable document.
            LLMServiceError / CircuitBreakerOpenError: Generation failed or
                returned something that is not the expected JSON.
        """
        document = self.decode_document(content)
        normalized = validate_upload(document, mime_type, ALLOWED_DOCUMENT_TYPES)

        text = await gemini_service.generate(
            self.SCAN_PROMPT,
            system_instruction=self.SYSTEM_INSTRUCTION,
            inline_data=document,
            mime_type=normalized,
            json_output=True,
        )
        extracted = self.parse_extraction(text)
        logger.info(
            "Scan extracted record (pet=%s, visit=%s, %d medication(s))",
            extracted.pet_name,
            extracted.date_of_visit,
            len(extracted.medications),
        )
        return extracted

    def draft_record(
        self,
        extracted: ExtractedRecord,
        pet_id: str,
        today: Optional[date] = None,
    ) -> MedicalRecordDraft:
        """Editable draft: visit date or today, type Checkup, summary from diagnosis."""
        return MedicalRecordDraft(
            pet_id=pet_id,
            date=extracted.date_of_visit or (today or date.today()).isoformat(),
            type="Checkup",
            summary=extracted.diagnosis or self.DEFAULT_SUMMARY,
            is_ai_processed=True,
            structured_data=StructuredData(
                diagnosis=extracted.diagnosis,
                medications=list(extracted.medications),
            ),
            extracted_data=extracted,
        )

    async def upload_document(
        self,
        account_id: str,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> str:
        normalized = validate_upload(content, content_type, ALLOWED_DOCUMENT_TYPES)
        path = build_media_path("medical_records", account_id, filename)
        return await blob_service.upload(path, content, normalized)

    async def save_record(
        self,
        store: DocumentStore,
        uid: str,
        draft: MedicalRecordDraft,
        pdf_url: Optional[str] = None,
    ) -> MedicalRecord:
        """Store a confirmed record for one of uid's pets (NotFoundError if the pet is unknown)."""
        await account_service.get_pet(store, uid, draft.pet_id)

        collection = join_path("users", uid, "medical_records")
        data = {**draft.to_document(), "userId": uid, "createdAt": SERVER_TIMESTAMP}
        if pdf_url:
            data["pdfUrl"] = pdf_url
        record_id = await store.add(collection, data)
        logger.info("Medical record %s saved for pet %s of %s", record_id, draft.pet_id, uid)

        snapshot = await store.get(join_path(collection, record_id))
        return MedicalRecord.from_snapshot(snapshot)

    async def list_records(
        self, store: DocumentStore, uid: str, pet_id: Optional[str] = None
    ) -> List[MedicalRecord]:
        """uid's medical records, newest first, optionally for one pet."""
        filters = [Filter("petId", "==", pet_id)] if pet_id else []
        snapshots = await store.query(
            join_path("users", uid, "medical_records"),
            filters=filters,
            order_by=[Order("createdAt", DESCENDING)],
        )
        return [MedicalRecord.from_snapshot(s) for s in snapshots]


# ── Singleton Instance ────────────────────────────────────────────────────
scan_service = ScanService()
