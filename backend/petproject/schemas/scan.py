"""
PetProject Backend - Medical Record Scan Schemas
==================================================

Scan flow:
    1. POST /api/scan/documents   (optional) store the original PDF/image → pdfUrl
    2. POST /api/scan             base64 document → extracted fields + editable draft
    3. POST /api/me/medical-records  confirmed draft (+ pdfUrl) → stored record
"""

from typing import Optional

from pydantic import BaseModel, Field

from petproject.models.medical import ExtractedRecord, MedicalRecordDraft
from petproject.schemas.common import ApiRequest


class ScanRequest(ApiRequest):
    document: str = Field(
        description="Base64 document content, optionally as a data: URL",
    )
    mime_type: str = Field(default="application/pdf")
    pet_id: Optional[str] = Field(
        default=None,
        description="When given, the response includes a draft record for this pet",
    )


class ScanResponse(BaseModel):
    extracted: ExtractedRecord
    draft: Optional[MedicalRecordDraft] = None


class MedicalRecordSaveRequest(MedicalRecordDraft):
    """A (possibly user-edited) draft plus the URL of the stored original."""
    pdf_url: Optional[str] = None

    def to_draft(self) -> MedicalRecordDraft:
        return MedicalRecordDraft.model_validate(self.model_dump(exclude={"pdf_url"}))
