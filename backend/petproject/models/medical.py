"""
PetProject Backend - Medical Record Models
============================================

Stored at:
    users/{uid}/medical_records/{recordId}  MedicalRecord

ExtractedRecord is what the scanner pulls out of a vet document. Its stored
and JSON names are camelCase (petName, dateOfVisit, ...) which is also the
shape the model is asked to answer in.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from petproject.models.base import DocumentModel

RecordType = Literal["Vaccination", "Checkup", "Surgery", "Other"]


class ExtractedRecord(DocumentModel):
    pet_name: Optional[str] = None
    date_of_visit: Optional[str] = None
    diagnosis: Optional[str] = None
    medications: List[str] = Field(default_factory=list)
    next_vaccination_date: Optional[str] = None
    suggested_reminder_date: Optional[str] = None

    @field_validator("medications", mode="before")
    @classmethod
    def coerce_medications(cls, v):
        """Models sometimes answer with a comma-separated string or null."""
        if v is None:
            return []
        if isinstance(v, str):
            return [m.strip() for m in v.split(",") if m.strip()]
        return v


class StructuredData(DocumentModel):
    diagnosis: Optional[str] = None
    medications: List[str] = Field(default_factory=list)


class MedicalRecordDraft(DocumentModel):
    pet_id: str = Field(min_length=1)
    date: str = Field(min_length=1)
    type: RecordType = "Checkup"
    summary: str = Field(min_length=1, max_length=2000)
    is_ai_processed: bool = False
    structured_data: Optional[StructuredData] = None
    extracted_data: Optional[ExtractedRecord] = None


class MedicalRecord(MedicalRecordDraft):
    id: str
    user_id: str
    pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None
