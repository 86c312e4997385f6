"""
PetProject Backend - Medical Record Routes
============================================

What:  Scan vet documents with Gemini and keep the confirmed records.
How:   Scanning is stateless. The client reviews (and may edit) the returned
       draft before saving it, so nothing extracted by the model is stored
       without the owner confirming it.
Who:   The pet health screen of the web client.

Error responses (global handlers):
    400: Unsupported/empty/oversized document, bad base64
    404: Saving a record for a pet the caller does not own
    503: Gemini unavailable, circuit open, or unreadable model output
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from petproject.database import get_document_store
from petproject.models.medical import MedicalRecord
from petproject.routes.deps import get_account_id
from petproject.schemas.common import ErrorResponse, UploadResponse
from petproject.schemas.scan import MedicalRecordSaveRequest, ScanRequest, ScanResponse
from petproject.services.scan_service import scan_service
from petproject.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Medical Records"])


@router.post(
    "/scan",
    response_model=ScanResponse,
    responses={
        400: {"description": "Invalid document", "model": ErrorResponse},
        503: {"description": "AI service unavailable", "model": ErrorResponse},
    },
    summary="Extract medical data from a vet document",
    description=(
        "Send a PDF, PNG or JPEG as base64. Returns the extracted fields and, "
        "when petId is given, an editable draft record."
    ),
)
async def scan_document(
    body: ScanRequest,
    account_id: str = Depends(get_account_id),
) -> ScanResponse:
    logger.info("Scan requested by %s (%s)", account_id, body.mime_type)
    extracted = await scan_service.scan(body.document, body.mime_type)
    draft = scan_service.draft_record(extracted, body.pet_id) if body.pet_id else None
    return ScanResponse(extracted=extracted, draft=draft)


@router.post(
    "/scan/documents",
    status_code=201,
    response_model=UploadResponse,
    responses={400: {"description": "Unsupported type or too large", "model": ErrorResponse}},
    summary="Store the original document",
)
async def upload_document(
    file: UploadFile = File(...),
    account_id: str = Depends(get_account_id),
) -> UploadResponse:
    content = await file.read()
    try:
        url = await scan_service.upload_document(
            account_id, file.filename, content, file.content_type
        )
    finally:
        await file.close()
    return UploadResponse(url=url, size=len(content))


@router.post(
    "/me/medical-records",
    status_code=201,
    response_model=MedicalRecord,
    responses={404: {"description": "Pet not found", "model": ErrorResponse}},
    summary="Save a confirmed medical record",
)
async def save_record(
    body: MedicalRecordSaveRequest,
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> MedicalRecord:
    return await scan_service.save_record(store, account_id, body.to_draft(), body.pdf_url)


@router.get(
    "/me/medical-records",
    response_model=List[MedicalRecord],
    summary="The caller's medical records, newest first",
)
async def list_records(
    pet_id: Optional[str] = Query(default=None, alias="petId"),
    account_id: str = Depends(get_account_id),
    store: DocumentStore = Depends(get_document_store),
) -> List[MedicalRecord]:
    return await scan_service.list_records(store, account_id, pet_id)
