"""
PetProject Backend - Medical Record Scanner Tests
===================================================

What we test:
    ✅ Document decoding from raw bytes, base64 and data URLs
    ✅ Extraction parsing, including sloppy medications output
    ✅ scan() sends the document inline and returns the extracted record
    ✅ Draft defaults and saving/listing records per pet
"""

import base64
import json
from datetime import date
from unittest.mock import patch

import pytest

from petproject.exceptions import LLMServiceError, NotFoundError, ValidationError
from petproject.models.account import PetDraft
from petproject.models.medical import ExtractedRecord
from petproject.services.account_service import account_service
from petproject.services.scan_service import scan_service

PDF_BYTES = b"%PDF-1.4 vaccination certificate"

EXTRACTION = {
    "petName": "Buddy",
    "dateOfVisit": "2024-03-02",
    "diagnosis": "Healthy",
    "medications": ["Rabies", "DHPP"],
    "nextVaccinationDate": "2025-03-02",
    "suggestedReminderDate": "2025-02-16",
}


class TestDecoding:

    def test_bytes_pass_through(self):
        assert scan_service.decode_document(PDF_BYTES) == PDF_BYTES

    def test_base64_and_data_url(self):
        encoded = base64.b64encode(PDF_BYTES).decode("ascii")
        assert scan_service.decode_document(encoded) == PDF_BYTES
        assert scan_service.decode_document(f"data:application/pdf;base64,{encoded}") == PDF_BYTES

    def test_invalid_base64(self):
        with pytest.raises(ValidationError):
            scan_service.decode_document("not base64 at all!")


class TestParsing:

    def test_parse_full_extraction(self):
        extracted = scan_service.parse_extraction(json.dumps(EXTRACTION))
        assert extracted.pet_name == "Buddy"
        assert extracted.medications == ["Rabies", "DHPP"]
        assert extracted.suggested_reminder_date == "2025-02-16"

    def test_medications_as_string_or_null(self):
        assert scan_service.parse_extraction('{"medications": "Rabies, DHPP"}').medications == [
            "Rabies",
            "DHPP",
        ]
        assert scan_service.parse_extraction('{"medications": null}').medications == []

    @pytest.mark.parametrize("text", ["", "no json here", "[1, 2]"])
    def test_unparseable_output(self, text):
        with pytest.raises(LLMServiceError):
            scan_service.parse_extraction(text)


class TestScan:

    @pytest.mark.asyncio
    async def test_scan_sends_document_inline(self, mock_llm):
        mock_llm.generate.return_value = json.dumps(EXTRACTION)

        with patch("petproject.services.scan_service.gemini_service", mock_llm):
            extracted = await scan_service.scan(base64.b64encode(PDF_BYTES).decode("ascii"))

        assert extracted.date_of_visit == "2024-03-02"
        kwargs = mock_llm.generate.call_args.kwargs
        assert kwargs["inline_data"] == PDF_BYTES
        assert kwargs["mime_type"] == "application/pdf"
        assert kwargs["json_output"] is True

    @pytest.mark.asyncio
    async def test_scan_rejects_unsupported_type(self, mock_llm):
        with patch("petproject.services.scan_service.gemini_service", mock_llm):
            with pytest.raises(ValidationError):
                await scan_service.scan(PDF_BYTES, mime_type="text/plain")
        mock_llm.generate.assert_not_awaited()


class TestRecords:

    def test_draft_defaults(self):
        draft = scan_service.draft_record(ExtractedRecord(), "pet1", today=date(2024, 6, 1))
        assert draft.date == "2024-06-01"
        assert draft.type == "Checkup"
        assert draft.summary == "Routine Checkup"
        assert draft.is_ai_processed is True

    def test_draft_from_extraction(self):
        extracted = ExtractedRecord.model_validate(EXTRACTION)
        draft = scan_service.draft_record(extracted, "pet1")
        assert draft.date == "2024-03-02"
        assert draft.summary == "Healthy"
        assert draft.structured_data.medications == ["Rabies", "DHPP"]
        assert draft.extracted_data.pet_name == "Buddy"

    @pytest.mark.asyncio
    async def test_save_and_list_records(self, store):
        await account_service.ensure_account(store, "owner")
        buddy = await account_service.add_pet(store, "owner", PetDraft(name="Buddy"))
        luna = await account_service.add_pet(store, "owner", PetDraft(name="Luna"))

        extracted = ExtractedRecord.model_validate(EXTRACTION)
        first = await scan_service.save_record(
            store, "owner", scan_service.draft_record(extracted, buddy.id), "http://test/media/x.pdf"
        )
        second = await scan_service.save_record(
            store, "owner", scan_service.draft_record(ExtractedRecord(), luna.id)
        )

        assert first.pdf_url == "http://test/media/x.pdf"
        assert first.user_id == "owner"
        assert second.pdf_url is None

        records = await scan_service.list_records(store, "owner")
        assert [r.id for r in records] == [second.id, first.id]
        only_buddy = await scan_service.list_records(store, "owner", pet_id=buddy.id)
        assert [r.id for r in only_buddy] == [first.id]

    @pytest.mark.asyncio
    async def test_save_for_unknown_pet(self, store):
        await account_service.ensure_account(store, "owner")
        draft = scan_service.draft_record(ExtractedRecord(), "ghost-pet")
        with pytest.raises(NotFoundError):
            await scan_service.save_record(store, "owner", draft)
        assert await store.query("users/owner/medical_records") == []
