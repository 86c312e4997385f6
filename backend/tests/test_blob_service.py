"""
PetProject Backend - Blob Storage Tests
=========================================

What we test:
    ✅ Upload validation: content type, empty files, size limits
    ✅ Filename sanitization and media path layout
    ✅ LocalBlobStore write/delete and path traversal protection
    ✅ FirebaseBlobStore URL → object name mapping (bucket mocked)
"""

from unittest.mock import MagicMock

import pytest

from petproject.config import settings
from petproject.exceptions import BlobStorageError, ValidationError
from petproject.services.blob_service import (
    ALLOWED_DOCUMENT_TYPES,
    FirebaseBlobStore,
    build_media_path,
    safe_filename,
    validate_upload,
)


class TestValidateUpload:

    def test_valid_image(self, sample_image_bytes):
        assert validate_upload(sample_image_bytes, "image/jpeg") == "image/jpeg"

    def test_normalizes_content_type(self, sample_image_bytes):
        assert validate_upload(sample_image_bytes, "IMAGE/JPG") == "image/jpeg"
        assert validate_upload(sample_image_bytes, "image/png; charset=binary") == "image/png"

    def test_invalid_type_rejected(self, sample_image_bytes):
        with pytest.raises(ValidationError, match="not supported"):
            validate_upload(sample_image_bytes, "application/zip")

    def test_missing_type_rejected(self, sample_image_bytes):
        with pytest.raises(ValidationError):
            validate_upload(sample_image_bytes, None)

    def test_document_types(self):
        assert validate_upload(b"%PDF-1.4", "application/pdf", ALLOWED_DOCUMENT_TYPES) == "application/pdf"
        with pytest.raises(ValidationError):
            validate_upload(b"\x00", "video/mp4", ALLOWED_DOCUMENT_TYPES)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_upload(b"", "image/jpeg")

    def test_oversized_content_length_rejected(self, sample_image_bytes):
        with pytest.raises(ValidationError, match="exceeds"):
            validate_upload(sample_image_bytes, "image/jpeg", content_length=settings.max_file_size + 1)

    def test_oversized_content_rejected(self):
        with pytest.raises(ValidationError, match="exceeds"):
            validate_upload(b"\x00" * (settings.max_file_size + 1), "video/mp4")


class TestMediaPaths:

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("dog.jpg", "dog.jpg"),
            ("My Dog (1).jpg", "My_Dog_1_.jpg"),
            ("../../etc/passwd", "passwd"),
            ("", "upload"),
            (None, "upload"),
            ("...", "upload"),
        ],
    )
    def test_safe_filename(self, filename, expected):
        assert safe_filename(filename) == expected

    def test_build_media_path(self):
        assert build_media_path("petbook", "u1", "dog.jpg", now_ms=1700000000000) == (
            "petbook/u1/1700000000000-dog.jpg"
        )

    def test_build_media_path_rejects_bad_uid(self):
        with pytest.raises(ValidationError):
            build_media_path("petbook", "../u1", "dog.jpg")
        with pytest.raises(ValidationError):
            build_media_path("petbook", "", "dog.jpg")


class TestLocalBlobStore:

    @pytest.mark.asyncio
    async def test_upload_and_delete(self, local_blobs, sample_image_bytes):
        url = await local_blobs.upload("petbook/u1/1-dog.jpg", sample_image_bytes, "image/jpeg")

        assert url == "http://test/media/petbook/u1/1-dog.jpg"
        path = local_blobs.path_for_url(url)
        assert path.read_bytes() == sample_image_bytes

        await local_blobs.delete(url)
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_delete_twice_is_quiet(self, local_blobs, sample_image_bytes):
        url = await local_blobs.upload("petbook/u1/1-dog.jpg", sample_image_bytes, "image/jpeg")
        await local_blobs.delete(url)
        await local_blobs.delete(url)

    @pytest.mark.asyncio
    async def test_delete_foreign_url(self, local_blobs):
        with pytest.raises(BlobStorageError):
            await local_blobs.delete("https://elsewhere.example/petbook/u1/1-dog.jpg")

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, local_blobs, sample_image_bytes):
        with pytest.raises(BlobStorageError):
            await local_blobs.upload("../outside.jpg", sample_image_bytes, "image/jpeg")
        with pytest.raises(BlobStorageError):
            local_blobs.path_for_url("http://test/media/..%2F..%2Fetc%2Fpasswd")

    @pytest.mark.asyncio
    async def test_health_check(self, local_blobs):
        assert await local_blobs.health_check() is True


class TestFirebaseBlobStore:

    def test_object_name_for_public_url(self):
        blobs = FirebaseBlobStore(bucket_name="pets.appspot.com")
        assert blobs.object_name_for_url(
            "https://storage.googleapis.com/pets.appspot.com/petbook/u1/1-dog.jpg"
        ) == "petbook/u1/1-dog.jpg"

    def test_object_name_for_download_url(self):
        blobs = FirebaseBlobStore(bucket_name="pets.appspot.com")
        assert blobs.object_name_for_url(
            "https://firebasestorage.googleapis.com/v0/b/pets.appspot.com/o/"
            "petbook%2Fu1%2F1-dog.jpg?alt=media&token=abc"
        ) == "petbook/u1/1-dog.jpg"

    def test_foreign_url(self):
        blobs = FirebaseBlobStore(bucket_name="pets.appspot.com")
        assert blobs.object_name_for_url("https://storage.googleapis.com/other/x.jpg") is None
        assert blobs.object_name_for_url("http://test/media/petbook/u1/1-dog.jpg") is None

    @pytest.mark.asyncio
    async def test_upload_makes_object_public(self, sample_image_bytes):
        blobs = FirebaseBlobStore(bucket_name="pets.appspot.com")
        blobs._bucket = MagicMock()
        blob = blobs._bucket.blob.return_value
        blob.public_url = "https://storage.googleapis.com/pets.appspot.com/petbook/u1/1-dog.jpg"

        url = await blobs.upload("petbook/u1/1-dog.jpg", sample_image_bytes, "image/jpeg")

        assert url == blob.public_url
        blob.upload_from_string.assert_called_once_with(sample_image_bytes, content_type="image/jpeg")
        blob.make_public.assert_called_once()

    @pytest.mark.asyncio
    async def test_upload_failure(self, sample_image_bytes):
        blobs = FirebaseBlobStore(bucket_name="pets.appspot.com")
        blobs._bucket = MagicMock()
        blobs._bucket.blob.return_value.upload_from_string.side_effect = RuntimeError("denied")

        with pytest.raises(BlobStorageError):
            await blobs.upload("petbook/u1/1-dog.jpg", sample_image_bytes, "image/jpeg")
