"""
PetProject Backend - Blob Storage Service
===========================================

What:  Upload validation plus the two blob store backends.
How:   validate_upload() checks the declared content type against an allow-list
       and the size against settings.max_file_size. build_media_path() builds
       the `{prefix}/{uid}/{timestamp}-{filename}` object path. The configured
       backend then writes the bytes and hands back a URL.
Who:   FeedService.upload_media, QAService.upload_question_image, the scan
       route; FeedService/QAService call delete() when removing documents.
When:  Every media upload, and best-effort after document deletes.

Backends (settings.blob_store_backend):
    local:     aiofiles under settings.storage_root; URLs under
               settings.media_base_url (served by the /media mount in main.py)
    firebase:  firebase_admin.storage bucket; objects are made public and
               their public URL is returned

Object layout:
    petbook/{uid}/{ms-timestamp}-{filename}    post media
    petora/{uid}/{ms-timestamp}-{filename}     question images
    medical_records/{uid}/{ms-timestamp}-{filename}  scanned medical documents
"""

import asyncio
import logging
import os
import re
import time
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

import aiofiles
import aiofiles.os

from petproject.config import settings
from petproject.exceptions import BlobStorageError, ValidationError
from petproject.services.blob_base import BlobStore

logger = logging.getLogger(__name__)

# ── Allowed Content Types ─────────────────────────────────────────────────
ALLOWED_MEDIA_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "video/mp4",
    "video/webm",
}

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}

ALLOWED_DOCUMENT_TYPES = {"application/pdf", "image/png", "image/jpeg"}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def validate_upload(
    content: bytes,
    content_type: Optional[str],
    allowed_types: Iterable[str] = ALLOWED_MEDIA_TYPES,
    content_length: Optional[int] = None,
) -> str:
    """
    Validate an upload's declared type and its size.

    Returns the normalized content type.
    Raises ValidationError for an unknown type, an empty file, or one larger
    than settings.max_file_size (checked against Content-Length first, then
    the actual byte count).
    """
    allowed = set(allowed_types)
    normalized = (content_type or "").split(";")[0].strip().lower()
    if normalized == "image/jpg":
        normalized = "image/jpeg"

    if normalized not in allowed:
        raise ValidationError(
            message=(
                f"File type '{content_type or 'unknown'}' is not supported. "
                f"Allowed types: {', '.join(sorted(allowed))}"
            ),
            field="file",
            context={"content_type": content_type, "allowed": sorted(allowed)},
        )

    if not content:
        raise ValidationError(message="Uploaded file is empty.", field="file")

    max_mb = settings.max_file_size / (1024 * 1024)
    if content_length and content_length > settings.max_file_size:
        raise ValidationError(
            message=f"File size exceeds maximum of {max_mb:.0f}MB.",
            field="file",
            context={"max_size_mb": max_mb, "reported_size": content_length},
        )
    if len(content) > settings.max_file_size:
        raise ValidationError(
            message=(
                f"File size ({len(content) / (1024 * 1024):.1f}MB) "
                f"exceeds maximum of {max_mb:.0f}MB."
            ),
            field="file",
            context={"max_size_mb": max_mb, "actual_size": len(content)},
        )

    return normalized


def safe_filename(filename: Optional[str]) -> str:
    """Strip directories and replace anything outside [A-Za-z0-9._-] with '_'."""
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "upload"


def build_media_path(prefix: str, uid: str, filename: Optional[str], now_ms: Optional[int] = None) -> str:
    """e.g. build_media_path("petbook", "u1", "dog.jpg") -> "petbook/u1/1700000000000-dog.jpg"."""
    if not uid or "/" in uid:
        raise ValidationError(message="Invalid account id for upload path", field="uid")
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}/{uid}/{ts}-{safe_filename(filename)}"


# ══════════════════════════════════════════════════════════════════════════
# Local Filesystem Backend
# ══════════════════════════════════════════════════════════════════════════

class LocalBlobStore(BlobStore):
    """
    Stores objects as files below `storage_root`.

    Directory Structure:
        storage/
        └── petbook/
            └── u1/
                ├── 1700000000000-dog.jpg
                └── 1700000005000-walk.mp4
    """

    def __init__(self, storage_root: Optional[str] = None, base_url: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.base_url = (base_url or settings.media_base_url).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalBlobStore initialized with storage_root=%s", self.storage_root)

    def _resolve(self, relative_path: str) -> Path:
        target = (self.storage_root / relative_path).resolve()
        if self.storage_root not in target.parents:
            raise BlobStorageError(
                message="Invalid media path",
                context={"path": relative_path},
            )
        return target

    def path_for_url(self, url: str) -> Optional[Path]:
        """Filesystem path behind a URL from upload(); None for foreign URLs."""
        prefix = self.base_url + "/"
        if not url.startswith(prefix):
            return None
        return self._resolve(unquote(url[len(prefix):]))

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store media at %s: %s", target, str(e))
            raise BlobStorageError(
                message="Failed to save uploaded media. Please try again.",
                context={"path": path, "os_error": str(e)},
            )
        logger.info("Media stored: %s (%d bytes, %s)", path, len(content), content_type)
        return f"{self.base_url}/{path}"

    async def delete(self, url: str) -> None:
        target = self.path_for_url(url)
        if target is None:
            raise BlobStorageError(
                message="Media URL does not belong to this store",
                context={"url": url},
            )
        try:
            await aiofiles.os.remove(target)
            logger.info("Deleted media: %s", target.name)
        except FileNotFoundError:
            logger.debug("Delete: media already gone: %s", target.name)
        except OSError as e:
            raise BlobStorageError(
                message="Failed to delete media",
                context={"url": url, "os_error": str(e)},
            )

    async def health_check(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)


# ══════════════════════════════════════════════════════════════════════════
# Firebase Storage Backend
# ══════════════════════════════════════════════════════════════════════════

class FirebaseBlobStore(BlobStore):
    """
    Firebase Storage bucket through firebase_admin.storage.

    The google-cloud-storage client is synchronous, so each call runs in a
    worker thread with asyncio.to_thread.
    """

    def __init__(self, bucket_name: Optional[str] = None):
        self.bucket_name = bucket_name or settings.firebase_storage_bucket
        self._bucket = None

    @property
    def bucket(self):
        if self._bucket is None:
            from firebase_admin import storage

            from petproject.database import get_firebase_app

            self._bucket = storage.bucket(self.bucket_name or None, app=get_firebase_app())
        return self._bucket

    def object_name_for_url(self, url: str) -> Optional[str]:
        """
        Object name behind a public or download URL, None for foreign URLs.

        Handles both
            https://storage.googleapis.com/{bucket}/{object}
            https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{object}?alt=media...
        """
        parsed = urlparse(url)
        path = parsed.path
        public_prefix = f"/{self.bucket_name}/"
        download_prefix = f"/v0/b/{self.bucket_name}/o/"
        if parsed.netloc == "storage.googleapis.com" and path.startswith(public_prefix):
            return unquote(path[len(public_prefix):])
        if parsed.netloc == "firebasestorage.googleapis.com" and path.startswith(download_prefix):
            return unquote(path[len(download_prefix):])
        return None

    def _upload_sync(self, path: str, content: bytes, content_type: str) -> str:
        blob = self.bucket.blob(path)
        blob.upload_from_string(content, content_type=content_type)
        blob.make_public()
        return blob.public_url

    def _delete_sync(self, name: str) -> None:
        from google.api_core import exceptions as gcp_exceptions

        try:
            self.bucket.blob(name).delete()
        except gcp_exceptions.NotFound:
            logger.debug("Delete: object already gone: %s", name)

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        try:
            url = await asyncio.to_thread(self._upload_sync, path, content, content_type)
        except Exception as e:
            logger.error("Firebase upload failed for %s: %s", path, str(e))
            raise BlobStorageError(
                message="Failed to save uploaded media. Please try again.",
                context={"path": path, "error": str(e)},
            ) from e
        logger.info("Media uploaded to bucket: %s (%d bytes)", path, len(content))
        return url

    async def delete(self, url: str) -> None:
        name = self.object_name_for_url(url)
        if name is None:
            raise BlobStorageError(
                message="Media URL does not belong to this bucket",
                context={"url": url},
            )
        try:
            await asyncio.to_thread(self._delete_sync, name)
        except Exception as e:
            raise BlobStorageError(
                message="Failed to delete media",
                context={"url": url, "error": str(e)},
            ) from e
        logger.info("Deleted media object: %s", name)

    async def health_check(self) -> bool:
        try:
            return await asyncio.to_thread(self.bucket.exists)
        except Exception as e:
            logger.warning("Firebase Storage health check failed: %s", str(e))
            return False


def create_blob_store(backend: Optional[str] = None) -> BlobStore:
    backend = backend or settings.blob_store_backend
    if backend == "firebase":
        return FirebaseBlobStore()
    return LocalBlobStore()


# ── Singleton Instance ────────────────────────────────────────────────────
blob_service = create_blob_store()
