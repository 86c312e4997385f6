"""
PetProject Backend - Local Media Route
========================================

What:  Serves files written by the local blob store.
Who:   <img>/<video> tags pointing at MEDIA_BASE_URL (default /media).
When:  Mounted only with BLOB_STORE_BACKEND=local. Firebase Storage serves
       its own public URLs.
"""

import mimetypes
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from petproject.config import settings
from petproject.exceptions import NotFoundError, ValidationError

router = APIRouter(tags=["Media"])


@router.get(
    "/media/{file_path:path}",
    summary="Serve uploaded media",
    responses={
        200: {"description": "Media file"},
        404: {"description": "File not found"},
    },
)
async def serve_media(file_path: str) -> FileResponse:
    storage_root = Path(settings.storage_root).resolve()
    full_path = (storage_root / file_path).resolve()

    # Resolved path must stay inside the storage root (no ../ escapes)
    if storage_root not in full_path.parents:
        raise ValidationError(message="Invalid file path", field="file_path")

    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        # Upload paths carry a millisecond timestamp, so content never changes
        headers={"Cache-Control": "public, max-age=86400"},
    )
