"""
Uploads Router for the Code Tutor backend.

Endpoints:
- POST /upload/profile-photo - Upload an avatar and set it on the caller
- GET /upload/uploads/{filename} - Serve an uploaded file (public)
- GET /upload/debug/files - List stored files (disabled in production)
"""

import logging
import time
from io import BytesIO

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from PIL import Image

from ..config import settings
from ..constants import ALLOWED_IMAGE_TYPES, IMAGE_FORMAT_MIME_TYPES
from ..db_models import DBUser
from ..dependencies import get_current_user, get_repository, get_upload_store
from ..exceptions import (
    FileTooLargeError,
    InvalidImageError,
    NoFileUploadedError,
    ResourceNotFoundError,
    UnsupportedFileTypeError,
)
from ..models import StoredFileInfo, StoredFileList, UploadResponse
from ..repository import DatabaseRepository
from ..sanitization import image_extension, is_safe_stored_filename
from ..upload_store import UploadStore

# Initialize logger
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/upload",
    tags=["uploads"],
    responses={401: {"description": "Unauthorized"}},
)


def verify_image_bytes(content: bytes) -> str:
    """
    Check that the payload decodes as a JPEG, PNG or GIF image.

    Returns:
        The MIME type matching the decoded format

    Raises:
        InvalidImageError: If Pillow cannot identify or verify the data
        UnsupportedFileTypeError: If the data is an image of another format
    """
    try:
        with Image.open(BytesIO(content)) as image:
            image_format = image.format
            image.verify()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Rejected upload that is not a valid image: {e}")
        raise InvalidImageError()

    mime_type = IMAGE_FORMAT_MIME_TYPES.get(image_format)
    if mime_type is None:
        logger.warning(f"Rejected upload decoded as unsupported format {image_format}")
        raise UnsupportedFileTypeError(image_format, ALLOWED_IMAGE_TYPES)
    return mime_type


def build_avatar_url(filename: str) -> str:
    return f"{settings.backend_url}/upload/uploads/{filename}"


# =============================================================================
# Upload Endpoint
# =============================================================================

@router.post("/profile-photo", response_model=UploadResponse)
async def upload_profile_photo(
    file: UploadFile = File(None),
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository),
    store: UploadStore = Depends(get_upload_store)
) -> UploadResponse:
    """
    Upload a profile photo and make it the caller's avatar.

    Accepts JPEG, PNG or GIF up to UPLOAD_MAX_BYTES in the multipart
    field "file".

    Raises:
        NoFileUploadedError (400): No file in the request
        UnsupportedFileTypeError (400): MIME type or decoded format not allowed
        FileTooLargeError (400): Payload over the size limit
        InvalidImageError (400): Bytes are not an image
    """
    if file is None or not file.filename:
        raise NoFileUploadedError()

    mime_type = (file.content_type or "").lower()
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise UnsupportedFileTypeError(mime_type, ALLOWED_IMAGE_TYPES)

    # Read one byte past the limit to detect oversized payloads
    content = await file.read(settings.upload_max_bytes + 1)
    if len(content) > settings.upload_max_bytes:
        raise FileTooLargeError(settings.upload_max_bytes)
    if not content:
        raise NoFileUploadedError()

    # Store and serve the type the bytes decode as, not the declared one
    mime_type = verify_image_bytes(content)

    ext = image_extension(file.filename, mime_type)
    filename = f"{current_user.id}-{int(time.time() * 1000)}.{ext}"
    store.save(filename, content, mime_type)

    avatar_url = build_avatar_url(filename)
    await repo.set_avatar_url(current_user.id, avatar_url)
    logger.info(f"Stored avatar {filename} ({len(content)} bytes) for user {current_user.id}")

    return UploadResponse(
        avatar_url=avatar_url,
        message="Profile photo uploaded successfully",
    )


# =============================================================================
# Serving Endpoint
# =============================================================================

@router.get("/uploads/{filename}")
async def serve_upload(
    filename: str,
    store: UploadStore = Depends(get_upload_store)
) -> Response:
    """
    Serve an uploaded file with its stored content type.

    Raises:
        ResourceNotFoundError (404): Unknown, expired or invalid name
    """
    if not is_safe_stored_filename(filename):
        raise ResourceNotFoundError("File")

    stored = store.get(filename)
    if stored is None:
        raise ResourceNotFoundError("File")

    return Response(
        content=stored.content,
        media_type=stored.mime_type,
        headers={"Cache-Control": f"public, max-age={store.cache_max_age}"},
    )


# =============================================================================
# Debug Endpoint
# =============================================================================

@router.get("/debug/files", response_model=StoredFileList)
async def list_stored_files(
    current_user: DBUser = Depends(get_current_user),
    store: UploadStore = Depends(get_upload_store)
) -> StoredFileList:
    """List stored uploads. Not available in production."""
    if settings.is_production:
        raise ResourceNotFoundError("Endpoint")

    files = [
        StoredFileInfo(
            filename=f.filename,
            size=f.size,
            mimeType=f.mime_type,
            uploadedAt=int(f.uploaded_at * 1000),
        )
        for f in store.list_files()
    ]
    return StoredFileList(totalFiles=len(files), files=files)
