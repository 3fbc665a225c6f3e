"""
Photo upload endpoint for journal entries
"""

import logging
from pathlib import PurePosixPath
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile

from .dependencies import error_response, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/photos", tags=["photos"])

MAX_PHOTO_SIZE = 10 * 1024 * 1024  # 10MB

ALLOWED_TYPES = {
    "image/jpeg", "image/png", "image/webp",
    "image/heic", "image/gif", "image/svg+xml",
}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".gif", ".svg"}


def is_allowed_image(file_name: str, content_type: Optional[str]) -> bool:
    """Accept by MIME type or by file extension"""
    extension = PurePosixPath(file_name).suffix.lower()
    return content_type in ALLOWED_TYPES or extension in ALLOWED_EXTENSIONS


@router.post("/upload")
async def upload_photo(
    request: Request,
    file: Optional[UploadFile] = File(None),
    photo: Optional[UploadFile] = File(None),
    originalName: Optional[str] = Form(None),
    folder: str = Form("journal"),
):
    """
    Upload one photo. The form part may be named "file" or "photo";
    originalName overrides the uploaded file name.
    """
    storage = get_storage(request)

    upload = file or photo
    if upload is None:
        return error_response(400, "No photo file provided", success=False)

    file_name = originalName or upload.filename or "photo"
    if not is_allowed_image(file_name, upload.content_type):
        return error_response(
            400,
            "Invalid file type. Only JPEG, PNG, WebP, HEIC, GIF, and SVG files are allowed.",
            success=False,
        )

    content = await upload.read()
    if len(content) > MAX_PHOTO_SIZE:
        return error_response(413, "Photo exceeds the 10MB size limit", success=False)

    result = await storage.upload_file(content, file_name, upload.content_type, folder or "journal")
    if not result.success:
        return error_response(500, result.error or "Failed to upload photo", success=False)

    logger.info(f"Photo uploaded: {result.key}")
    return result.to_dict()
