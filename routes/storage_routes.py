"""
Object storage endpoints: status, generic upload, presigned URLs, listing
and deletion.
"""

import logging

from fastapi import APIRouter, File, Form, Request, UploadFile

from config import MAX_URL_EXPIRY
from services.storage_service import StorageError, StorageObjectNotFound

from .dependencies import error_response, get_storage, optional_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/status")
async def storage_status(request: Request):
    """Report whether the object store is configured and was reachable at startup"""
    storage = optional_state(request, "storage")
    if storage is None:
        config = optional_state(request, "storage_config")
        if config is not None and config.is_configured:
            return error_response(
                503, "Object storage configured but not reachable (bucket check failed at startup)",
                configured=True, endpoint=config.endpoint,
            )
        return {
            "configured": False,
            "message": (
                "Object storage not configured. Please set MINIO_ENDPOINT, "
                "MINIO_ACCESS_KEY, and MINIO_SECRET_KEY environment variables."
            ),
        }
    return {
        "configured": True,
        "message": "Object storage configured successfully",
        "endpoint": storage.config.endpoint,
    }


@router.post("/upload")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    folder: str = Form("uploads"),
):
    storage = get_storage(request)
    content = await file.read()
    result = await storage.upload_file(
        content,
        file.filename or "upload",
        file.content_type,
        folder or "uploads",
    )
    if not result.success:
        return error_response(500, result.error or "Failed to upload file", success=False)
    return result.to_dict()


@router.get("/url/{file_name:path}")
async def get_file_url(request: Request, file_name: str, expiry: int = MAX_URL_EXPIRY):
    storage = get_storage(request)
    if not 1 <= expiry <= MAX_URL_EXPIRY:
        return error_response(400, f"Expiry must be between 1 and {MAX_URL_EXPIRY} seconds")

    try:
        url = await storage.get_file_url(file_name, expiry)
    except StorageObjectNotFound as e:
        return error_response(404, str(e))
    except StorageError as e:
        return error_response(500, str(e) or "Failed to get file URL")

    return {"url": url, "fileName": file_name, "expiry": expiry}


@router.get("/files")
async def list_files(request: Request, prefix: str = ""):
    storage = get_storage(request)
    files = await storage.list_files(prefix)
    return {"files": files, "count": len(files)}


@router.delete("/files/{file_name:path}")
async def delete_file(request: Request, file_name: str):
    storage = get_storage(request)
    if not await storage.delete_file(file_name):
        return error_response(404, "File not found or could not be deleted")
    return {"message": "File deleted successfully", "fileName": file_name}
