"""
Access to the backing services stored on app.state

Services may be None when their store is not configured; the accessors
turn that into a 503 instead of a failing stand-in object.
"""

from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    body = {"error": message}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def optional_state(request: Request, name: str) -> Optional[Any]:
    return getattr(request.app.state, name, None)


def _require(request: Request, name: str, message: str):
    service = optional_state(request, name)
    if service is None:
        raise HTTPException(status_code=503, detail=message)
    return service


def get_storage(request: Request):
    return _require(request, "storage", "Object storage not configured")


def get_client(request: Request):
    return _require(request, "client", "Database not configured")


def get_repos(request: Request):
    return _require(request, "repos", "Database not configured")


def repository_error_response(e) -> JSONResponse:
    """400 for rejected input, 500 for everything else"""
    status = 400 if getattr(e, "code", None) in ("VALIDATION_ERROR", "CONSTRAINT_VIOLATION") else 500
    return error_response(status, str(e))
