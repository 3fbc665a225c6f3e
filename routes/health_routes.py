"""
Liveness probes
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from .dependencies import optional_state

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/ping")
async def ping(request: Request):
    server_config = optional_state(request, "server_config")
    return {"message": server_config.ping_message if server_config else "pong"}


@router.get("/health")
async def health(request: Request):
    """healthy when both stores answer, partial when one does, unhealthy otherwise"""
    db = optional_state(request, "db")
    storage = optional_state(request, "storage")

    database_ok = bool(db is not None and await db.check_connection())
    storage_ok = bool(storage is not None and await storage.test_connection())

    if database_ok and storage_ok:
        status = "healthy"
    elif database_ok or storage_ok:
        status = "partial"
    else:
        status = "unhealthy"

    return {
        "status": status,
        "database": database_ok,
        "storage": storage_ok,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
