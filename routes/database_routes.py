"""
Database endpoints: structured query, stored procedure calls and status
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from query import validate_query_request, validate_rpc_request
from query.executor import CONSTRAINT_VIOLATION, QUERY_TIMEOUT, VALIDATION_ERROR

from .dependencies import error_response, get_client, optional_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/database", tags=["database"])

_STATUS_FOR_CODE = {
    VALIDATION_ERROR: 400,
    CONSTRAINT_VIOLATION: 400,
    QUERY_TIMEOUT: 504,
}


async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


def _result_response(result) -> JSONResponse:
    status = 200 if result.ok else _STATUS_FOR_CODE.get(result.code, 500)
    return JSONResponse(status_code=status, content=result.to_dict())


def _validation_response(error: dict) -> JSONResponse:
    messages = "; ".join(e["message"] for e in error["errors"])
    return JSONResponse(status_code=400, content={
        "data": None, "error": messages, "code": error["code"], "errors": error["errors"],
    })


@router.post("/query")
async def execute_query(request: Request):
    """Run one structured query and return {data, error, count?}"""
    client = get_client(request)
    body = await _read_json(request)

    query, error = validate_query_request(body)
    if error:
        return _validation_response(error)

    result = await client.execute(query)
    return _result_response(result)


@router.post("/rpc")
async def execute_rpc(request: Request):
    """Invoke a stored procedure by name with named parameters"""
    client = get_client(request)
    body = await _read_json(request)

    error = validate_rpc_request(body)
    if error:
        return _validation_response(error)

    result = await client.rpc(body["functionName"], body.get("params") or {})
    return _result_response(result)


@router.get("/status")
async def database_status(request: Request):
    db = optional_state(request, "db")

    if db is None:
        return {
            "configured": False,
            "message": (
                "Database not configured. Please set DATABASE_HOST, DATABASE_NAME "
                "and DATABASE_USER environment variables."
            ),
        }

    if not await db.check_connection():
        return error_response(
            503, "Database configured but not reachable",
            configured=True, host=db.config.host,
        )

    return {
        "configured": True,
        "message": "Database connected successfully",
        "host": db.config.host,
        "pool": await db.get_pool_stats(),
    }
