#!/usr/bin/env python3
"""
Wee Adventure journal server

FastAPI app serving the journal API on top of PostgreSQL (asyncpg) and an
S3-compatible photo store (Minio via boto3).

Either backing store may be missing or unreachable at startup; the server
still starts, logs a warning, and the routes depending on it answer 503.
"""

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import DatabaseConfig, ServerConfig, StorageConfig, load_app_environment
from container import RepositoryContainer
from database import DatabaseConnection
from query import DatabaseClient
from routes import ALL_ROUTERS
from services.storage_service import StorageService, get_storage_service

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def _attach_database(app: FastAPI, db: DatabaseConnection):
    app.state.db = db
    app.state.client = DatabaseClient(db, timeout=db.config.command_timeout)
    app.state.repos = RepositoryContainer(app.state.client)


async def initialize_services(app: FastAPI):
    """Connect to the configured stores; failures leave the app degraded, not dead"""
    state = app.state

    if state.db is None:
        db_config: DatabaseConfig = state.db_config
        if not db_config.is_configured:
            logger.warning("⚠️ Database not configured (DATABASE_HOST / DATABASE_NAME / DATABASE_USER missing)")
        else:
            db = DatabaseConnection(db_config)
            try:
                await db.connect()
                _attach_database(app, db)
                state.owns_db = True
            except Exception as e:
                logger.warning(f"⚠️ Database unavailable, continuing without it: {e}")

    if state.storage is None:
        storage = get_storage_service(state.storage_config)
        if storage is not None:
            if await storage.ensure_bucket():
                state.storage = storage
                logger.info(f"✅ Object storage ready (bucket: {storage.bucket})")
            else:
                logger.warning("⚠️ Object storage unavailable, continuing without it")


async def shutdown_services(app: FastAPI):
    if getattr(app.state, "owns_db", False) and app.state.db is not None:
        await app.state.db.disconnect()
        app.state.db = None
        app.state.client = None
        app.state.repos = None


def create_app(
    db: Optional[DatabaseConnection] = None,
    storage: Optional[StorageService] = None,
    db_config: Optional[DatabaseConfig] = None,
    storage_config: Optional[StorageConfig] = None,
    server_config: Optional[ServerConfig] = None,
) -> FastAPI:
    """
    Build the application.

    Pre-built db/storage objects are used as-is (tests pass mocks here);
    otherwise they are created from configuration at startup.
    """
    app = FastAPI(title="Wee Adventure Journal API", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.db = None
    app.state.client = None
    app.state.repos = None
    app.state.owns_db = False
    app.state.storage = storage
    app.state.db_config = db_config or DatabaseConfig.from_environment()
    app.state.storage_config = storage_config or StorageConfig.from_environment()
    app.state.server_config = server_config or ServerConfig.from_environment()
    if db is not None:
        _attach_database(app, db)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "code": "INVALID_VALUE",
                "path": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={
            "error": "; ".join(f"{e['path']}: {e['message']}" for e in errors),
            "code": "VALIDATION_ERROR",
            "errors": errors,
        })

    @app.on_event("startup")
    async def startup_event():
        await initialize_services(app)
        logger.info("Wee Adventure journal server started")

    @app.on_event("shutdown")
    async def shutdown_event():
        await shutdown_services(app)

    for router in ALL_ROUTERS:
        app.include_router(router)

    return app


def cli_entry():
    """Entry point for console script"""
    import argparse

    load_app_environment()
    server_config = ServerConfig.from_environment()

    parser = argparse.ArgumentParser(description="Wee Adventure journal server")
    parser.add_argument('--version', '-v', action='store_true', help='Show version')
    parser.add_argument('--port', type=int, default=server_config.port,
                        help=f'Port to listen on (default: {server_config.port})')
    parser.add_argument('--host', type=str, default=server_config.host,
                        help=f'Host to bind to (default: {server_config.host})')
    args = parser.parse_args()

    if args.version:
        print(f"wee-adventure-server version {__version__}")
        sys.exit(0)

    logging.basicConfig(
        level=getattr(logging, server_config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger.info(f"Starting Wee Adventure journal server on http://{args.host}:{args.port}")
    uvicorn.run(
        create_app(server_config=server_config),
        host=args.host,
        port=args.port,
        log_level=server_config.log_level.lower(),
    )


if __name__ == "__main__":
    cli_entry()
