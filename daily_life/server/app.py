"""
FastAPI application serving the journal store over HTTP.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from ..core.logging import get_logger, log_api_call
from ..core.exceptions import (
    DailyLifeError, DuplicateEntryError, EntryNotFoundError, MalformedImportError,
    PersistenceError, StorageIOError
)
from ..settings import AppSettings, get_settings
from ..journal.store import JournalStore
from .routes import router


logger = get_logger(__name__)

_STATUS_CODES = {
    EntryNotFoundError: 404,
    MalformedImportError: 400,
    DuplicateEntryError: 400,
    PersistenceError: 500,
    StorageIOError: 503,
}


def status_code_for(error: DailyLifeError) -> int:
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


async def handle_app_error(request: Request, exc: DailyLifeError) -> JSONResponse:
    """Turn application errors into JSON error responses."""
    status_code = status_code_for(exc)
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "error_code": exc.error_code}
    )


def create_app(
    settings: Optional[AppSettings] = None,
    store: Optional[JournalStore] = None
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        settings: Application settings (defaults to the global settings)
        store: Store to serve (defaults to one built from ``settings.storage``)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    store = store or JournalStore(settings.storage)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        entries = await store.list_entries()
        logger.info(f"Serving {len(entries)} entries from {settings.storage.data_dir}")
        yield
        logger.info("Data server stopped")

    app = FastAPI(
        title=settings.name,
        description="File-backed store for journal entries and settings",
        version=settings.version,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan
    )
    app.state.store = store
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        log_api_call(
            "data_server",
            request.method,
            url=request.url.path,
            status_code=response.status_code,
            response_time=time.time() - start_time
        )
        return response

    app.add_exception_handler(DailyLifeError, handle_app_error)
    app.include_router(router)

    return app


def run_server(settings: AppSettings, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the application with uvicorn until interrupted."""
    host = host or settings.server.host
    port = port or settings.server.port

    logger.info(f"Starting data server on http://{host}:{port}/api")
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=settings.logging.level.lower()
    )
