"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)

from learnwiki import __version__  # noqa: E402
from learnwiki.api import deps  # noqa: E402
from learnwiki.api.routers import (  # noqa: E402
    bookmarks,
    jobs,
    libraries,
    mindmap,
    page_views,
    pages,
    sessions,
)
from learnwiki.constants import INTERRUPTED_MESSAGE  # noqa: E402
from learnwiki.db.tenants import TenantRegistry  # noqa: E402
from learnwiki.errors import StorageUnavailableError, WikiError  # noqa: E402

logger = logging.getLogger(__name__)


def _cleanup_orphaned_jobs(registry: TenantRegistry) -> int:
    """Mark jobs left in 'processing' by a previous run as failed.

    Dispatch runs in-process, so a restart always interrupts it. Pending
    jobs are left alone; they can still be processed.

    Returns:
        Number of jobs cleaned up.
    """
    total_cleaned = 0
    for name in registry.list_names():
        try:
            cleaned = registry.get(name).jobs.fail_interrupted(INTERRUPTED_MESSAGE)
        except StorageUnavailableError as e:
            logger.warning(f"Failed to cleanup jobs for library '{name}': {e.message}")
            continue
        if cleaned > 0:
            logger.info(f"Cleaned up {cleaned} orphaned job(s) in library '{name}'")
            total_cleaned += cleaned
    return total_cleaned


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup:
    - Opens the library registry (creating the default library)
    - Fails jobs interrupted by the previous shutdown

    On shutdown:
    - Waits for background dispatch to finish
    - Closes every library handle
    """
    settings = deps.get_settings()
    logger.info(f"Data directory: {settings.data_dir}")

    registry = deps.get_registry()
    cleaned = _cleanup_orphaned_jobs(registry)
    if cleaned > 0:
        logger.info(f"Cleaned up {cleaned} orphaned job(s) from previous run")

    logger.info("learnwiki started")

    yield

    for engine in deps.all_engines():
        await engine.drain()
    deps._reset_engine_instances()
    deps._reset_registry_instance()


app = FastAPI(
    title="learnwiki",
    description="Personal wiki generator with durable, pollable generation jobs",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WikiError)
async def wiki_error_handler(request: Request, exc: WikiError) -> JSONResponse:
    """Render domain errors as {"error": message} with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {".".join(str(part) for part in err["loc"] if part != "body") for err in exc.errors()}
    )
    message = f"Invalid request: {', '.join(f for f in fields if f) or 'malformed body'}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(jobs.router)
app.include_router(pages.router)
app.include_router(sessions.router)
app.include_router(bookmarks.router)
app.include_router(mindmap.router)
app.include_router(page_views.router)
app.include_router(libraries.router)
