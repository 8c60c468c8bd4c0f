# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
import uuid
from contextlib import asynccontextmanager

from db import StoreError, get_store
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .routes import bulk, health, investment_requests, queue
from .schemas.error import ErrorResponse
from .services.queue import run_auto_queue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    scanner = None
    if settings.AUTO_QUEUE_INTERVAL_SECONDS > 0:
        scanner = asyncio.create_task(
            run_auto_queue(get_store(), settings.AUTO_QUEUE_INTERVAL_SECONDS),
            name="auto-queue-scan",
        )
    yield
    if scanner is not None:
        scanner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scanner


app = FastAPI(
    title="SubX Admin API",
    description="Investment request approval, bulk operations and work queue for SubX administrators",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


def _problem(request: Request, status_code: int, detail: str) -> JSONResponse:
    body = ErrorResponse.for_status(
        status_code,
        detail,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        instance=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _problem(request, exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _problem(request, 422, str(exc.errors()))


@app.exception_handler(StoreError)
async def store_exception_handler(request: Request, exc: StoreError):
    """Store failures that escape a service (reads, scans) become 503."""
    logger.error("Document store error on %s: %s", request.url.path, exc)
    return _problem(request, 503, "Document store unavailable.")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s", request.url.path)
    return _problem(request, 500, "An unexpected error occurred.")


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(
    investment_requests.router, prefix="/api/investment-requests", tags=["investment-requests"]
)
app.include_router(bulk.router, prefix="/api/bulk", tags=["bulk"])
app.include_router(queue.router, prefix="/api/queue", tags=["queue"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Welcome to SubX Admin API"}
