"""FastAPI server for ReplyQ request classification and drafting"""

from __future__ import annotations

import os
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from replyq.api.routes.autosend import router as autosend_router
from replyq.api.routes.classify import router as classify_router
from replyq.api.routes.draft import router as draft_router
from replyq.api.routes.extract import router as extract_router
from replyq.api.routes.health import router as health_router
from replyq.api.routes.process import router as process_router
from replyq.api.routes.suggestions import router as suggestions_router
from replyq.api.routes.templates import router as templates_router
from replyq.config import APP_VERSION
from replyq.errors import StorageUnavailableError, ValidationError
from replyq.infrastructure.database import init_database
from replyq.observability.logging import get_logger
from replyq.observability.telemetry import counter, log_event
from replyq.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Startup: initialize template storage. The API still serves the pipeline
    when storage is unavailable; /api/templates then answers 503."""
    try:
        init_database()
    except (sqlite3.Error, OSError) as e:
        logger.error("Template storage unavailable at startup: %s", e)
    log_event("api.startup", service="replyq", version=APP_VERSION)
    yield
    log_event("api.shutdown", service="replyq")


app = FastAPI(title="ReplyQ API", version=APP_VERSION, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Sanitized 422: field names only, never the validation rules or input values."""
    logger.warning("Validation error on %s: %d error(s)", redact(str(request.url.path)), len(exc.errors()))
    counter("api.validation_errors")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(ValidationError)
async def replyq_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    counter("api.bad_requests")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "field": exc.field},
    )


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(
    request: Request, exc: StorageUnavailableError
) -> JSONResponse:
    counter("api.storage_unavailable")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        headers={"Retry-After": str(exc.retry_after_seconds)},
        content={
            "detail": str(exc),
            "suggested_action": exc.suggested_action,
            "retry_after_seconds": exc.retry_after_seconds,
        },
    )


ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("REPLYQ_ALLOWED_ORIGINS", "").split(",")
    if origin.strip()
]

# Allow localhost in development only
if os.getenv("REPLYQ_ENV", "development") == "development":
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.include_router(health_router)
app.include_router(classify_router)
app.include_router(extract_router)
app.include_router(draft_router)
app.include_router(suggestions_router)
app.include_router(process_router)
app.include_router(autosend_router)
app.include_router(templates_router)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "ReplyQ API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "classify": "/api/classify",
            "extract": "/api/extract",
            "draft": "/api/draft",
            "suggestions": "/api/suggestions",
            "process": "/api/process",
            "autosend": "/api/autosend/{context_id}",
            "templates": "/api/templates",
        },
    }
