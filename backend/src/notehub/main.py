"""NoteHub Backend - Main FastAPI Application

College notes and question paper sharing portal: uploads, admin
moderation, bans and public search.

Run:
    uvicorn notehub.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .domain.errors import NoteHubError
from .domain.results import OperationResult

# Observability
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

# Routers
from .auth.router import router as auth_router
from .bans.router import router as bans_router
from .intake.router import router as intake_router
from .moderation.router import router as moderation_router
from .publication.router import router as publication_router
from .reconciliation.router import router as reconciliation_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("NoteHub API starting up...")
    logger.info(f"Environment: {settings.ENV}")
    yield
    logger.info("NoteHub API shutting down...")


app = FastAPI(
    title="NoteHub API",
    description="College notes and previous year question paper sharing portal",
    version="0.1.0",
    docs_url="/docs" if settings.ENV != "production" else None,
    redoc_url="/redoc" if settings.ENV != "production" else None,
    openapi_url="/openapi.json" if settings.ENV != "production" else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _failure_response(status_code: int, kind: str, message: str, details=None, redirect_to=None) -> JSONResponse:
    body = OperationResult(ok=False, kind=kind, message=message, details=details, redirect_to=redirect_to)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(NoteHubError)
async def notehub_exception_handler(request: Request, exc: NoteHubError) -> JSONResponse:
    """Render domain failures as the failure envelope with their mapped status."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    body = OperationResult.failure(exc)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    fields = {
        ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path", "form")): error["msg"]
        for error in exc.errors()
    }
    return _failure_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details={"fields": fields},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log the full error, return a generic message."""
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return _failure_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalError",
        "A database error occurred. Please try again later.",
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(observability_router)
app.include_router(auth_router)
app.include_router(intake_router)
app.include_router(publication_router)
app.include_router(moderation_router)
app.include_router(bans_router)
app.include_router(reconciliation_router)


@app.get("/", tags=["Root"])
def root():
    return {"name": "NoteHub API", "version": "0.1.0", "docs": "/docs" if settings.ENV != "production" else None}
