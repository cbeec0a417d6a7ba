"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from legalpro.core.config import settings
from legalpro.core.structured_logging import build_log_context
from legalpro.db.session import engine
from legalpro.services.errors import (
    AlreadyAssignedError,
    CapacityExceededError,
    CaseServiceError,
    CaseValidationError,
    ConcurrentModificationError,
    ForbiddenError,
    InvalidRoleError,
    InvalidTransitionError,
    NoCandidatesError,
    NotAssignedError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="LegalPro API",
    description="Case workflow, advocate assignment and activity log API",
    version=settings.VERSION,
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)

# ============================================================================
# Service errors
# ============================================================================

ERROR_STATUS_CODES: list[tuple[type[CaseServiceError], int]] = [
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (InvalidTransitionError, 409),
    (AlreadyAssignedError, 409),
    (NotAssignedError, 409),
    (ConcurrentModificationError, 409),
    (CapacityExceededError, 409),
    (NoCandidatesError, 409),
    (CaseValidationError, 422),
    (InvalidRoleError, 422),
]


def status_code_for(exc: CaseServiceError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_cls):
            return status_code
    return 400


@app.exception_handler(CaseServiceError)
async def case_service_error_handler(request: Request, exc: CaseServiceError):
    status_code = status_code_for(exc)
    logger.info(
        "%s: %s",
        type(exc).__name__,
        exc,
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# ============================================================================
# Routers
# ============================================================================

from legalpro.routers import activities, assignments, cases, workflow  # noqa: E402

app.include_router(cases.router, prefix="/cases", tags=["cases"])
app.include_router(workflow.router, tags=["workflow"])  # Mixed paths: /cases/{id}/status and /workflow/*
app.include_router(assignments.router, tags=["assignments"])
app.include_router(activities.router, tags=["activities"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
