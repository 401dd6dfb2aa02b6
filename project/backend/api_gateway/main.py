"""
FastAPI application entry point.

Main application setup with CORS, middleware, and route registration.
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import settings
from shared.errors import (
    PipelineError,
    ServiceError,
    ValidationError,
    WorkflowCancelledError,
    WorkflowStateError,
    user_message,
)
from shared.logging import get_logger

logger = get_logger("api_gateway")

# Create FastAPI app
app = FastAPI(
    title="ClipFlow API",
    description="Video narration and clip editing workflow",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    allow_credentials=True,
    max_age=3600
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    logger.info(
        "Request started",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path
        }
    )

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


def error_response(request: Request, status_code: int, error: str, code: str, retryable: bool) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "code": code,
            "retryable": retryable,
            "request_id": getattr(request.state, "request_id", None)
        }
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle validation errors."""
    return error_response(request, 400, str(exc), "VALIDATION_ERROR", False)


@app.exception_handler(WorkflowStateError)
async def workflow_state_error_handler(request: Request, exc: WorkflowStateError):
    """Handle operations not allowed in the current workflow state."""
    return error_response(request, 409, str(exc), "WORKFLOW_STATE_ERROR", False)


@app.exception_handler(WorkflowCancelledError)
async def cancelled_error_handler(request: Request, exc: WorkflowCancelledError):
    """Handle cancelled operations."""
    return error_response(request, 409, str(exc), "CANCELLED", False)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Handle failures of external services."""
    return error_response(request, 502, user_message(exc), exc.code or "SERVICE_ERROR", bool(exc.retryable))


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    """Handle pipeline errors."""
    return error_response(request, 500, str(exc), exc.code or "MODULE_FAILURE", False)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"request_id": getattr(request.state, "request_id", None)}
    )
    return error_response(request, 500, "Internal server error", "INTERNAL_ERROR", False)


# Register routes
from api_gateway.routes import health, stream, workflows

app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(workflows.router, prefix="/api/v1", tags=["workflows"])
app.include_router(stream.router, prefix="/api/v1", tags=["stream"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "ClipFlow API", "version": "1.0.0"}
