"""Error handlers for API."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from preview_engine.core.exceptions import (
    FileNotFoundInSessionError,
    FormatError,
    GenerationError,
    InvalidInvocationStateError,
    LintError,
    NothingToRedoError,
    NothingToUndoError,
    PayloadTooLargeError,
    PreviewEngineError,
    SandboxFaultError,
    SandboxTimeoutError,
    SandboxViolationError,
    SessionExpiredError,
    SessionLimitError,
    SessionNotFoundError,
    TypecheckError,
)

logger = logging.getLogger(__name__)

# Map exceptions to HTTP status codes
EXCEPTION_STATUS_MAP = {
    SessionNotFoundError: 404,
    SessionExpiredError: 410,
    SessionLimitError: 429,
    FileNotFoundInSessionError: 404,
    NothingToUndoError: 409,
    NothingToRedoError: 409,
    GenerationError: 422,
    PayloadTooLargeError: 413,
    FormatError: 400,
    LintError: 400,
    TypecheckError: 400,
    SandboxViolationError: 403,
    SandboxTimeoutError: 408,
    SandboxFaultError: 500,
    InvalidInvocationStateError: 500,
}


def make_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Create a standard error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "meta": {
                "request_id": str(uuid.uuid4()),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        },
    )


async def preview_engine_error_handler(
    request: Request,
    exc: PreviewEngineError,
) -> JSONResponse:
    """Handle PreviewEngineError exceptions."""
    status_code = EXCEPTION_STATUS_MAP.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"PreviewEngineError: {exc.code} - {exc.message}")
    else:
        logger.warning(f"PreviewEngineError: {exc.code} - {exc.message}")
    return make_error_response(
        code=exc.code,
        message=exc.message,
        details=exc.details,
        status_code=status_code,
    )


async def validation_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle validation errors."""
    logger.warning(f"ValidationError: {exc}")
    return make_error_response(
        code="INVALID_REQUEST",
        message=str(exc),
        status_code=400,
    )


async def generic_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected errors."""
    logger.exception(f"Unexpected error: {exc}")
    return make_error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        details={"error": str(exc)},
        status_code=500,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the app."""
    app.add_exception_handler(PreviewEngineError, preview_engine_error_handler)  # type: ignore
    app.add_exception_handler(ValueError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)
