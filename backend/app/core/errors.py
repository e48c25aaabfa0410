"""
Centralised error handling - exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • The `{success: false, message, error}` JSON envelope the frontend reads
    • Automatic logging of unhandled errors
    • Request context in error responses (non-production)

Usage:
    from backend.app.core.errors import (
        RiskServiceError,
        LocationRequiredError,
        UpstreamServiceError,
        register_error_handlers,
    )

    raise UpstreamServiceError("weatherapi", "HTTP 503", upstream_status=503)
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class RiskServiceError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class LocationRequiredError(RiskServiceError):
    """A location query is required but was not supplied (400)."""

    def __init__(self, parameter: str = "q"):
        super().__init__(
            message=f'Location query parameter "{parameter}" is required',
            status_code=400,
            error_code="LOCATION_REQUIRED",
            details={"parameter": parameter},
        )


class UpstreamServiceError(RiskServiceError):
    """
    The weather provider could not be reached or answered with an error.

    Timeouts and connection failures map to 503; provider errors map to 502.
    """

    def __init__(
        self,
        service: str,
        message: str = "",
        *,
        upstream_status: Optional[int] = None,
        unavailable: bool = False,
        **details: Any,
    ):
        super().__init__(
            message=f"External service '{service}' failed: {message}",
            status_code=503 if unavailable else 502,
            error_code="UPSTREAM_UNAVAILABLE" if unavailable else "UPSTREAM_ERROR",
            details={"service": service, "upstream_status": upstream_status, **details},
        )
        self.service = service
        self.upstream_status = upstream_status
        self.reason = message


class CacheError(RiskServiceError):
    """Advisory cache read/write failed. Always caught and logged."""

    def __init__(self, operation: str, message: str = ""):
        super().__init__(
            message=f"Cache {operation} failed: {message}",
            status_code=500,
            error_code="CACHE_ERROR",
            details={"operation": operation},
        )


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build the `{success: false, ...}` error envelope."""
    error: Dict[str, Any] = {"code": error_code, "status": status_code}

    if details:
        error["details"] = details

    if request and not settings.is_production:
        error["path"] = str(request.url.path)
        error["method"] = request.method

    body = {"success": False, "message": message, "error": error}
    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(RiskServiceError)
    async def handle_service_error(request: Request, exc: RiskServiceError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "API Error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.warning("Request validation failed: %s", exc.errors())
        return _build_error_response(
            422, "VALIDATION_ERROR", "Invalid request parameters",
            {"errors": jsonable_errors(exc)}, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        details = (
            {"traceback": traceback.format_exc().split("\n")}
            if settings.DEBUG else None
        )
        return _build_error_response(
            500, "INTERNAL_ERROR", message, details, request,
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serialisable context from pydantic error entries."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
