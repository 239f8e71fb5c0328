"""
API Error Responses.

Translates the domain exception family into standardized JSON error
responses:

    AuthenticationRequired   401  AUTH_REQUIRED
    PermissionDenied         403  AUTH_INSUFFICIENT_PERMISSIONS
    TenantMismatch           403  TENANT_ACCESS_DENIED
    ClientNotFound           404  CLIENT_NOT_FOUND
    ScoreRecomputeFailed     503  COMPLIANCE_RECOMPUTE_FAILED
    anything else            500  SERVER_INTERNAL_ERROR

Usage:
    from web.api_errors import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import (
    AuthenticationRequired,
    ClientNotFound,
    ComplianceCoreError,
    PermissionDenied,
    RoleTableError,
    ScoreRecomputeFailed,
    TenantMismatch,
)
from services.logging_config import request_id_var

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes carried in every error response."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"
    TENANT_ACCESS_DENIED = "TENANT_ACCESS_DENIED"
    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    COMPLIANCE_RECOMPUTE_FAILED = "COMPLIANCE_RECOMPUTE_FAILED"
    ROLE_TABLE_INVALID = "ROLE_TABLE_INVALID"
    SERVER_INTERNAL_ERROR = "SERVER_INTERNAL_ERROR"


# Exception type -> (HTTP status, log level)
DOMAIN_ERROR_MAP: Dict[type, tuple] = {
    AuthenticationRequired: (status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    PermissionDenied: (status.HTTP_403_FORBIDDEN, logging.WARNING),
    TenantMismatch: (status.HTTP_403_FORBIDDEN, logging.WARNING),
    ClientNotFound: (status.HTTP_404_NOT_FOUND, logging.INFO),
    ScoreRecomputeFailed: (status.HTTP_503_SERVICE_UNAVAILABLE, logging.ERROR),
    RoleTableError: (status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR),
}


class ErrorResponse(BaseModel):
    """Standardized API error response."""

    error: bool = Field(default=True, description="Always true for errors")
    code: str = Field(..., description="Error code from ErrorCode enum")
    message: str = Field(..., description="Human-readable error message")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    request_id: str = Field(..., description="Unique request identifier for tracking")
    path: Optional[str] = Field(None, description="Request path that caused the error")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")


def get_request_id(request: Request) -> str:
    """Get or generate request ID for tracking."""
    request_id = request.headers.get("X-Request-ID")
    if not request_id:
        request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = str(uuid.uuid4())
    return request_id


def _error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    request_id = get_request_id(request)
    body = ErrorResponse(
        code=code,
        message=message,
        status_code=status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        request_id=request_id,
        path=request.url.path,
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers={"X-Request-ID": request_id},
    )


def _lookup(exc: ComplianceCoreError) -> tuple:
    for exc_type in type(exc).__mro__:
        if exc_type in DOMAIN_ERROR_MAP:
            return DOMAIN_ERROR_MAP[exc_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR


def _details(exc: ComplianceCoreError) -> Optional[Dict[str, Any]]:
    if isinstance(exc, PermissionDenied):
        return {"role": exc.role, "module": exc.module, "action": exc.action}
    if isinstance(exc, (ClientNotFound, ScoreRecomputeFailed)):
        return {"client_id": exc.client_id}
    # TenantMismatch exposes neither tenant id
    return None


def register_exception_handlers(app: FastAPI) -> None:
    """Register error handlers on a FastAPI app."""

    @app.exception_handler(ComplianceCoreError)
    async def domain_error_handler(request: Request, exc: ComplianceCoreError) -> JSONResponse:
        status_code, level = _lookup(exc)
        logger.log(
            level,
            f"[{get_request_id(request)}] {type(exc).__name__}: {exc.message}",
            extra={
                "error_code": exc.code,
                "status_code": status_code,
                "path": request.url.path,
            },
        )
        return _error_response(request, exc.code, exc.message, status_code, _details(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(part) for part in error.get("loc", [])), "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        logger.warning(
            f"[{get_request_id(request)}] Validation error: {len(errors)} field(s)",
            extra={"path": request.url.path},
        )
        return _error_response(
            request,
            ErrorCode.VALIDATION_ERROR.value,
            "Request validation failed",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"fields": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = (
            ErrorCode.RESOURCE_NOT_FOUND
            if exc.status_code == status.HTTP_404_NOT_FOUND
            else ErrorCode.SERVER_INTERNAL_ERROR
        )
        return _error_response(request, code.value, str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = get_request_id(request)
        logger.error(
            f"[{request_id}] Unhandled exception: {type(exc).__name__}: {exc}",
            extra={"path": request.url.path},
            exc_info=True,
        )
        return _error_response(
            request,
            ErrorCode.SERVER_INTERNAL_ERROR.value,
            "An unexpected error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"support": f"Reference ID: {request_id}"},
        )


class RequestIDMiddleware:
    """
    ASGI middleware assigning a request ID to every HTTP request.

    The ID is echoed in the X-Request-ID response header and bound to
    the logging context for the duration of the request.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(b"x-request-id", b"").decode() or str(uuid.uuid4())

        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id
        token = request_id_var.set(request_id)

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                response_headers = list(message.get("headers", []))
                response_headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = response_headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            request_id_var.reset(token)
