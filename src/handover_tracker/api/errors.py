"""
handover_tracker.api.errors

Exception handlers that turn failures into `{"success": false, "error": ...}` bodies.

Responsibilities:
- Map service-layer domain errors to HTTP statuses in one place.
- Reshape FastAPI/Starlette HTTP and validation errors into the same envelope.
- Log unhandled exceptions with an error id the caller can quote.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from handover_tracker.observability.logging import get_logger
from handover_tracker.services.errors import (
    AccessDeniedError,
    ConflictError,
    ExternalServiceError,
    HandoverError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
    SyncConfigurationError,
)
from handover_tracker.settings import Settings

log = get_logger(__name__)

DOMAIN_STATUS: dict[type[HandoverError], int] = {
    NotFoundError: HTTP_404_NOT_FOUND,
    AccessDeniedError: HTTP_403_FORBIDDEN,
    InvalidTransitionError: HTTP_409_CONFLICT,
    ConflictError: HTTP_409_CONFLICT,
    InvalidRequestError: HTTP_400_BAD_REQUEST,
    SyncConfigurationError: HTTP_500_INTERNAL_SERVER_ERROR,
    ExternalServiceError: HTTP_502_BAD_GATEWAY,
}


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": message, **extra}


def status_for(exc: HandoverError) -> int:
    for cls in type(exc).__mro__:
        if cls in DOMAIN_STATUS:
            return DOMAIN_STATUS[cls]
    return HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: HandoverError) -> JSONResponse:
    status = status_for(exc)
    log.info("request_rejected", error_type=type(exc).__name__, status_code=status, error=exc.message)
    return JSONResponse(status_code=status, content=error_body(exc.message, **exc.extra))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", details=details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log.warning("integrity_error", path=request.url.path, error=str(exc.orig))
    return JSONResponse(status_code=HTTP_409_CONFLICT, content=error_body("Duplicate or conflicting record"))


def setup_exception_handlers(app: FastAPI, *, settings: Settings) -> None:
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        error_id = uuid.uuid4().hex
        log.error(
            "unhandled_exception",
            error_id=error_id,
            error_type=type(exc).__name__,
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )
        extra: dict[str, Any] = {"error_id": error_id}
        if settings.env == "dev":
            extra["details"] = str(exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error", **extra),
        )

    app.add_exception_handler(HandoverError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
