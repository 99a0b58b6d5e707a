"""
Response envelope, correlation id propagation and exception handlers.

Every JSON response carries ``success``, ``message`` and ``data``. Errors
additionally carry ``error`` (a stable code), ``traceId`` (the request's
correlation id), ``timestamp``, ``path`` and, for field errors, ``details``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.domain.commands import MAX_CORRELATION_ID_LENGTH, new_id
from shared.domain.exceptions import BookValidationError, DomainError, ValidationError

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def envelope(data: Any = None, message: str = "Operation successful") -> Dict[str, Any]:
    return {"success": True, "message": message, "data": jsonable_encoder(data)}


def get_correlation_id(request: Request) -> str:
    correlation_id = getattr(request.state, "correlation_id", None)
    if not correlation_id:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if not correlation_id or len(correlation_id) > MAX_CORRELATION_ID_LENGTH:
            correlation_id = new_id()
        request.state.correlation_id = correlation_id
    return correlation_id


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    correlation_id = get_correlation_id(request)
    body = {
        "success": False,
        "message": message,
        "data": None,
        "error": error,
        "traceId": correlation_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
    }
    if details:
        body["details"] = details
    response_headers = dict(headers or {})
    response_headers[CORRELATION_ID_HEADER] = correlation_id
    return JSONResponse(status_code=status_code, content=body, headers=response_headers)


async def correlation_id_middleware(request: Request, call_next):
    correlation_id = get_correlation_id(request)
    response = await call_next(request)
    response.headers[CORRELATION_ID_HEADER] = correlation_id
    return response


async def domain_error_handler(request: Request, exc: DomainError):
    details = None
    if isinstance(exc, BookValidationError):
        details = [error.to_dict() for error in exc.errors]
    elif isinstance(exc, ValidationError):
        details = [exc.to_dict()]

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{exc.code} on {request.method} {request.url.path} "
        f"[correlation_id={get_correlation_id(request)}]: {exc.message}")
    return error_response(request, exc.status_code, exc.code, exc.message, details)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        request,
        exc.status_code,
        _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "code": "VALIDATION_ERROR",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return error_response(
        request, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Request validation failed", details
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error"
    )


def install(app: FastAPI) -> None:
    """Attach the correlation id middleware and the envelope error handlers."""
    app.middleware("http")(correlation_id_middleware)
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
