"""
Exception handlers for OrderDesk

Every failure leaves the API as

    {"error": {"status_code", "error_code", "message", "type", "details", "path"}}

`details` and `path` are omitted when empty. Clients branch on `error_code`;
`message` is for humans.
"""

import logging
from http import HTTPStatus
from typing import Any, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from orderdesk.exceptions import ErrorCode, OrderDeskError

logger = logging.getLogger(__name__)

# Starlette raises these itself (unknown route, auth scheme); domain errors never reach this table.
_PLAIN_HTTP_ERROR_CODES = {
    401: ErrorCode.AUTH_FAILED,
    404: ErrorCode.RESOURCE_NOT_FOUND,
}


def status_label(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_envelope(
    status_code: int,
    error_code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
    path: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "status_code": status_code,
        "error_code": error_code.value,
        "message": message,
        "type": status_label(status_code),
    }
    if details:
        body["details"] = details
    if path:
        body["path"] = path
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def orderdesk_exception_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
    """Storage failures log at error level, everything else the caller caused at warning."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s on %s: %s",
        exc.error_code.value,
        request.url.path,
        exc.message,
        extra={"status_code": exc.status_code, "path": request.url.path},
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return error_envelope(exc.status_code, exc.error_code, exc.message, exc.details, request.url.path, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("HTTP %d on %s: %s", exc.status_code, request.url.path, exc.detail)
    error_code = _PLAIN_HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.UNKNOWN_ERROR)
    return error_envelope(exc.status_code, error_code, str(exc.detail), path=request.url.path, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    """Malformed request bodies and parameters: one entry per offending field."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("Request validation failed on %s: %d field(s)", request.url.path, len(errors))

    return error_envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.VALIDATION_FAILED,
        "Request validation failed",
        {"validation_errors": errors},
        request.url.path,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
    return error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR,
        "Internal server error",
        path=request.url.path,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(OrderDeskError, orderdesk_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
