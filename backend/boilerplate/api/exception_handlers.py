"""
Exception handlers that turn errors into the standard error envelope.

The host application installs them with ``register_exception_handlers(app)``.
Driver messages are only exposed when ``ENVIRONMENT == "local"``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from boilerplate.api.responses import error
from boilerplate.core.config import settings
from boilerplate.core.security import TokenError
from boilerplate.db.errors import (
    DatabaseConnectionError,
    DatabaseError,
    InvalidStatement,
    QueryError,
)

_logger = logging.getLogger(__name__)

_DB_STATUS: list[tuple[type[DatabaseError], int]] = [
    (InvalidStatement, 400),
    (DatabaseConnectionError, 503),
    (QueryError, 500),
]


def not_found(request: Request) -> JSONResponse:
    return error("Not found", 404)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return not_found(request)
    if isinstance(exc.detail, str):
        response = error(exc.detail, exc.status_code)
    else:
        response = error("Request failed", exc.status_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with a human-readable message instead of raw Pydantic errors."""
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err.get("loc", []) if part != "body")
        msg = err.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return error("; ".join(messages), 422)


async def token_exception_handler(request: Request, exc: TokenError) -> JSONResponse:
    _logger.info(
        "Rejected token on %s %s: %s", request.method, request.url.path, exc.reason
    )
    response = error(exc.message, 401, {"code": exc.code})
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def database_exception_handler(
    request: Request, exc: DatabaseError
) -> JSONResponse:
    status_code = next(
        (code for cls, code in _DB_STATUS if isinstance(exc, cls)), 500
    )
    if status_code >= 500:
        _logger.error(
            "Database error on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    if settings.ENVIRONMENT == "local":
        return error(exc.message, status_code, exc.to_dict())
    message = exc.message
    if status_code >= 500:
        message = (
            "Service unavailable" if status_code == 503 else "Internal server error"
        )
    return error(message, status_code, {"code": exc.code})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log and return 500 with safe message."""
    _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail = "Internal server error"
    if settings.ENVIRONMENT == "local":
        detail = f"Internal server error: {exc}"
    return error(detail, 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TokenError, token_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DatabaseError, database_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
