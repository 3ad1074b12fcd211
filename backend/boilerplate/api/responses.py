"""
Standardized JSON response envelopes.

Usage::

    from boilerplate.api.responses import error, success

    return success(data, "Fetched")
    return error("Error message", 400, error_data)

Success: ``{"success": true, "data": ..., "message": "OK"}``
Error:   ``{"success": false, "error": "...", "code": 400, "data": null}``
"""

from typing import Any, Generic, Literal, TypeVar

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: T | None = None
    message: str = "OK"


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str
    code: int
    data: Any = None


def success(data: Any = None, message: str = "OK", code: int = 200) -> JSONResponse:
    """Send a standardized success response."""
    body = SuccessResponse[Any](data=jsonable_encoder(data), message=message)
    return JSONResponse(status_code=code, content=body.model_dump())


def error(error: str, code: int = 500, data: Any = None) -> JSONResponse:
    """Send a standardized error response; ``code`` doubles as the HTTP status."""
    body = ErrorResponse(error=error, code=code, data=jsonable_encoder(data))
    return JSONResponse(status_code=code, content=body.model_dump())
