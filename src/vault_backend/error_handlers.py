"""Uniform error responses.

Every failure leaves the API as the same JSON envelope:
  {success: false, error, code, requestId, details}
Typed ``AppError`` subclasses raised by services are mapped to their status
code here and nowhere else.
"""

from __future__ import annotations

import logging
from typing import cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vault_backend.errors import AppError
from vault_backend.schemas_common import ErrorResponse

logger = logging.getLogger(__name__)


def _map_http_status_to_error(status_code: int) -> str:
    mapping: dict[int, str] = {
        400: "validation_error",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        429: "rate_limited",
    }
    return mapping.get(status_code, f"http_{status_code}")


def _render(
    payload: ErrorResponse, *, status_code: int, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(payload, by_alias=True, exclude_none=True),
        headers=headers,
    )


async def _app_error_handler(request: Request, exc: Exception) -> JSONResponse:
    app_exc = cast(AppError, exc)
    payload = ErrorResponse(
        error=app_exc.message,
        code=app_exc.kind,
        request_id=getattr(request.state, "request_id", None),
        details=app_exc.details,
    )
    return _render(payload, status_code=app_exc.status_code)


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)

    details: object | None = None
    message = str(http_exc.detail)
    if isinstance(http_exc.detail, dict):
        # Convention: {'message': str, 'details': object}
        msg = http_exc.detail.get("message")
        if isinstance(msg, str):
            message = msg
            details = http_exc.detail.get("details")
        else:
            details = http_exc.detail

    payload = ErrorResponse(
        error=message,
        code=_map_http_status_to_error(http_exc.status_code),
        request_id=getattr(request.state, "request_id", None),
        details=details,
    )
    return _render(
        payload,
        status_code=http_exc.status_code,
        headers=getattr(http_exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Malformed input is a 400 on this API (not FastAPI's default 422).
    validation_exc = cast(RequestValidationError, exc)
    payload = ErrorResponse(
        error="Validation error",
        code="validation_error",
        request_id=getattr(request.state, "request_id", None),
        details=jsonable_encoder(validation_exc.errors()),
    )
    return _render(payload, status_code=400)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "unhandled exception request_id=%s method=%s path=%s",
        request_id,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    payload = ErrorResponse(
        error="Internal server error",
        code="internal_error",
        request_id=request_id,
    )
    return _render(payload, status_code=500)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
