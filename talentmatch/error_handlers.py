from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import error_codes
from .http_errors import error_response

log = logging.getLogger(__name__)

_GENERIC_BY_STATUS = {
    401: (error_codes.UNAUTHORIZED, "Unauthorized"),
    404: ("not_found", "Not found"),
    405: ("method_not_allowed", "Method not allowed"),
}


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status = exc.status_code
    headers = dict(exc.headers or {})
    code, message = _GENERIC_BY_STATUS.get(status, (error_codes.INTERNAL, "Request failed"))
    if isinstance(exc.detail, str) and exc.detail:
        message = exc.detail
    headers.setdefault("X-Error-Code", code)
    return error_response(headers["X-Error-Code"], message, status=status, headers=headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "Unhandled error",
        exc_info=exc,
        extra={"meta": {"path": request.url.path, "method": request.method}},
    )
    return error_response(error_codes.INTERNAL, "Internal error", status=500)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
