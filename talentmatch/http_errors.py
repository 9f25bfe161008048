from __future__ import annotations

from collections.abc import Mapping

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from . import error_codes


def error_response(
    code: str,
    message: str,
    *,
    status: int,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Return ``{"error": message}`` with the stable code in ``X-Error-Code``.

    ``message`` must be generic; never pass data store or exception text.
    """
    hdrs = {"X-Error-Code": code}
    if headers:
        hdrs.update(dict(headers))
    return JSONResponse({"error": message}, status_code=status, headers=hdrs)


def unauthorized(message: str = "Unauthorized") -> HTTPException:
    """401 for dependencies to raise; rendered by ``error_handlers``."""
    return HTTPException(
        status_code=401,
        detail=message,
        headers={"WWW-Authenticate": "Bearer", "X-Error-Code": error_codes.UNAUTHORIZED},
    )
