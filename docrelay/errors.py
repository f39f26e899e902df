"""
Error taxonomy for the relay and the handlers that turn it into JSON.
Every error response has the shape {"error": str, "detail"?: any}.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class RelayError(Exception):
    status_code = 500
    error = "Server error"

    def __init__(
        self,
        error: Optional[str] = None,
        *,
        detail: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail
        super().__init__(self.error if detail is None else f"{self.error}: {detail}")


class ClientInputError(RelayError):
    status_code = 400
    error = "Bad request"


class ConfigurationError(RelayError):
    status_code = 500
    error = "Configuration error"


class UpstreamError(RelayError):
    """The OpenAI API answered with a non-2xx status; status and body are relayed as-is."""

    status_code = 502
    error = "OpenAI error"


class RunFailedError(UpstreamError):
    error = "Run failed"


class RunTimeoutError(RelayError):
    status_code = 500
    error = "Timed out waiting for the run to complete"


class UnexpectedError(RelayError):
    status_code = 500
    error = "Server error"


def error_response(status_code: int, error: str, detail: Any = None, headers=None) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if detail is not None:
        content["detail"] = jsonable_encoder(detail)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def _relay_error_handler(request: Request, exc: RelayError):
        if exc.status_code >= 500:
            log.warning("relay_error path=%s status=%s error=%s", request.url.path, exc.status_code, exc.error)
        return error_response(exc.status_code, exc.error, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request", exc.errors())
