"""API middleware: consistent error responses and per-request log context.

Registers FastAPI exception handlers that convert engine exceptions into
standardised ``{"error": {"code": "...", "message": "...", "details": ...}}``
JSON responses.

Status code mapping:
- ``MedicationNotFound`` → 404 Not Found
- ``ValidationError`` and its subclasses → 400 Bad Request, with the
  subclass code (``INVALID_DATE``, ``RANGE_TOO_LARGE``, ...)
- Any other ``ValueError`` → 400 Bad Request (``VALIDATION_ERROR``)
- Any other ``Exception`` → 500 Internal Server Error
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from pillbox.api.models import ErrorDetail, ErrorResponse
from pillbox.core.logging import request_context
from pillbox.errors import MedicationNotFound, ScheduleError

logger = logging.getLogger(__name__)


def _status_for(exc: ScheduleError) -> int:
    if isinstance(exc, MedicationNotFound):
        return 404
    return 400


async def _handle_schedule_error(
    request: Request,
    exc: ScheduleError,
) -> JSONResponse:
    """Map an engine error to its status code and error code."""
    status_code = _status_for(exc)
    logger.info("%s on %s: %s", exc.code, request.url.path, exc)
    body = ErrorResponse(
        error=ErrorDetail(
            code=exc.code,
            message=str(exc),
            details=exc.details(),
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _handle_value_error(
    request: Request,
    exc: ValueError,
) -> JSONResponse:
    """Return 400 for validation / value errors."""
    logger.info("Validation error: %s", exc)
    body = ErrorResponse(
        error=ErrorDetail(
            code="VALIDATION_ERROR",
            message=str(exc),
        )
    )
    return JSONResponse(status_code=400, content=body.model_dump())


class CatchAllErrorMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that catches any unhandled exception and returns a 500.

    This sits above the Starlette exception handler layer, ensuring that
    even exceptions not caught by ``add_exception_handler`` are converted
    to the standard error envelope rather than bubbling up as raw 500s.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=True,
            )
            body = ErrorResponse(
                error=ErrorDetail(
                    code="INTERNAL_ERROR",
                    message="Internal server error",
                )
            )
            return JSONResponse(status_code=500, content=body.model_dump())


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Bind ``method``/``route`` for the request and log one line when it completes."""

    async def dispatch(self, request: Request, call_next):
        with request_context(request.method, request.url.path):
            started = time.perf_counter()
            response = await call_next(request)
            logger.info(
                "%s %s -> %d in %.1fms",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
            return response


def register_error_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI application.

    Call this from ``create_app()`` after constructing the ``FastAPI`` instance.
    Starlette resolves handlers along the exception's MRO, so engine errors
    (which are also ``ValueError``/``LookupError``) hit the specific handler
    first.
    """
    app.add_exception_handler(ScheduleError, _handle_schedule_error)  # type: ignore[arg-type]
    app.add_exception_handler(ValueError, _handle_value_error)  # type: ignore[arg-type]
    app.add_middleware(CatchAllErrorMiddleware)
