"""JSON error envelopes and global exception handlers.

Every failure leaves the service as `{"error": <message>, ...}` so the
checkout extension and the admin UI can read a single key regardless of
the failing layer.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.logic.errors import SurveyError

logger = logging.getLogger(__name__)


async def handle_survey_error(request: Request, exc: SurveyError) -> JSONResponse:  # noqa: D401
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "request.failed",
        extra={
            "path": request.url.path,
            "status": exc.status_code,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
        },
    )
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
        for e in exc.errors()
    ]
    return JSONResponse({"error": "Invalid request", "details": errors}, status_code=400)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=True)
    return JSONResponse(
        {"error": "Internal server error", "message": str(exc)},
        status_code=500,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SurveyError, handle_survey_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


__all__ = [
    "handle_survey_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
    "register_error_handlers",
]
