"""
@file exceptions.py
@brief Error types and JSON error bodies for the HTTP layer

@details
Every error response carries the same three keys: "error" (short label),
"message" (what the client can do about it) and either "status_code" or
"status". The editor core never raises into rendering; these handlers only
see failures that cross the HTTP boundary.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
from typing import Any, Dict

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class DatasetUnavailableError(Exception):
    """Raised at the HTTP boundary when the county reference dataset cannot be loaded."""


def error_body(error: str, message: str, **extra: Any) -> Dict[str, Any]:
    body = {"error": error, "message": message}
    body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    @brief HTTPException -> JSON, keeping the route's detail as the error label
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            str(exc.detail),
            f"{request.method} {request.url.path} failed with HTTP {exc.status_code}",
            status_code=exc.status_code,
        ),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    @brief Query/body validation failures (bad grid_size, too many counties)
    """
    return JSONResponse(
        status_code=422,
        content=error_body(
            "Validation error",
            "Request validation failed. Check parameters and try again.",
            details=jsonable_encoder(exc.errors()),
        ),
    )


async def dataset_unavailable_handler(request: Request, exc: DatasetUnavailableError):
    """
    @brief County dataset failure handler
    @details
    The editor fails open on dataset errors; over HTTP there is nothing to
    return, so the client gets a retryable 503.
    """
    logger.warning(f"County dataset unavailable for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content=error_body(
            "Service unavailable",
            "County reference dataset could not be loaded. Please retry.",
            status="unavailable",
        ),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    @brief Last-resort handler; the traceback goes to the log, not the client
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body(
            "Internal server error",
            "An unexpected error occurred. Please try again later.",
            status="error",
        ),
    )
