"""
@file middleware.py
@brief Request wrapper that turns storage outages into 503s

@details
Coverage persistence is the only database consumer. When PostgreSQL is down
the county, bounds and grid endpoints keep answering; only coverage reads
and writes fail, with a retryable 503 instead of a stack trace.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
import time

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DatabaseError, OperationalError
from starlette.middleware.base import BaseHTTPMiddleware

from countyzones.core.exceptions import error_body

logger = logging.getLogger(__name__)

## @brief Body returned while coverage storage is unreachable
STORAGE_DOWN = error_body(
    "Service unavailable",
    "Coverage storage is unavailable. Saved counties cannot be read or written right now.",
    status="unavailable",
)

## @brief Body returned for anything the route handlers did not anticipate
UNEXPECTED = error_body(
    "Internal server error",
    "An unexpected error occurred. Please try again later.",
    status="error",
)


class DatabaseErrorMiddleware(BaseHTTPMiddleware):
    """
    @brief Maps SQLAlchemy connectivity errors to 503 and logs request timing
    """

    async def dispatch(self, request: Request, call_next):
        route = f"{request.method} {request.url.path}"
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except (OperationalError, DatabaseError) as e:
            logger.error(f"{route}: coverage store error: {e}")
            return JSONResponse(status_code=503, content=STORAGE_DOWN)
        except Exception as e:
            logger.exception(f"{route}: unhandled error: {e}")
            return JSONResponse(status_code=500, content=UNEXPECTED)

        logger.debug(f"{route} -> {response.status_code} in {(time.perf_counter() - started) * 1000:.1f} ms")
        return response
