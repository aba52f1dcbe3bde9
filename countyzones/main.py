"""
@file main.py
@brief ASGI entry point: `uvicorn countyzones.main:app`
@details
Startup warms three dependencies in order: coverage tables, Redis, county
dataset. None is fatal. Whatever is missing is reported by /health and the
endpoints that need it answer 503 until it comes back.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException

from countyzones.api import routes
from countyzones.api.endpoints import health
from countyzones.core import docs, exceptions
from countyzones.core.cache import cache
from countyzones.core.logging import setup_logging
from countyzones.core.middleware import DatabaseErrorMiddleware
from countyzones.db.database import init_db

logger = setup_logging()

## @brief Exception type -> handler, registered in this order
EXCEPTION_HANDLERS = (
    (HTTPException, exceptions.http_exception_handler),
    (RequestValidationError, exceptions.validation_exception_handler),
    (exceptions.DatasetUnavailableError, exceptions.dataset_unavailable_handler),
    (Exception, exceptions.general_exception_handler),
)


async def warm_up() -> None:
    if not init_db():
        logger.warning("Coverage database unavailable at startup; saving is disabled")

    await cache.connect()

    try:
        index = await routes.get_index().load()
    except Exception as e:
        logger.warning(f"County dataset not loaded at startup, retried on first request: {e}")
    else:
        logger.info(f"County dataset ready: {len(index)} counties")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("CountyZones API starting")
    await warm_up()
    yield
    await cache.close()
    logger.info("CountyZones API stopped")


def create_app() -> FastAPI:
    application = FastAPI(
        title="CountyZones API - County Coverage & Hex Zones",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url=None,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(DatabaseErrorMiddleware)

    application.include_router(health.router)
    application.include_router(routes.router)

    for exc_type, handler in EXCEPTION_HANDLERS:
        application.add_exception_handler(exc_type, handler)

    @application.get("/", response_class=HTMLResponse)
    def read_root():
        return docs.get_root_documentation()

    return application


## @brief Application served by uvicorn
app = create_app()
