# main.py
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError

from invenflow.routers import (
    bulk_movement_router,
    public_bulk_movement_router,
)

from invenflow.core.config import APP_ENV, ENABLE_SCHEDULER
from invenflow.core.db import init_models, dispose_engine
from invenflow.core.scheduler import scheduler
from invenflow.core.exceptions import AppException
from invenflow.core.logging import setup_logging
from invenflow.middleware.request_logging import request_logging_middleware
from invenflow.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
)

# ------------------------------------------------------------------------------
# ENV CONFIG
# ------------------------------------------------------------------------------
ENV = APP_ENV
APP_NAME = "InvenFlow – Bulk Stock Movement API"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ALLOWED_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",")

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")

    if ENV == "development":
        await init_models()
        logger.info("Database models initialized (development)")
    else:
        logger.info("%s mode: init_models() skipped", ENV)

    # expiry sweep: always on in development, opt-in elsewhere
    if ENV == "development" or ENABLE_SCHEDULER:
        scheduler.start()
        logger.info("Scheduler started (%s)", ENV)
    else:
        logger.info("Scheduler disabled (%s)", ENV)

    yield

    logger.info("Shutting down application")
    if scheduler.running:
        scheduler.shutdown()
    await dispose_engine()

# ------------------------------------------------------------------------------
# APP INIT
# ------------------------------------------------------------------------------
app = FastAPI(
    title=APP_NAME,
    description="Multi-item stock transfers confirmed by the recipient through a public link",
    version=APP_VERSION,
    docs_url="/docs" if ENV != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ------------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ------------------------------------------------------------------------------
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ------------------------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------------------------
app.middleware("http")(request_logging_middleware)

origins = [o.strip() for o in ALLOWED_ORIGINS if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# HEALTH CHECK
# ------------------------------------------------------------------------------
@app.get("/", tags=["Health"])
async def health_check():
    return {
        "status": "ok",
        "service": "bulk-movement-api",
        "environment": ENV,
        "version": APP_VERSION,
    }

# ------------------------------------------------------------------------------
# ROUTERS
# ------------------------------------------------------------------------------
app.include_router(bulk_movement_router)
app.include_router(public_bulk_movement_router)
