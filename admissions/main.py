"""ASGI entrypoint: `uvicorn admissions.main:app`."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from admissions.core.cors import add_cors_middleware
from admissions.core.exception_handlers import register_exception_handlers
from admissions.core.firebase import init_firebase
from admissions.core.logging import configure_logging
from admissions.core.request_logging import add_request_logging_middleware
from admissions.core.settings import get_settings
from admissions.router import api_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_firebase()
    logger.info("Admissions service started (env=%s)", get_settings().env_name)
    yield
    logger.info("Admissions service stopping")


def create_app() -> FastAPI:
    application = FastAPI(title="Admissions", version="0.1.0", lifespan=lifespan)
    application.include_router(api_router)

    # Middleware added last runs first: CORS wraps request logging.
    add_request_logging_middleware(application)
    add_cors_middleware(application)
    register_exception_handlers(application)
    return application


app = create_app()
