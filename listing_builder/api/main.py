"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI

from listing_builder.api.dependencies import get_credential_store
from listing_builder.api.routes import auth, health, listings
from listing_builder.config import settings

logger = structlog.get_logger(__name__)


def configure_logging(level: str = settings.log_level) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    credentials = get_credential_store()
    logger.info("listing_builder_starting", authenticated=credentials.is_authenticated)
    yield
    logger.info("listing_builder_stopping")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Etsy Listing Builder",
        description="Connect an Etsy shop and publish digital-download draft listings.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(listings.router)

    return app


app = create_app()
