import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from engagement_dashboard.core.config import Settings, settings, validate_config
from engagement_dashboard.core.logging import LOGGER_NAME, configure_logging
from engagement_dashboard.core.middleware.request_id import RequestIdMiddleware
from engagement_dashboard.core.validation import validate_env
from engagement_dashboard.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from engagement_dashboard.api import analytics, engagement, export, health
from engagement_dashboard.features.engagement.store import EngagementStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Starting engagement dashboard backend...")
    try:
        yield
    finally:
        logging.getLogger(LOGGER_NAME).info("Stopping engagement dashboard backend...")


def create_app(settings_obj: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI app with its own engagement store."""
    cfg = settings_obj or settings
    configure_logging(cfg.ENV)
    validate_env(settings_obj=cfg)
    validate_config(settings_obj=cfg)

    app = FastAPI(title="Engagement Dashboard API", version="1.0.0", lifespan=lifespan)
    app.state.settings = cfg
    app.state.engagement_store = EngagementStore()

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(engagement.router)
    app.include_router(analytics.router)
    app.include_router(export.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
