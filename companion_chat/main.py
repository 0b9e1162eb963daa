"""
FastAPI application entry point.

Initializes FastAPI app, registers routers and exception handlers, adds
middleware, and configures lifespan.

Dependencies: fastapi, uvicorn, companion_chat.api, companion_chat.observability, companion_chat.configs
System role: Application initialization and configuration
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from companion_chat.api import API_PREFIX, api_router
from companion_chat.api.error_handlers import register_exception_handlers
from companion_chat.boundary.db import get_async_engine
from companion_chat.configs import get_settings
from companion_chat.observability.logger import configure_logging
from companion_chat.observability.middleware import (
    CorrelationMiddleware,
    RequestLoggingMiddleware,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Configures logging on startup and disposes the connection pool on shutdown.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Application startup: environment={settings.environment}")

    yield

    await get_async_engine().dispose()
    logger.info("Application shutdown: database pool disposed")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="Companion Chat Bot API",
        description="Chat sessions and messages between students and the companion bot",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware (last added runs first)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router, prefix=API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "companion_chat.main:app",
        host="0.0.0.0",
        port=8000,
    )
