"""
Main entry point for the Wallet Trades API.

This module initializes the FastAPI application, configures routes and
error handlers, and manages the application lifecycle.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from wallet_trades.__version__ import __version__
from wallet_trades.api.error_handlers import register_error_handlers
from wallet_trades.api.routes import health_router, router
from wallet_trades.config import get_server_config
from wallet_trades.dependencies import ServiceContainer
from wallet_trades.logging_config import configure_logging, configure_structlog

logger = logging.getLogger(__name__)

# API Documentation tags
tags_metadata = [
    {
        "name": "trades",
        "description": "Trade histories, price analyses and performance summaries of wallets",
    },
    {
        "name": "system",
        "description": "System-level operations for monitoring",
    },
]


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built service container. Built from the environment
            at startup when omitted.

    Returns:
        The configured FastAPI application
    """
    server_config = get_server_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle events.

        Args:
            app: The FastAPI application instance
        """
        owns_container = container is None
        app.state.container = container or ServiceContainer.build(server_config=server_config)
        logger.info(f"Wallet Trades API v{__version__} started")

        yield  # Application is running here

        logger.info("Application shutting down...")
        if owns_container:
            await app.state.container.aclose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Wallet Trades API",
        description="Analyzes the token trades of a Solana wallet against historical prices.",
        version=__version__,
        openapi_tags=tags_metadata,
        debug=server_config.debug,
        lifespan=lifespan,
    )

    register_error_handlers(app)
    app.include_router(router)
    app.include_router(health_router)

    return app


def get_application() -> FastAPI:
    """Application factory used by uvicorn."""
    server_config = get_server_config()
    configure_logging(server_config.log_level)
    configure_structlog()
    return create_app()
