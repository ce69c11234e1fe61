"""
Startup and shutdown hooks.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.cosmos_session import close_cosmos, ensure_containers, get_database

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Connect to Cosmos DB, provisioning containers when configured to."""

    async def start_app() -> None:
        logger.info("app_starting", app=settings.APP_NAME, env=settings.APP_ENV)
        try:
            if settings.AZURE_COSMOS_CREATE_CONTAINERS:
                await ensure_containers()
            else:
                await get_database()
        except ValueError as e:
            # Missing Cosmos settings; requests touching the store will fail
            logger.warning("cosmos_not_configured", error=str(e))
        logger.info("app_started", app=settings.APP_NAME)

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Release the Cosmos DB client."""

    async def stop_app() -> None:
        try:
            await close_cosmos()
        except Exception as e:
            logger.warning("cosmos_close_failed", error=str(e))
        logger.info("app_stopped", app=settings.APP_NAME)

    return stop_app
