from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from app.api.health import router as health_router
from app.api.router import api_router
from app.config import get_settings
from app.db import dispose_engine
from app.exceptions import setup_exception_handlers
from app.middleware import setup_middleware
from app.services.notification import (
    QueuedNotificationDispatcher,
    get_notification_inbox,
    set_notification_dispatcher,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = get_settings()
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)

    queue: QueuedNotificationDispatcher | None = None
    if settings.notification_queue_enabled:
        queue = QueuedNotificationDispatcher(get_notification_inbox())
        queue.start()
        set_notification_dispatcher(queue)
        logger.info("Notification delivery queued in background")

    yield

    if queue is not None:
        await queue.stop()
        set_notification_dispatcher(get_notification_inbox())
    await dispose_engine()
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
