from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import build_metrics_router, router
from logging_config import configure_logging
from services.poller import build_default_poller
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    poller = build_default_poller()
    poller.start()
    try:
        yield
    finally:
        poller.shutdown(wait=False)
        build_default_poller.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="PurpleAir Exporter",
        description="Polls PurpleAir sensors and exposes readings and AQI as Prometheus gauges.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    if settings.metrics_exported:
        app.include_router(build_metrics_router(settings.metrics_path))
    else:
        logger.info("Metrics export disabled")
    return app


app = create_app()
