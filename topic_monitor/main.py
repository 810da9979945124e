from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI

from topic_monitor.api.monitoring import router as monitoring_router
from topic_monitor.api.teachers import router as teachers_router
from topic_monitor.api.topics import router as topics_router
from topic_monitor.api.ws import router as ws_router
from topic_monitor.core.app_context import AppContext
from topic_monitor.core.settings import settings


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(context_factory: Callable[[], AppContext] = AppContext) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.ctx = context_factory()
        yield
        await app.state.ctx.shutdown()

    app = FastAPI(title="Topic Monitor", version="0.1.0", lifespan=lifespan)
    app.include_router(monitoring_router, prefix="/api/v1")
    app.include_router(topics_router, prefix="/api/v1")
    app.include_router(teachers_router, prefix="/api/v1")
    app.include_router(ws_router, prefix="/api/v1")
    return app


configure_logging(settings.log_level)
app = create_app()
