from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.db import CentersSessionLocal, dispose_engines, init_models
from core.environment import (
    auto_create_tables,
    get_center_directory_timeout,
    get_mirror_update_timeout,
    get_task_drain_timeout,
)
from core.logging import setup_logging
from core.tasks import BackgroundTaskPool
from exceptions import register_exception_handlers
from routers import bookings, health, metrics
from services.center_mirror import CenterMirrorUpdater

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if auto_create_tables():
        await init_models()

    app.state.task_pool = BackgroundTaskPool(default_timeout=get_mirror_update_timeout())
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(get_center_directory_timeout(), connect=10.0)
    )
    app.state.center_mirror = CenterMirrorUpdater(
        CentersSessionLocal,
        app.state.task_pool,
        timeout=get_mirror_update_timeout(),
    )
    logger.info("Booking intake service started")

    try:
        yield
    finally:
        # teardown on shutdown: bounded drain of pending mirror updates
        await app.state.task_pool.drain(timeout=get_task_drain_timeout())
        await app.state.http_client.aclose()
        await dispose_engines()


app = FastAPI(title="Booking Intake API", lifespan=lifespan)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],   # Allows POST, GET, OPTIONS, etc
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(bookings.router)
app.include_router(metrics.router)
