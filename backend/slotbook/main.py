# backend/slotbook/main.py
from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
import logging
import threading
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from . import __version__
from .core.config import settings
from .errors import register_error_handlers
from .init_db import init_db
from .routes import health, prometheus
from .routes.v1 import availability as availability_v1, bookings as bookings_v1
from .services.hold_sweeper import HoldSweeper

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def build_hold_sweeper() -> HoldSweeper:
    return HoldSweeper(sweep_hour=settings.sweep_hour, timezone=settings.reference_timezone)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info("Slotbook API starting up (environment=%s)", settings.environment)

    if not settings.is_testing:
        init_db()

    sweeper_task: asyncio.Task[None] | None = None
    sweeper_stop_event: threading.Event | None = None
    if settings.sweeper_enabled and not settings.is_testing:
        sweeper_stop_event = threading.Event()
        sweeper_task = asyncio.create_task(
            asyncio.to_thread(build_hold_sweeper().run, sweeper_stop_event)
        )

    yield

    logger.info("Slotbook API shutting down...")
    if sweeper_task is not None:
        if sweeper_stop_event is not None:
            sweeper_stop_event.set()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper_task


app = FastAPI(
    title="Slotbook API",
    description="Slot availability and reservation service",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
# Register unified error envelope handlers
register_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(bookings_v1.router, prefix="/bookings")

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(prometheus.router)
