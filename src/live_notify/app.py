"""FastAPI application with lifespan, error handlers, and health endpoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from live_notify.admin.router import router as admin_router
from live_notify.config import get_settings
from live_notify.errors import LiveNotifyError
from live_notify.logging_config import configure_logging
from live_notify.messaging.client import close_gateway
from live_notify.twitch.client import close_client
from live_notify.twitch.handlers import drain_dispatcher
from live_notify.twitch.router import router as twitch_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging and load config on startup.

    On shutdown, waits for detached cross-post tasks to finish, then closes
    the outbound HTTP clients.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    app.state.settings = settings
    yield
    await drain_dispatcher()
    await close_gateway()
    await close_client()


app = FastAPI(
    title="Live Notify",
    lifespan=lifespan,
)
app.include_router(twitch_router)
app.include_router(admin_router)


@app.exception_handler(LiveNotifyError)
async def live_notify_error_handler(request: Request, exc: LiveNotifyError) -> JSONResponse:
    """Render taxonomy errors as a JSON error acknowledgment."""
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        {"error": exc.error, "details": str(exc)},
        status_code=exc.status_code,
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "live-notify",
        "version": "0.1.0",
    }
