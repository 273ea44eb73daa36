"""
Standalone WebSocket Gateway application.

Runs the /ws endpoint in its own process. Use it with
EVENT_TRANSPORT=redis so events published by the REST API reach the
sockets connected here.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from rest_api.core.cors import GATEWAY_METHODS, configure_cors
from shared.config.logging import setup_logging, ws_gateway_logger as logger
from shared.config.settings import settings
from shared.infrastructure.redis_pool import close_redis_pool
from ws_gateway.endpoint import router as ws_router
from ws_gateway.hub import setup_realtime, start_realtime, stop_realtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("ws_gateway")
    logger.info("Starting WebSocket Gateway", port=settings.ws_gateway_port, env=settings.environment)

    hub = setup_realtime(app)
    await start_realtime(hub)

    yield

    logger.info("Shutting down WebSocket Gateway")
    await stop_realtime(hub)
    await close_redis_pool()


app = FastAPI(
    title="Restaurant WebSocket Gateway",
    description="Real-time notifications for waiters, kitchen and management",
    version="1.0.0",
    lifespan=lifespan,
)

configure_cors(app, methods=GATEWAY_METHODS)

app.include_router(ws_router)


@app.get("/ws/health")
async def health():
    """Liveness plus connection counts."""
    registry = app.state.registry
    return {
        "status": "ok",
        "service": "ws-gateway",
        "transport": app.state.realtime.transport,
        **registry.stats(),
    }
