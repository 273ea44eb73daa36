"""
Real-time hub wiring.

Builds the registry, room router and broadcaster for an application and
keeps them on app.state so HTTP handlers and the /ws endpoint share them.
With the redis transport a subscriber task replays published events into
this process's sockets.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI

from shared.config.logging import ws_gateway_logger as logger
from shared.config.settings import settings
from ws_gateway.broadcaster import EventBroadcaster
from ws_gateway.connection_registry import ConnectionRegistry
from ws_gateway.constants import WSCloseCode
from ws_gateway.emitters import LocalEmitter, build_emitter
from ws_gateway.redis_subscriber import run_subscriber
from ws_gateway.rooms import RoomRouter


@dataclass
class RealtimeHub:
    registry: ConnectionRegistry
    rooms: RoomRouter
    local_emitter: LocalEmitter
    broadcaster: EventBroadcaster
    transport: str = "local"
    tasks: list[asyncio.Task] = field(default_factory=list)

    async def relay(self, message: dict[str, Any]) -> None:
        """Deliver a message received from the Redis channel to local sockets."""
        await self.local_emitter.emit(message["rooms"], message["event"], message["payload"])


def setup_realtime(app: FastAPI, transport: str | None = None) -> RealtimeHub:
    """Create the hub and expose its parts on app.state."""
    transport = transport or settings.event_transport
    registry = ConnectionRegistry()
    rooms = RoomRouter(registry)
    local_emitter = LocalEmitter(rooms)
    emitter = local_emitter if transport == "local" else build_emitter(transport, rooms)

    hub = RealtimeHub(
        registry=registry,
        rooms=rooms,
        local_emitter=local_emitter,
        broadcaster=EventBroadcaster(emitter),
        transport=transport,
    )
    app.state.realtime = hub
    app.state.registry = registry
    app.state.rooms = rooms
    app.state.broadcaster = hub.broadcaster
    logger.info("Realtime hub ready", transport=transport)
    return hub


async def start_realtime(hub: RealtimeHub) -> None:
    if hub.transport == "redis":
        hub.tasks.append(
            asyncio.create_task(run_subscriber(settings.events_channel, hub.relay))
        )


async def stop_realtime(hub: RealtimeHub) -> None:
    for task in hub.tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    hub.tasks.clear()

    closed = await hub.registry.close_all(WSCloseCode.GOING_AWAY, "Server shutting down")
    logger.info("Realtime hub stopped", closed_connections=closed)
