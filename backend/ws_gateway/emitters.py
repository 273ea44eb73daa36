"""
Event emitters: deliver a (rooms, event, payload) triple to sockets.

- LocalEmitter sends to the sockets held by this process.
- RedisEmitter publishes to a Redis channel; every gateway process runs a
  subscriber (ws_gateway.redis_subscriber) that replays the message into
  its own LocalEmitter.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.redis_pool import get_redis_pool
from ws_gateway.connection_registry import is_ws_connected
from ws_gateway.rooms import RoomRouter

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BroadcastResult:
    """Outcome of one emit. Recipients are unique sockets across the rooms."""

    event: str
    rooms: tuple[str, ...]
    recipients: int = 0
    delivered: int = 0
    failed: int = 0


class Emitter(Protocol):
    async def emit(
        self, rooms: Sequence[str], event: str, payload: dict[str, Any]
    ) -> BroadcastResult: ...


class LocalEmitter:
    """Sends frames to the in-process sockets of the rooms' members."""

    def __init__(self, rooms: RoomRouter, send_timeout: float | None = None):
        self._rooms = rooms
        self._send_timeout = send_timeout if send_timeout is not None else settings.ws_send_timeout

    async def emit(
        self, rooms: Sequence[str], event: str, payload: dict[str, Any]
    ) -> BroadcastResult:
        audience = self._rooms.audience(rooms)
        frame = {"event": event, "payload": payload}

        delivered = 0
        failed = 0
        for user_id, ws in audience.items():
            if not is_ws_connected(ws):
                failed += 1
                logger.debug("Skipping send to disconnected socket", user_id=user_id, event=event)
                continue
            try:
                await asyncio.wait_for(ws.send_json(frame), timeout=self._send_timeout)
                delivered += 1
            except Exception as e:
                failed += 1
                logger.debug("Failed to send event", user_id=user_id, event=event, error=str(e))

        return BroadcastResult(
            event=event,
            rooms=tuple(rooms),
            recipients=len(audience),
            delivered=delivered,
            failed=failed,
        )


class RedisEmitter:
    """
    Publishes {rooms, event, payload} to a Redis channel.

    `recipients` is the number of subscribed gateway processes reported by
    PUBLISH, not the number of sockets.
    """

    def __init__(
        self,
        channel: str | None = None,
        client_factory: Callable[[], Awaitable[redis.Redis]] = get_redis_pool,
    ):
        self._channel = channel or settings.events_channel
        self._client_factory = client_factory

    async def emit(
        self, rooms: Sequence[str], event: str, payload: dict[str, Any]
    ) -> BroadcastResult:
        message = json.dumps({"rooms": list(rooms), "event": event, "payload": payload}, default=str)
        try:
            client = await self._client_factory()
            subscribers = await client.publish(self._channel, message)
        except Exception as e:
            logger.warning("Redis publish failed", channel=self._channel, event=event, error=str(e))
            return BroadcastResult(event=event, rooms=tuple(rooms), failed=1)

        return BroadcastResult(
            event=event,
            rooms=tuple(rooms),
            recipients=subscribers,
            delivered=subscribers,
        )


def build_emitter(transport: str, rooms: RoomRouter) -> LocalEmitter | RedisEmitter:
    """Pick the emitter for settings.event_transport."""
    if transport == "redis":
        return RedisEmitter()
    if transport == "local":
        return LocalEmitter(rooms)
    raise ValueError(f"Unknown event transport: {transport}")
