"""
Redis pub/sub subscriber for the WebSocket gateway.
Listens on the notifications channel and replays every message into the
local registry, so events published by any process reach this process's
sockets.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from shared.config.logging import get_logger
from shared.infrastructure.redis_pool import get_redis_pool
from ws_gateway.retry import RetryConfig, calculate_delay_with_jitter

logger = get_logger(__name__)


REQUIRED_MESSAGE_FIELDS = {"rooms", "event", "payload"}


def validate_message(data: Any) -> tuple[bool, str | None]:
    """
    Validate a relayed message: {rooms: [str], event: str, payload: dict}.

    Returns (is_valid, error_message).
    """
    if not isinstance(data, dict):
        return False, "Message must be a dictionary"

    missing = REQUIRED_MESSAGE_FIELDS - set(data.keys())
    if missing:
        return False, f"Missing required fields: {sorted(missing)}"

    rooms = data["rooms"]
    if not isinstance(rooms, list) or not all(isinstance(r, str) for r in rooms):
        return False, "rooms must be a list of strings"

    if not isinstance(data["event"], str):
        return False, "event must be a string"

    if not isinstance(data["payload"], dict):
        return False, "payload must be a dictionary"

    return True, None


async def consume(
    pubsub: Any,
    on_message: Callable[[dict], Awaitable[Any]],
) -> None:
    """Dispatch messages from an already subscribed pubsub until it ends."""
    async for msg in pubsub.listen():
        if msg is None:
            continue

        # Skip subscription confirmation messages
        if msg.get("type") != "message":
            continue

        try:
            data = json.loads(msg["data"])
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Failed to parse Redis message", error=str(e))
            continue

        is_valid, error = validate_message(data)
        if not is_valid:
            logger.warning("Invalid relay message", error=error)
            continue

        try:
            await on_message(data)
        except Exception as e:
            # One bad message must not stop the loop
            logger.error("Error handling Redis message", error=str(e), exc_info=True)


async def run_subscriber(
    channel: str,
    on_message: Callable[[dict], Awaitable[Any]],
    client_factory: Callable[[], Awaitable[redis.Redis]] = get_redis_pool,
    retry: RetryConfig | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> None:
    """
    Subscribe to a channel and dispatch messages, reconnecting on failure.

    Runs until cancelled, or until retry.max_attempts consecutive
    connection failures.
    """
    retry = retry or RetryConfig.for_redis()
    attempt = 0

    while True:
        pubsub = None
        try:
            client = await client_factory()
            pubsub = client.pubsub()
            await pubsub.subscribe(channel)
            logger.info("Redis subscriber started", channel=channel)
            attempt = 0
            await consume(pubsub, on_message)
            logger.warning("Redis subscription ended", channel=channel)
        except asyncio.CancelledError:
            logger.info("Redis subscriber cancelled")
            raise
        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            logger.warning("Redis subscriber connection lost", channel=channel, error=str(e))
        finally:
            if pubsub is not None:
                try:
                    await pubsub.unsubscribe(channel)
                    await pubsub.aclose()
                except Exception as e:
                    logger.debug("Error closing pubsub", error=str(e))

        if attempt >= retry.max_attempts:
            logger.error("Redis subscriber giving up", channel=channel, attempts=attempt)
            return

        delay = calculate_delay_with_jitter(attempt, retry)
        attempt += 1
        logger.info("Redis subscriber reconnecting", attempt=attempt, delay_seconds=round(delay, 2))
        await sleep(delay)
