"""
Reconnecting notification client.

Keeps one socket open to the gateway, retries with exponential backoff on
unexpected drops, and keeps a bounded history of recent notifications per
category (orders, tables, system).

Usage:
    manager = ReconnectionManager("ws://localhost:8000/ws", token)
    task = asyncio.create_task(manager.run())
    ...
    await manager.close()
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from shared.config.constants import SocketEvent
from shared.config.logging import get_logger
from shared.config.settings import settings
from ws_gateway.constants import WSCloseCode

logger = get_logger(__name__)


class ConnectionStatus:
    IDLE: Final[str] = "idle"
    CONNECTING: Final[str] = "connecting"
    CONNECTED: Final[str] = "connected"
    RECONNECTING: Final[str] = "reconnecting"
    DISCONNECTED: Final[str] = "disconnected"


# Server close codes after which reconnecting would not help
TERMINAL_CLOSE_CODES: Final[frozenset[int]] = frozenset(
    {WSCloseCode.AUTH_FAILED, WSCloseCode.REPLACED, WSCloseCode.FORBIDDEN}
)

# HTTP statuses of a refused handshake, e.g. guest access disabled
TERMINAL_HANDSHAKE_STATUSES: Final[frozenset[int]] = frozenset({401, 403})


@dataclass(frozen=True)
class ReconnectPolicy:
    """Deterministic exponential backoff: min(base * factor ** attempt, max)."""

    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0
    max_attempts: int = 5

    @classmethod
    def from_settings(cls) -> ReconnectPolicy:
        return cls(
            base_delay=settings.ws_reconnect_base_delay,
            max_delay=settings.ws_reconnect_max_delay,
            max_attempts=settings.ws_reconnect_max_attempts,
        )

    def delay(self, attempt: int) -> float:
        return min(self.base_delay * (self.factor ** attempt), self.max_delay)


EVENT_CATEGORIES: Final[dict[str, str]] = {
    SocketEvent.NEW_ORDER: "orders",
    SocketEvent.ORDER_STATUS_CHANGED: "orders",
    SocketEvent.ORDER_READY: "orders",
    SocketEvent.TABLE_STATUS_CHANGED: "tables",
    SocketEvent.TABLE_NOTIFICATION: "tables",
}


class NotificationBuffers:
    """Three FIFO buffers of recent notifications, each capped at capacity."""

    CATEGORIES: Final[tuple[str, ...]] = ("orders", "tables", "system")

    def __init__(self, capacity: int | None = None):
        self.capacity = capacity if capacity is not None else settings.ws_client_buffer_size
        self._buffers: dict[str, deque] = {
            category: deque(maxlen=self.capacity) for category in self.CATEGORIES
        }

    @staticmethod
    def categorize(event: str) -> str:
        return EVENT_CATEGORIES.get(event, "system")

    def push(self, event: str, payload: Any) -> str:
        category = self.categorize(event)
        self._buffers[category].append({"event": event, "payload": payload})
        return category

    def recent(self, category: str) -> list[dict[str, Any]]:
        """Oldest first."""
        return list(self._buffers[category])

    def clear(self, category: str | None = None) -> None:
        if category is None:
            for buffer in self._buffers.values():
                buffer.clear()
        else:
            self._buffers[category].clear()


def handshake_status(error: Exception) -> int | None:
    """HTTP status of a rejected handshake, None for any other failure."""
    response = getattr(error, "response", None)
    if response is not None:
        return getattr(response, "status_code", None)
    # legacy client: InvalidStatusCode
    return getattr(error, "status_code", None)


def url_with_token(url: str, token: str | None) -> str:
    if not token:
        return url
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "token"]
    query.append(("token", token))
    return urlunsplit(parts._replace(query=urlencode(query)))


class ReconnectionManager:
    """
    Owns a single gateway connection.

    An unexpected drop is retried with the policy's backoff; a successful
    connect resets the attempt counter. After max_attempts consecutive
    failed connects the manager stops with status "disconnected". A
    handshake refused with 401 or 403 stops it at once.
    close() never triggers a reconnect.

    Table rooms are not restored after a reconnect. Re-join them from
    on_connect.
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        connect: Callable[[str], Awaitable[Any]] = websockets.connect,
        policy: ReconnectPolicy | None = None,
        buffers: NotificationBuffers | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_connect: Callable[[ReconnectionManager], Awaitable[Any]] | None = None,
        on_notification: Callable[[str, Any], Awaitable[Any]] | None = None,
    ):
        self.url = url
        self.token = token
        self.policy = policy or ReconnectPolicy.from_settings()
        self.buffers = buffers or NotificationBuffers()
        self._connect = connect
        self._sleep = sleep
        self._on_connect = on_connect
        self._on_notification = on_notification

        self._ws: Any = None
        self._closing = False
        self.status: str = ConnectionStatus.IDLE
        self.failures = 0
        self.last_close_code: int | None = None
        self.rejected_status: int | None = None

    @property
    def connect_url(self) -> str:
        return url_with_token(self.url, self.token)

    @property
    def connected(self) -> bool:
        return self._ws is not None and self.status == ConnectionStatus.CONNECTED

    async def run(self) -> None:
        """
        Connect and listen until close(), a terminal close code, or too many failures.

        Exceptions from on_connect or on_notification close the socket and
        propagate. The status is "disconnected" whenever run() returns or raises.
        """
        self._closing = False
        self.failures = 0
        self.rejected_status = None
        self.status = ConnectionStatus.CONNECTING
        try:
            await self._run_loop()
        finally:
            self._ws = None
            self.status = ConnectionStatus.DISCONNECTED

    async def _run_loop(self) -> None:
        while not self._closing:
            try:
                ws = await self._connect(self.connect_url)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                status = handshake_status(e)
                if status in TERMINAL_HANDSHAKE_STATUSES:
                    self.rejected_status = status
                    logger.warning("Handshake rejected", url=self.url, status=status)
                    break
                self.failures += 1
                logger.warning("Connect failed", url=self.url, attempt=self.failures, error=str(e))
                if self.failures >= self.policy.max_attempts:
                    logger.error("Giving up reconnecting", url=self.url, attempts=self.failures)
                    break
                self.status = ConnectionStatus.RECONNECTING
                await self._sleep(self.policy.delay(self.failures - 1))
                continue

            self.failures = 0
            self._ws = ws
            self.status = ConnectionStatus.CONNECTED
            logger.info("Connected", url=self.url)

            try:
                if self._on_connect is not None:
                    await self._on_connect(self)
                await self._listen(ws)
            except ConnectionClosed:
                pass
            except Exception:
                logger.error("Client callback failed, closing connection", url=self.url, exc_info=True)
                await ws.close()
                raise
            finally:
                self._ws = None

            self.last_close_code = getattr(ws, "close_code", None)
            if self._closing:
                break
            if self.last_close_code in TERMINAL_CLOSE_CODES:
                logger.warning("Server closed connection", code=self.last_close_code)
                break

            logger.info("Connection lost, reconnecting", code=self.last_close_code)
            self.status = ConnectionStatus.RECONNECTING
            await self._sleep(self.policy.delay(0))

    async def _listen(self, ws: Any) -> None:
        async for raw in ws:
            await self._handle_raw(raw)

    async def _handle_raw(self, raw: str | bytes) -> None:
        try:
            frame = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Ignoring non-JSON frame", frame=str(raw)[:100])
            return
        if not isinstance(frame, dict) or "event" not in frame:
            return

        event = frame["event"]
        payload = frame.get("payload")
        if event in (SocketEvent.PONG, SocketEvent.CONNECTED, SocketEvent.TABLE_JOINED, SocketEvent.TABLE_LEFT):
            return

        self.buffers.push(event, payload)
        if self._on_notification is not None:
            await self._on_notification(event, payload)

    async def send(self, frame: dict[str, Any]) -> bool:
        """Send a frame if connected. Returns False when there is no socket."""
        if self._ws is None:
            return False
        await self._ws.send(json.dumps(frame))
        return True

    async def join_table(self, table_id: int | str) -> bool:
        return await self.send({"event": SocketEvent.JOIN_TABLE, "tableId": table_id})

    async def leave_table(self, table_id: int | str) -> bool:
        return await self.send({"event": SocketEvent.LEAVE_TABLE, "tableId": table_id})

    async def close(self) -> None:
        """Explicit disconnect."""
        self._closing = True
        ws = self._ws
        if ws is not None:
            await ws.close()
        self.status = ConnectionStatus.DISCONNECTED
