"""
WebSocket connection registry.

Tracks one live connection per user id (last connection wins) together
with the resolved identity and the rooms the connection belongs to.
Guests get a fresh user id per connection.
The registry is owned by the application (app.state.registry) and is
only mutated from coroutines running on the event loop.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException
from starlette.websockets import WebSocket, WebSocketState

from shared.config.logging import ws_gateway_logger as logger
from shared.config.settings import settings
from shared.security.auth import verify_jwt
from ws_gateway.constants import GUEST_USER_ID, GUEST_USER_NAME


class AuthenticationError(Exception):
    """A supplied WebSocket token could not be verified."""


class GuestAccessDisabledError(AuthenticationError):
    """No token was supplied and guest connections are turned off."""


@dataclass
class ConnectedUser:
    """Identity and room membership of one live connection."""

    user_id: str
    role: str
    name: str
    is_guest: bool = False
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    rooms: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "connectionId": self.connection_id,
            "userId": self.user_id,
            "role": self.role,
            "name": self.name,
            "connectedAt": self.connected_at.isoformat(),
            "rooms": sorted(self.rooms),
        }


@dataclass
class _Entry:
    websocket: WebSocket
    user: ConnectedUser


def is_ws_connected(ws: WebSocket) -> bool:
    """True when the socket can still be written to."""
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


class ConnectionRegistry:
    """
    Live connections keyed by user id.

    A second connection for the same user replaces the first; the caller
    receives the replaced entry and closes it. Unregistering is a no-op
    unless the entry still points at the given socket, so the late
    disconnect of a replaced socket cannot evict its successor.
    """

    def __init__(self):
        self._entries: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def authenticate(self, token: str | None) -> ConnectedUser:
        """
        Resolve the identity for a connection token.

        Missing token or the demo sentinel yields a guest identity (when
        guest access is enabled). Every guest connection gets its own
        "dev-user-<id>" user id, so guests never replace each other.
        Anything else must be a valid JWT.

        Raises:
            AuthenticationError: Token rejected, or guest access disabled.
        """
        if not token or token == settings.ws_demo_token:
            if not settings.ws_allow_guest:
                raise GuestAccessDisabledError("Authentication token required")
            connection_id = uuid.uuid4().hex
            return ConnectedUser(
                user_id=f"{GUEST_USER_ID}-{connection_id[:12]}",
                role=settings.ws_guest_role,
                name=GUEST_USER_NAME,
                is_guest=True,
                connection_id=connection_id,
            )

        try:
            claims = verify_jwt(token)
        except HTTPException as e:
            raise AuthenticationError(str(e.detail)) from e

        return ConnectedUser(
            user_id=str(claims["sub"]),
            role=claims["role"],
            name=claims.get("name") or claims.get("email") or str(claims["sub"]),
        )

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def register(self, websocket: WebSocket, user: ConnectedUser) -> _Entry | None:
        """
        Store the connection for user.user_id.

        Returns:
            The replaced entry when the user was already connected, else None.
        """
        async with self._lock:
            previous = self._entries.get(user.user_id)
            self._entries[user.user_id] = _Entry(websocket=websocket, user=user)

        if previous is not None and previous.websocket is not websocket:
            logger.info(
                "Connection replaced",
                user_id=user.user_id,
                old_connection=previous.user.connection_id,
                new_connection=user.connection_id,
            )
            return previous
        return None

    async def unregister(self, user_id: str, websocket: WebSocket) -> bool:
        """Remove the entry for user_id if it still belongs to websocket."""
        async with self._lock:
            entry = self._entries.get(user_id)
            if entry is None or entry.websocket is not websocket:
                return False
            del self._entries[user_id]
            # Room membership lives on the entry and goes with it
            entry.user.rooms.clear()
        return True

    async def close_all(self, code: int, reason: str) -> int:
        """Close every connection (shutdown)."""
        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()

        closed = 0
        for entry in entries:
            try:
                await entry.websocket.close(code=code, reason=reason)
                closed += 1
            except Exception as e:
                logger.debug("Failed to close connection during shutdown", error=str(e))
        return closed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, user_id: str) -> ConnectedUser | None:
        entry = self._entries.get(user_id)
        return entry.user if entry else None

    def websocket_for(self, user_id: str) -> WebSocket | None:
        entry = self._entries.get(user_id)
        return entry.websocket if entry else None

    def users(self) -> list[ConnectedUser]:
        return [entry.user for entry in self._entries.values()]

    def list_by_role(self, role: str) -> list[ConnectedUser]:
        return [entry.user for entry in self._entries.values() if entry.user.role == role]

    def count_by_role(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self._entries.values():
            counts[entry.user.role] = counts.get(entry.user.role, 0) + 1
        return counts

    def websockets_in(self, room: str) -> dict[str, WebSocket]:
        """Sockets of every user currently in room, keyed by user id."""
        return {
            user_id: entry.websocket
            for user_id, entry in self._entries.items()
            if room in entry.user.rooms
        }

    def active_rooms(self) -> list[str]:
        rooms: set[str] = set()
        for entry in self._entries.values():
            rooms.update(entry.user.rooms)
        return sorted(rooms)

    @property
    def total_connections(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        return {
            "totalConnections": self.total_connections,
            "usersByRole": self.count_by_role(),
            "activeRooms": self.active_rooms(),
        }
