"""
Room membership for broadcast fan-out.

Role rooms come from a declarative table validated at startup. Table
rooms ("table-{id}") are joined and left explicitly by clients,
independently of role. Rooms are plain labels: no capacity, no TTL.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Final

from starlette.websockets import WebSocket

from shared.config.constants import Roles, Rooms, table_room
from shared.config.logging import ws_gateway_logger as logger
from ws_gateway.connection_registry import ConnectedUser, ConnectionRegistry


ROLE_ROOMS: Final[dict[str, frozenset[str]]] = {
    Roles.ADMIN: frozenset({Rooms.RESTAURANT, Rooms.KITCHEN, Rooms.WAITERS, Rooms.MANAGEMENT}),
    Roles.MANAGER: frozenset({Rooms.RESTAURANT, Rooms.KITCHEN, Rooms.WAITERS, Rooms.MANAGEMENT}),
    Roles.KITCHEN: frozenset({Rooms.RESTAURANT, Rooms.KITCHEN}),
    Roles.WAITER: frozenset({Rooms.RESTAURANT, Rooms.WAITERS}),
}


def validate_role_rooms(table: Mapping[str, frozenset[str]]) -> None:
    """
    Check a role→rooms table.

    Raises:
        ValueError: A known role is missing, a room is unknown, or a role
            does not include the global room.
    """
    missing = [role for role in Roles.ALL if role not in table]
    if missing:
        raise ValueError(f"Role rooms missing for roles: {', '.join(missing)}")

    for role, rooms in table.items():
        unknown = sorted(set(rooms) - set(Rooms.ALL))
        if unknown:
            raise ValueError(f"Role {role} references unknown rooms: {', '.join(unknown)}")
        if Rooms.GLOBAL not in rooms:
            raise ValueError(f"Role {role} must include the '{Rooms.GLOBAL}' room")


class RoomRouter:
    """Joins connections to rooms and resolves room audiences."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        role_rooms: Mapping[str, frozenset[str]] = ROLE_ROOMS,
    ):
        validate_role_rooms(role_rooms)
        self._registry = registry
        self._role_rooms = dict(role_rooms)

    def rooms_for_role(self, role: str) -> frozenset[str]:
        """Rooms for a role. Unknown roles only get the global room."""
        return self._role_rooms.get(role, frozenset({Rooms.GLOBAL}))

    def join_role_rooms(self, user: ConnectedUser) -> frozenset[str]:
        rooms = self.rooms_for_role(user.role)
        user.rooms.update(rooms)
        return rooms

    def join_table(self, user_id: str, table_id: int | str) -> str | None:
        """Add a connected user to the table room. Idempotent."""
        user = self._registry.get(user_id)
        if user is None:
            return None
        room = table_room(table_id)
        user.rooms.add(room)
        logger.debug("Joined table room", user_id=user_id, room=room)
        return room

    def leave_table(self, user_id: str, table_id: int | str) -> str | None:
        """Remove a connected user from the table room. Idempotent."""
        user = self._registry.get(user_id)
        if user is None:
            return None
        room = table_room(table_id)
        user.rooms.discard(room)
        logger.debug("Left table room", user_id=user_id, room=room)
        return room

    def members(self, room: str) -> set[str]:
        return set(self._registry.websockets_in(room))

    def active_rooms(self) -> list[str]:
        return self._registry.active_rooms()

    def audience(self, rooms: Iterable[str]) -> dict[str, WebSocket]:
        """Union of the sockets in rooms; a user in several rooms appears once."""
        sockets: dict[str, WebSocket] = {}
        for room in rooms:
            sockets.update(self._registry.websockets_in(room))
        return sockets
