"""
The /ws endpoint.

Server frames are JSON objects {"event": str, "payload": {...}}. Client frames
carry an "event" plus their fields, flat or nested under "payload".
The plain text "ping" is answered with "pong" for simple clients.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from shared.config.constants import (
    KITCHEN_ACCESS_ROLES,
    STAFF_ROLES,
    OrderStatus,
    SocketEvent,
    TableStatus,
)
from shared.config.logging import audit_ws_connection, ws_gateway_logger as logger
from shared.config.settings import settings
from ws_gateway.connection_registry import AuthenticationError, ConnectedUser, GuestAccessDisabledError
from ws_gateway.constants import WS_ENDPOINT, WSCloseCode
from ws_gateway.hub import RealtimeHub

router = APIRouter()


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": SocketEvent.ERROR, "payload": {"message": message}})


async def handle_frame(
    hub: RealtimeHub,
    websocket: WebSocket,
    user: ConnectedUser,
    frame: dict[str, Any],
) -> None:
    """Dispatch one client frame."""
    event = frame.get("event")
    # Fields may be flat on the frame or nested under "payload"
    payload = frame.get("payload", frame)
    if not isinstance(payload, dict):
        await _send_error(websocket, "payload must be an object")
        return

    if event == SocketEvent.PING:
        await websocket.send_json({"event": SocketEvent.PONG, "payload": {}})

    elif event in (SocketEvent.JOIN_TABLE, SocketEvent.LEAVE_TABLE):
        table_id = payload.get("tableId")
        if table_id is None:
            await _send_error(websocket, "tableId is required")
            return
        if event == SocketEvent.JOIN_TABLE:
            room = hub.rooms.join_table(user.user_id, table_id)
            ack = SocketEvent.TABLE_JOINED
        else:
            room = hub.rooms.leave_table(user.user_id, table_id)
            ack = SocketEvent.TABLE_LEFT
        await websocket.send_json({"event": ack, "payload": {"tableId": table_id, "room": room}})

    elif event == SocketEvent.ORDER_STATUS_UPDATE:
        if user.role not in KITCHEN_ACCESS_ROLES:
            await _send_error(websocket, "Insufficient role for order-status-update")
            return
        order_id = payload.get("orderId")
        status = payload.get("status")
        if order_id is None or status not in OrderStatus.ALL:
            await _send_error(websocket, "orderId and a valid status are required")
            return
        await hub.broadcaster.notify_order_status(order_id, status, payload.get("estimatedTime"))

    elif event == SocketEvent.TABLE_STATUS_UPDATE:
        if user.role not in STAFF_ROLES:
            await _send_error(websocket, "Insufficient role for table-status-update")
            return
        table_id = payload.get("tableId")
        status = payload.get("status")
        if table_id is None or status not in TableStatus.ALL:
            await _send_error(websocket, "tableId and a valid status are required")
            return
        await hub.broadcaster.notify_table_status(table_id, status, payload.get("tableNumber"))

    else:
        logger.debug("Unknown client event", user_id=user.user_id, event=str(event)[:100])
        await _send_error(websocket, f"Unknown event: {event}")


@router.websocket(WS_ENDPOINT)
async def notifications_websocket(
    websocket: WebSocket,
    token: str | None = Query(default=None, description="JWT token or the demo sentinel"),
):
    """
    Notification socket for every role.

    Connections join their role rooms on connect and may join table rooms
    afterwards. A second connection for the same authenticated user closes the
    first with 4002. Guests get a fresh user id per connection and are
    never replaced.
    """
    hub: RealtimeHub = websocket.app.state.realtime

    try:
        user = hub.registry.authenticate(token)
    except AuthenticationError as e:
        audit_ws_connection("AUTH_FAILED", WS_ENDPOINT, reason=str(e))
        code = WSCloseCode.FORBIDDEN if isinstance(e, GuestAccessDisabledError) else WSCloseCode.AUTH_FAILED
        await websocket.close(code=code, reason=str(e))
        return

    await websocket.accept()
    replaced = await hub.registry.register(websocket, user)
    hub.rooms.join_role_rooms(user)

    if replaced is not None:
        audit_ws_connection("REPLACED", WS_ENDPOINT, user_id=user.user_id, role=user.role)
        try:
            await replaced.websocket.close(
                code=WSCloseCode.REPLACED, reason="Connection replaced by a newer one"
            )
        except Exception as e:
            logger.debug("Replaced socket already closed", user_id=user.user_id, error=str(e))

    audit_ws_connection(
        "CONNECT", WS_ENDPOINT, user_id=user.user_id, role=user.role, guest=user.is_guest
    )
    await websocket.send_json({"event": SocketEvent.CONNECTED, "payload": user.to_dict()})

    try:
        while websocket.application_state == WebSocketState.CONNECTED:
            data = await websocket.receive_text()

            if len(data) > settings.ws_max_message_size:
                logger.warning(
                    "Message size exceeded limit",
                    user_id=user.user_id,
                    size=len(data),
                    max_size=settings.ws_max_message_size,
                )
                await websocket.close(code=WSCloseCode.MESSAGE_TOO_BIG, reason="Message too large")
                break

            if data == "ping":
                await websocket.send_text("pong")
                continue

            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid JSON")
                continue
            if not isinstance(frame, dict):
                await _send_error(websocket, "Frame must be an object")
                continue

            await handle_frame(hub, websocket, user, frame)

    except WebSocketDisconnect:
        pass
    finally:
        removed = await hub.registry.unregister(user.user_id, websocket)
        audit_ws_connection(
            "DISCONNECT", WS_ENDPOINT, user_id=user.user_id, role=user.role, removed=removed
        )
