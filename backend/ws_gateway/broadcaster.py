"""
Event broadcaster: turns domain changes into role-targeted notifications.

Each notification is a dict {type, message, data, timestamp, priority}.
Delivery is fire-and-forget: failures are logged and never reach the
caller, nothing is retried or persisted.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from shared.config.constants import (
    DEFAULT_STATUS_MESSAGE,
    NotificationType,
    ORDER_STATUS_MESSAGES,
    OrderStatus,
    PRIORITY_RULES,
    Priority,
    Rooms,
    SocketEvent,
    AlertType,
    table_room,
)
from shared.config.logging import ws_gateway_logger as logger
from ws_gateway.emitters import BroadcastResult, Emitter

__all__ = ["BroadcastResult", "EventBroadcaster", "build_notification"]


def build_notification(
    notification_type: str,
    message: str,
    data: Any = None,
    priority: str | None = None,
) -> dict[str, Any]:
    return {
        "type": notification_type,
        "message": message,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "priority": priority or PRIORITY_RULES.get(notification_type, Priority.MEDIUM),
    }


class EventBroadcaster:
    """
    Fans notifications out to rooms through an injected emitter.

    Usage:
        broadcaster = EventBroadcaster(LocalEmitter(room_router))
        await broadcaster.notify_order_status(12, "READY")
    """

    def __init__(self, emitter: Emitter):
        self._emitter = emitter

    @property
    def emitter(self) -> Emitter:
        return self._emitter

    async def _send(
        self,
        rooms: Sequence[str],
        event: str,
        notification: dict[str, Any],
    ) -> BroadcastResult:
        try:
            result = await self._emitter.emit(rooms, event, notification)
        except Exception as e:
            logger.warning("Broadcast failed", event=event, rooms=list(rooms), error=str(e))
            return BroadcastResult(event=event, rooms=tuple(rooms))

        logger.debug(
            "Broadcast sent",
            event=event,
            rooms=list(rooms),
            recipients=result.recipients,
            delivered=result.delivered,
            failed=result.failed,
        )
        return result

    # =========================================================================
    # Orders
    # =========================================================================

    async def notify_new_order(self, order: Mapping[str, Any]) -> list[BroadcastResult]:
        """Kitchen gets it at high priority, management at medium."""
        table = order.get("table") or {}
        table_label = table.get("number", order.get("table_id"))
        message = f"New order #{order['id']} - Table {table_label}"

        results = [
            await self._send(
                [Rooms.KITCHEN],
                SocketEvent.NEW_ORDER,
                build_notification(NotificationType.NEW_ORDER, message, dict(order), Priority.HIGH),
            ),
            await self._send(
                [Rooms.MANAGEMENT],
                SocketEvent.NEW_ORDER,
                build_notification(NotificationType.NEW_ORDER, message, dict(order), Priority.MEDIUM),
            ),
        ]
        logger.info("New order notified", order_id=order["id"])
        return results

    async def notify_order_status(
        self,
        order_id: int | str,
        status: str,
        estimated_time: int | None = None,
    ) -> list[BroadcastResult]:
        """
        Always emits order-status-changed to the whole restaurant.
        READY additionally alerts the waiters with order-ready.
        """
        data = {"orderId": order_id, "status": status, "estimatedTime": estimated_time}
        status_text = ORDER_STATUS_MESSAGES.get(status, DEFAULT_STATUS_MESSAGE)
        results = []

        if status == OrderStatus.READY:
            results.append(
                await self._send(
                    [Rooms.WAITERS],
                    SocketEvent.ORDER_READY,
                    build_notification(
                        NotificationType.ORDER_READY,
                        f"Order #{order_id} ready to serve",
                        data,
                    ),
                )
            )

        priority = Priority.HIGH if status == OrderStatus.READY else None
        results.append(
            await self._send(
                [Rooms.RESTAURANT],
                SocketEvent.ORDER_STATUS_CHANGED,
                build_notification(
                    NotificationType.ORDER_STATUS_CHANGED,
                    f"Order #{order_id}: {status_text}",
                    data,
                    priority,
                ),
            )
        )
        logger.info("Order status notified", order_id=order_id, status=status)
        return results

    # =========================================================================
    # Tables
    # =========================================================================

    async def notify_table_status(
        self,
        table_id: int | str,
        status: str,
        table_number: int | None = None,
    ) -> BroadcastResult:
        label = table_number if table_number is not None else table_id
        data = {"tableId": table_id, "tableNumber": table_number, "status": status}
        return await self._send(
            [Rooms.WAITERS, Rooms.MANAGEMENT],
            SocketEvent.TABLE_STATUS_CHANGED,
            build_notification(NotificationType.TABLE_STATUS_CHANGED, f"Table {label}: {status}", data),
        )

    async def notify_table(
        self,
        table_id: int | str,
        message: str,
        data: Any = None,
    ) -> BroadcastResult:
        return await self._send(
            [table_room(table_id)],
            SocketEvent.TABLE_NOTIFICATION,
            build_notification(NotificationType.TABLE_NOTIFICATION, message, data),
        )

    # =========================================================================
    # System
    # =========================================================================

    async def notify_emergency(self, message: str, data: Any = None) -> BroadcastResult:
        logger.warning("Emergency notification", message=message)
        return await self._send(
            [Rooms.RESTAURANT],
            SocketEvent.EMERGENCY,
            build_notification(NotificationType.EMERGENCY, message, data),
        )

    async def notify_low_stock(self, item: Mapping[str, Any]) -> BroadcastResult:
        """
        item: {name, stock, unit, alertType, ...}. alertType defaults to LOW_STOCK.
        """
        data = dict(item)
        data.setdefault("alertType", AlertType.LOW_STOCK)

        if data["alertType"] == AlertType.OUT_OF_STOCK:
            message = f"Out of stock: {data['name']}"
        else:
            unit = f" {data['unit']}" if data.get("unit") else ""
            message = f"Low stock: {data['name']} ({data['stock']}{unit} remaining)"

        return await self._send(
            [Rooms.MANAGEMENT, Rooms.KITCHEN],
            SocketEvent.LOW_STOCK,
            build_notification(NotificationType.LOW_STOCK, message, data),
        )
