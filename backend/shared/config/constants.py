"""
Centralized constants for the backend application.

Usage:
    from shared.config.constants import Roles, MANAGEMENT_ROLES, OrderStatus

    if role in MANAGEMENT_ROLES:
        ...

    if order.status == OrderStatus.PENDING:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants."""

    ADMIN: Final[str] = "ADMIN"
    MANAGER: Final[str] = "MANAGER"
    WAITER: Final[str] = "WAITER"
    KITCHEN: Final[str] = "KITCHEN"

    ALL: Final[list[str]] = [ADMIN, MANAGER, WAITER, KITCHEN]


# Role groups for common access patterns
MANAGEMENT_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER})
STAFF_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER, Roles.WAITER})
KITCHEN_ACCESS_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER, Roles.KITCHEN})
ALL_STAFF_ROLES: Final[frozenset[str]] = frozenset(Roles.ALL)

# Landing page per role, returned on login
ROLE_REDIRECTS: Final[dict[str, str]] = {
    Roles.ADMIN: "/admin",
    Roles.MANAGER: "/admin",
    Roles.WAITER: "/waiter",
    Roles.KITCHEN: "/kitchen",
}


# =============================================================================
# Entity Status Constants
# =============================================================================


class OrderStatus:
    """Order status constants."""

    PENDING: Final[str] = "PENDING"
    CONFIRMED: Final[str] = "CONFIRMED"
    PREPARING: Final[str] = "PREPARING"
    READY: Final[str] = "READY"
    DELIVERED: Final[str] = "DELIVERED"
    CANCELLED: Final[str] = "CANCELLED"

    ALL: Final[list[str]] = [PENDING, CONFIRMED, PREPARING, READY, DELIVERED, CANCELLED]
    # Orders that keep a table occupied
    ACTIVE: Final[list[str]] = [PENDING, CONFIRMED, PREPARING, READY]
    # Orders that block the daily close
    UNFINISHED: Final[list[str]] = [PENDING, CONFIRMED, PREPARING]
    KITCHEN_VISIBLE: Final[list[str]] = [CONFIRMED, PREPARING]
    TERMINAL: Final[list[str]] = [DELIVERED, CANCELLED]
    CANCELLABLE: Final[list[str]] = [PENDING, CONFIRMED]


class TableStatus:
    """Table status constants - matches schemas.py Literal types."""

    AVAILABLE: Final[str] = "AVAILABLE"
    OCCUPIED: Final[str] = "OCCUPIED"
    RESERVED: Final[str] = "RESERVED"
    OUT_OF_SERVICE: Final[str] = "OUT_OF_SERVICE"

    ALL: Final[list[str]] = [AVAILABLE, OCCUPIED, RESERVED, OUT_OF_SERVICE]


class PaymentMethod:
    """Payment method constants."""

    CASH: Final[str] = "CASH"
    CARD: Final[str] = "CARD"
    WEBPAY: Final[str] = "WEBPAY"

    ALL: Final[list[str]] = [CASH, CARD, WEBPAY]


class PaymentStatus:
    """Payment status constants."""

    PENDING: Final[str] = "PENDING"
    COMPLETED: Final[str] = "COMPLETED"
    FAILED: Final[str] = "FAILED"
    REFUNDED: Final[str] = "REFUNDED"

    ALL: Final[list[str]] = [PENDING, COMPLETED, FAILED, REFUNDED]


class IngredientUnit:
    """Ingredient measurement units."""

    UNIT: Final[str] = "UNIT"
    KG: Final[str] = "KG"
    LITER: Final[str] = "LITER"
    PIECE: Final[str] = "PIECE"

    ALL: Final[list[str]] = [UNIT, KG, LITER, PIECE]


class MovementType:
    """Stock movement types."""

    IN: Final[str] = "IN"
    OUT: Final[str] = "OUT"
    ADJUSTMENT: Final[str] = "ADJUSTMENT"  # Sets stock to the given quantity
    WASTE: Final[str] = "WASTE"

    ALL: Final[list[str]] = [IN, OUT, ADJUSTMENT, WASTE]
    DECREASING: Final[list[str]] = [OUT, WASTE]


class AlertType:
    """Stock alert types."""

    LOW_STOCK: Final[str] = "LOW_STOCK"
    OUT_OF_STOCK: Final[str] = "OUT_OF_STOCK"
    EXPIRED: Final[str] = "EXPIRED"

    ALL: Final[list[str]] = [LOW_STOCK, OUT_OF_STOCK, EXPIRED]


class StockLevel:
    """Derived stock level of an ingredient."""

    OUT: Final[str] = "OUT"
    LOW: Final[str] = "LOW"
    OK: Final[str] = "OK"


# =============================================================================
# Status Transitions
# =============================================================================

# Valid order status transitions (from -> [allowed to states])
# PENDING → CONFIRMED → PREPARING → READY → DELIVERED
ORDER_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderStatus.PENDING: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.PREPARING, OrderStatus.CANCELLED],
    OrderStatus.PREPARING: [OrderStatus.READY],
    OrderStatus.READY: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
}


# =============================================================================
# Daily Close
# =============================================================================


class DayCloseCategory(str, Enum):
    """Operation groups blocked while the business day is closed."""

    ORDERS = "ORDERS"
    PAYMENTS = "PAYMENTS"
    INVENTORY = "INVENTORY"
    GENERAL = "GENERAL"


# Roles allowed to keep operating a category after the close
DAY_CLOSE_BYPASS: Final[dict[DayCloseCategory, frozenset[str]]] = {
    DayCloseCategory.INVENTORY: frozenset({Roles.ADMIN}),
}

TOP_PRODUCTS_LIMIT: Final[int] = 5


# =============================================================================
# Real-time Notifications
# =============================================================================


class Rooms:
    """Broadcast room names. Per-table rooms are built with table_room()."""

    RESTAURANT: Final[str] = "restaurant"
    KITCHEN: Final[str] = "kitchen"
    WAITERS: Final[str] = "waiters"
    MANAGEMENT: Final[str] = "management"

    ALL: Final[list[str]] = [RESTAURANT, KITCHEN, WAITERS, MANAGEMENT]
    GLOBAL: Final[str] = RESTAURANT


def table_room(table_id: int | str) -> str:
    return f"table-{table_id}"


class Priority:
    """Notification priority levels."""

    LOW: Final[str] = "low"
    MEDIUM: Final[str] = "medium"
    HIGH: Final[str] = "high"
    CRITICAL: Final[str] = "critical"


class NotificationType:
    """Notification type constants (the `type` field of a payload)."""

    NEW_ORDER: Final[str] = "NEW_ORDER"
    ORDER_READY: Final[str] = "ORDER_READY"
    ORDER_STATUS_CHANGED: Final[str] = "ORDER_STATUS_CHANGED"
    TABLE_STATUS_CHANGED: Final[str] = "TABLE_STATUS_CHANGED"
    TABLE_NOTIFICATION: Final[str] = "TABLE_NOTIFICATION"
    EMERGENCY: Final[str] = "EMERGENCY"
    LOW_STOCK: Final[str] = "LOW_STOCK"


class SocketEvent:
    """WebSocket event names, server to client and client to server."""

    # Server → client
    CONNECTED: Final[str] = "connected"
    TABLE_JOINED: Final[str] = "table-joined"
    TABLE_LEFT: Final[str] = "table-left"
    NEW_ORDER: Final[str] = "new-order"
    ORDER_READY: Final[str] = "order-ready"
    ORDER_STATUS_CHANGED: Final[str] = "order-status-changed"
    TABLE_STATUS_CHANGED: Final[str] = "table-status-changed"
    TABLE_NOTIFICATION: Final[str] = "table-notification"
    EMERGENCY: Final[str] = "emergency"
    LOW_STOCK: Final[str] = "low-stock"
    PONG: Final[str] = "pong"
    ERROR: Final[str] = "error"

    # Client → server
    JOIN_TABLE: Final[str] = "join-table"
    LEAVE_TABLE: Final[str] = "leave-table"
    PING: Final[str] = "ping"
    ORDER_STATUS_UPDATE: Final[str] = "order-status-update"
    TABLE_STATUS_UPDATE: Final[str] = "table-status-update"


# Fixed priority per notification type. Status changes to READY are raised to HIGH.
PRIORITY_RULES: Final[dict[str, str]] = {
    NotificationType.NEW_ORDER: Priority.HIGH,
    NotificationType.ORDER_READY: Priority.HIGH,
    NotificationType.ORDER_STATUS_CHANGED: Priority.MEDIUM,
    NotificationType.TABLE_STATUS_CHANGED: Priority.MEDIUM,
    NotificationType.TABLE_NOTIFICATION: Priority.MEDIUM,
    NotificationType.EMERGENCY: Priority.CRITICAL,
    NotificationType.LOW_STOCK: Priority.HIGH,
}

ORDER_STATUS_MESSAGES: Final[dict[str, str]] = {
    OrderStatus.CONFIRMED: "Order confirmed",
    OrderStatus.PREPARING: "Order in preparation",
    OrderStatus.READY: "Order ready to serve",
    OrderStatus.DELIVERED: "Order delivered",
    OrderStatus.CANCELLED: "Order cancelled",
}
DEFAULT_STATUS_MESSAGE: Final[str] = "Status updated"


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Quantity limits
    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    # Price limits (in cents)
    MIN_PRICE_CENTS: Final[int] = 0
    MAX_PRICE_CENTS: Final[int] = 100_000_00

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_DESCRIPTION_LENGTH: Final[int] = 2000
    MAX_NOTES_LENGTH: Final[int] = 500
    MAX_URL_LENGTH: Final[int] = 2048

    # Pagination defaults
    DEFAULT_PAGE: Final[int] = 1
    DEFAULT_PAGE_SIZE: Final[int] = 10
    MAX_PAGE_SIZE: Final[int] = 100

    # Password
    MIN_PASSWORD_LENGTH: Final[int] = 6
