"""Python client for the notification socket."""

from ws_gateway.client.reconnect import (
    ConnectionStatus,
    NotificationBuffers,
    ReconnectPolicy,
    ReconnectionManager,
)

__all__ = [
    "ConnectionStatus",
    "NotificationBuffers",
    "ReconnectPolicy",
    "ReconnectionManager",
]
