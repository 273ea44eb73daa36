"""
WebSocket Gateway Constants.
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "WS_ENDPOINT",
    "GUEST_USER_ID",
    "GUEST_USER_NAME",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    Custom codes (4000-4999) for application-specific errors.
    """

    # Standard codes (RFC 6455)
    NORMAL = 1000  # Normal closure
    GOING_AWAY = 1001  # Server shutting down or client navigating away
    POLICY_VIOLATION = 1008  # Generic policy violation
    MESSAGE_TOO_BIG = 1009  # Message too large to process
    SERVER_ERROR = 1011  # Unexpected server error

    # Custom application codes (4000-4999)
    AUTH_FAILED = 4001  # Supplied token could not be verified
    REPLACED = 4002  # Same user connected again; the older socket is closed
    FORBIDDEN = 4003  # Valid auth but guest access disabled


WS_ENDPOINT: Final[str] = "/ws"

# Synthetic identity for connections without a token (or with the demo sentinel)
GUEST_USER_ID: Final[str] = "dev-user"
GUEST_USER_NAME: Final[str] = "Development User"
