"""
Structured logging shared by the REST API and the WebSocket gateway.

Loggers accept keyword data next to the message:

    logger.info("Order created", order_id=12, table_id=3)

Production writes one JSON object per line; development writes colored
single lines with the keyword data appended.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

_DATA_ATTR = "extra_data"

# Third-party loggers and the level they are held at
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "websockets": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def _record_data(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, _DATA_ATTR, None) or {}


class StructuredFormatter(logging.Formatter):
    """JSON lines for log aggregation."""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        data = _record_data(record)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["at"] = f"{record.module}:{record.funcName}:{record.lineno}"
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{clock} {color}{record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        data = _record_data(record)
        if data:
            line += "  " + " ".join(f"{key}={value}" for key, value in data.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose level methods take keyword data instead of `extra`."""

    def _emit(self, level: int, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        extra = kwargs.pop("extra", None) or {}
        extra[_DATA_ATTR] = kwargs or None
        self._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.CRITICAL, msg, args, kwargs)

    def log_at(self, level: int, msg: str, **kwargs: Any) -> None:
        self._emit(level, msg, (), kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging(service: str = "rest_api") -> None:
    """
    Install the stdout handler on the root logger.

    Call once per process at startup. The level comes from LOG_LEVEL and
    falls back to DEBUG when DEBUG is on. JSON output is used in
    production or when LOG_FORMAT=json.
    """
    level_name = settings.log_level or ("DEBUG" if settings.debug else "INFO")
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    use_json = settings.log_format == "json" or (
        settings.log_format == "auto" and settings.environment == "production"
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(service) if use_json else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> StructuredLogger:
    """
    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)
        logger.warning("Stock below minimum", ingredient_id=4, stock=1.5)
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_email(email: str | None) -> str:
    """"waiter@example.com" -> "wa***@example.com"."""
    if not email or "@" not in email:
        return "<no-email>" if not email else "***@invalid"
    local, domain = email.split("@", 1)
    return f"{local[:2] if len(local) > 2 else local[:1]}***@{domain}"


rest_api_logger = get_logger("rest_api")
ws_gateway_logger = get_logger("ws_gateway")
orders_logger = get_logger("rest_api.orders")
inventory_logger = get_logger("rest_api.inventory")
daily_close_logger = get_logger("rest_api.daily_close")
auth_logger = get_logger("rest_api.auth")
security_audit_logger = get_logger("security.audit")


# =============================================================================
# Security audit trail
# =============================================================================


def audit_ws_connection(
    event_type: str,
    endpoint: str,
    user_id: int | str | None = None,
    role: str | None = None,
    reason: str | None = None,
    **extra: Any,
) -> None:
    """
    WebSocket lifecycle: CONNECT, DISCONNECT, AUTH_FAILED and REPLACED.
    Failures go out at WARNING.
    """
    level = logging.WARNING if event_type == "AUTH_FAILED" else logging.INFO
    security_audit_logger.log_at(
        level,
        f"WS_AUDIT: {event_type}",
        endpoint=endpoint,
        user_id=user_id,
        role=role,
        reason=reason,
        **extra,
    )


def audit_auth_event(
    event_type: str,
    user_id: int | str | None = None,
    email: str | None = None,
    success: bool = True,
    reason: str | None = None,
    ip_address: str | None = None,
    **extra: Any,
) -> None:
    """LOGIN, LOGOUT, PASSWORD_CHANGED. Emails are masked."""
    security_audit_logger.log_at(
        logging.INFO if success else logging.WARNING,
        f"AUTH_AUDIT: {event_type}",
        user_id=user_id,
        email=mask_email(email) if email else None,
        success=success,
        reason=reason,
        ip_address=ip_address,
        **extra,
    )
