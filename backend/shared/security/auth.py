"""
Authentication and authorization utilities.
Handles JWT tokens for staff and the development demo tokens.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from fastapi import Header, HTTPException, status

from shared.config.constants import Roles
from shared.config.settings import (
    JWT_SECRET,
    JWT_ISSUER,
    JWT_AUDIENCE,
    settings,
)
from shared.config.logging import get_logger
from shared.utils.exceptions import InsufficientRoleError

logger = get_logger(__name__)

DEMO_TOKEN_PREFIX = "demo-token-"


# =============================================================================
# JWT Functions (for staff authentication)
# =============================================================================


def sign_jwt(
    payload: dict[str, Any],
    ttl_seconds: int | None = None,
    token_type: str = "access",
) -> str:
    """
    Sign a JWT token with the given payload.

    Args:
        payload: Claims to include in the token (sub, role, name, email).
        ttl_seconds: Token lifetime in seconds. Defaults to access token expiry.
        token_type: Type of token.

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": token_type,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def sign_user_token(user: Any) -> str:
    """Create an access token for a persisted user."""
    return sign_jwt(
        {
            "sub": str(user.id),
            "role": user.role,
            "name": user.name,
            "email": user.email,
        }
    )


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded token claims.

    Raises:
        HTTPException: If token is invalid, expired, or lacks required claims.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        # Keep the library's reason in the log only
        logger.warning("JWT validation failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    if "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject claim",
        )

    if payload.get("role") not in Roles.ALL:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing or unknown role claim",
        )

    try:
        int(payload["sub"])
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: malformed subject claim",
        )

    return payload


def parse_demo_token(token: str) -> dict[str, Any] | None:
    """
    Build a synthetic context from a "demo-token-<role>-<anything>" token.

    Returns None when the token is not a demo token or names an unknown role.
    """
    if not token.startswith(DEMO_TOKEN_PREFIX):
        return None

    role = token[len(DEMO_TOKEN_PREFIX):].split("-", 1)[0].upper()
    if role not in Roles.ALL:
        return None

    return {
        "sub": f"demo-{role.lower()}",
        "role": role,
        "name": f"Demo {role.title()}",
        "email": f"{role.lower()}@demo.local",
        "demo": True,
    }


def resolve_token(token: str) -> dict[str, Any]:
    """Resolve a bearer token into a user context (demo tokens first, then JWT)."""
    if settings.allow_demo_tokens:
        demo_ctx = parse_demo_token(token)
        if demo_ctx is not None:
            return demo_ctx
    return verify_jwt(token)


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract bearer token from Authorization header.

    Raises:
        HTTPException: If header is missing or malformed.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format. Expected: Bearer <token>",
        )
    return authorization.split(" ", 1)[1].strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency to get the current user context from the bearer token.

    Usage:
        @router.get("/protected")
        def protected_endpoint(ctx: dict = Depends(current_user_context)):
            user_id = ctx_user_id(ctx)
            role = ctx["role"]
            ...

    Returns:
        Dict with: sub, role, name, email (and demo=True for demo tokens)
    """
    token = get_bearer_token(authorization)
    return resolve_token(token)


def ctx_user_id(ctx: dict[str, Any]) -> int | None:
    """Persisted user id of the caller, or None for demo identities."""
    if ctx.get("demo"):
        return None
    return int(ctx["sub"])


def require_roles(ctx: dict[str, Any], allowed: list[str] | frozenset[str]) -> None:
    """
    Verify that the user has one of the allowed roles.

    Raises:
        InsufficientRoleError: If user lacks required role.
    """
    if ctx.get("role") not in allowed:
        raise InsufficientRoleError(sorted(allowed), user=ctx.get("sub"), role=ctx.get("role"))
