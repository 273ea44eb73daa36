"""
Security module: Authentication, password hashing, rate limiting.
"""

from shared.security.auth import (
    sign_jwt,
    sign_user_token,
    verify_jwt,
    parse_demo_token,
    resolve_token,
    get_bearer_token,
    current_user_context,
    ctx_user_id,
    require_roles,
)
from shared.security.password import hash_password, verify_password
from shared.security.rate_limit import (
    limiter,
    login_limit,
    rate_limit_exceeded_handler,
)

__all__ = [
    # auth
    "sign_jwt",
    "sign_user_token",
    "verify_jwt",
    "parse_demo_token",
    "resolve_token",
    "get_bearer_token",
    "current_user_context",
    "ctx_user_id",
    "require_roles",
    # password
    "hash_password",
    "verify_password",
    # rate_limit
    "limiter",
    "login_limit",
    "rate_limit_exceeded_handler",
]
