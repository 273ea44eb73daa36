"""
Authentication router.
Handles login, token validation and the current user.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from rest_api.services.domain import UserService
from shared.config.constants import ROLE_REDIRECTS, Roles
from shared.config.logging import audit_auth_event, auth_logger as logger, mask_email
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.security.auth import (
    ctx_user_id,
    current_user_context,
    require_roles,
    resolve_token,
    sign_user_token,
)
from shared.security.rate_limit import limiter, login_limit
from shared.utils import response
from shared.utils.exceptions import ForbiddenError
from shared.utils.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    UserOutput,
    ValidateTokenRequest,
)


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _context_user(ctx: dict[str, Any]) -> dict[str, Any]:
    """Identity from the token claims (demo tokens have no database row)."""
    return {
        "id": ctx["sub"],
        "name": ctx.get("name"),
        "email": ctx.get("email"),
        "role": ctx["role"],
        "demo": bool(ctx.get("demo")),
    }


@router.post("/login")
@limiter.limit(login_limit)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> dict:
    """
    Authenticate a staff member by user name (or email) and password.

    Returns the access token, the user and the landing path for its role.
    """
    service = UserService(db)
    user = service.find_for_login(body.username)

    if user is None or not service.check_password(user, body.password):
        audit_auth_event(
            "LOGIN",
            user_id=user.id if user else None,
            email=user.email if user else None,
            success=False,
            reason="invalid credentials",
            ip_address=_client_ip(request),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    token = sign_user_token(user)
    audit_auth_event("LOGIN", user_id=user.id, email=user.email, ip_address=_client_ip(request))
    logger.info("LOGIN_SUCCESS", user_id=user.id, email=mask_email(user.email), role=user.role)

    data = LoginResponse(
        user=UserOutput.model_validate(user),
        token=token,
        redirect_path=ROLE_REDIRECTS.get(user.role, "/"),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )
    return response.ok(data, "Login successful")


@router.post("/logout")
def logout(request: Request, ctx: dict = Depends(current_user_context)) -> dict:
    """Tokens are stateless: the client discards its token."""
    audit_auth_event("LOGOUT", user_id=ctx["sub"], email=ctx.get("email"), ip_address=_client_ip(request))
    return response.ok(None, "Logout successful")


@router.get("/me")
def me(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    user_id = ctx_user_id(ctx)
    if user_id is None:
        return response.ok(_context_user(ctx))
    return response.ok(UserService(db).get_by_id(user_id))


@router.post("/change-password")
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    user_id = ctx_user_id(ctx)
    if user_id is None:
        raise ForbiddenError("change the password of a demo user")

    UserService(db).change_password(user_id, body.current_password, body.new_password)
    audit_auth_event("PASSWORD_CHANGED", user_id=user_id, email=ctx.get("email"), ip_address=_client_ip(request))
    return response.ok(None, "Password changed successfully")


@router.get("/roles")
def list_roles(ctx: dict = Depends(current_user_context)) -> dict:
    require_roles(ctx, [Roles.ADMIN])
    return response.ok([{"role": role, "redirectPath": ROLE_REDIRECTS[role]} for role in Roles.ALL])


@router.post("/validate-token")
def validate_token(body: ValidateTokenRequest) -> dict:
    """Report whether a token is valid without failing the request."""
    try:
        ctx = resolve_token(body.token)
    except HTTPException as e:
        return response.ok({"valid": False, "reason": e.detail})
    return response.ok({"valid": True, "user": _context_user(ctx)})
