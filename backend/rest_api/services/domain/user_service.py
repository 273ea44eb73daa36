"""
User Service - staff accounts.

Handles:
- User CRUD with password hashing
- Unique name (login) and email
- Activation toggle and soft delete
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.routers._common.pagination import Pagination
from rest_api.services.base_service import BaseCRUDService
from shared.config.logging import get_logger, mask_email
from shared.infrastructure.db import safe_commit
from shared.security.password import hash_password, verify_password
from shared.utils.exceptions import DuplicateEntityError, ForbiddenError, ValidationError
from shared.utils.schemas import UserOutput

logger = get_logger(__name__)


class UserService(BaseCRUDService[User, UserOutput]):
    """
    Service for staff users.

    Business rules:
    - Names (used as login) and emails are unique, case-insensitive
    - Passwords are stored as bcrypt hashes only
    - Users cannot deactivate or delete themselves
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=User, output_schema=UserOutput, entity_name="User")

    def list_users(
        self,
        pagination: Pagination,
        role: str | None = None,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> tuple[list[UserOutput], int]:
        stmt = self.base_query(include_inactive=include_inactive)
        if role:
            stmt = stmt.where(User.role == role)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return self.list_page(pagination, stmt.order_by(User.name))

    def find_for_login(self, username: str) -> User | None:
        """Active user by name, or by email when the username contains '@'."""
        column = User.email if "@" in username else User.name
        return self._db.scalar(
            self.base_query().where(func.lower(column) == username.lower())
        )

    @staticmethod
    def check_password(user: User, password: str) -> bool:
        return verify_password(password, user.password)

    def set_active(self, user_id: int, is_active: bool, acting_user_id: int | None = None) -> UserOutput:
        entity = self.get_entity(user_id, include_inactive=True)
        if not is_active and acting_user_id == entity.id:
            raise ForbiddenError("deactivate your own account")
        if is_active:
            entity.restore()
        else:
            entity.soft_delete()
        safe_commit(self._db)
        self._db.refresh(entity)
        logger.info("User status changed", user_id=entity.id, is_active=is_active)
        return self.to_output(entity)

    def delete_user(self, user_id: int, acting_user_id: int | None = None) -> None:
        if acting_user_id == user_id:
            raise ForbiddenError("delete your own account")
        self.delete(user_id)

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """
        Raises:
            ValidationError: The current password does not match.
        """
        entity = self.get_entity(user_id)
        if not verify_password(current_password, entity.password):
            raise ValidationError("Current password is incorrect")
        entity.password = hash_password(new_password)
        safe_commit(self._db)

    # =========================================================================
    # Hooks
    # =========================================================================

    def _ensure_unique(self, name: str | None, email: str | None, exclude_id: int | None = None) -> None:
        # Includes deactivated users: the columns are unique in the table
        for column, value in ((User.name, name), (User.email, email)):
            if value is None:
                continue
            stmt = self.base_query(include_inactive=True).where(func.lower(column) == value.lower())
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            if self._db.scalar(stmt) is not None:
                raise DuplicateEntityError("User", value)

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._ensure_unique(data["name"], data["email"])
        data["password"] = hash_password(data["password"])
        logger.info("Creating user", email=mask_email(data["email"]), role=data.get("role"))

    def _validate_update(self, entity: User, data: dict[str, Any]) -> None:
        self._ensure_unique(data.get("name"), data.get("email"), exclude_id=entity.id)
        data.pop("password", None)
