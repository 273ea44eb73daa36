"""
User Model: staff accounts.
"""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import AuditMixin, Base, PKType


class User(AuditMixin, Base):
    """
    Restaurant staff member.
    `name` doubles as the login username.
    Inherits: is_active, created_at, updated_at, deleted_at from AuditMixin.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password: Mapped[str] = mapped_column(Text, nullable=False)  # bcrypt hash
    role: Mapped[str] = mapped_column(Text, nullable=False, index=True)  # ADMIN, MANAGER, WAITER, KITCHEN
