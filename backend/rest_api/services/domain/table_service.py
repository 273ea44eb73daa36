"""
Table Service.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Order, Table
from rest_api.routers._common.pagination import Pagination
from rest_api.services.base_service import BaseCRUDService
from shared.config.constants import OrderStatus, TableStatus
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import ConflictError, DuplicateEntityError, NotFoundError
from shared.utils.schemas import TableOutput


def table_qr_payload(number: int) -> str:
    """URL encoded in the table's QR code."""
    return f"{settings.frontend_url.rstrip('/')}/table/{number}"


class TableService(BaseCRUDService[Table, TableOutput]):
    """Service for dining tables."""

    def __init__(self, db: Session):
        super().__init__(db=db, model=Table, output_schema=TableOutput, entity_name="Table")

    def list_tables(self, pagination: Pagination, status: str | None = None) -> tuple[list[TableOutput], int]:
        stmt = self.base_query()
        if status:
            stmt = stmt.where(Table.status == status)
        return self.list_page(pagination, stmt.order_by(Table.number))

    def list_available(self) -> list[TableOutput]:
        return self.list_all(
            self.base_query().where(Table.status == TableStatus.AVAILABLE).order_by(Table.number)
        )

    def get_by_number(self, number: int) -> TableOutput:
        entity = self._db.scalar(self.base_query().where(Table.number == number))
        if entity is None:
            raise NotFoundError(self._entity_name, f"number {number}")
        return self.to_output(entity)

    def active_order_count(self, table_id: int) -> int:
        return self._db.scalar(
            select(func.count(Order.id)).where(
                Order.table_id == table_id,
                Order.status.in_(OrderStatus.ACTIVE),
            )
        ) or 0

    def set_status(self, table_id: int, status: str) -> tuple[TableOutput, bool]:
        """Returns (table, changed)."""
        entity = self.get_entity(table_id)
        changed = entity.status != status
        entity.status = status
        safe_commit(self._db)
        self._db.refresh(entity)
        return self.to_output(entity), changed

    def generate_qr(self, table_id: int) -> TableOutput:
        entity = self.get_entity(table_id)
        entity.qr_payload = table_qr_payload(entity.number)
        safe_commit(self._db)
        self._db.refresh(entity)
        return self.to_output(entity)

    # =========================================================================
    # Hooks
    # =========================================================================

    def _ensure_unique_number(self, number: int, exclude_id: int | None = None) -> None:
        stmt = self.base_query().where(Table.number == number)
        if exclude_id is not None:
            stmt = stmt.where(Table.id != exclude_id)
        if self._db.scalar(stmt) is not None:
            raise DuplicateEntityError("Table", f"number {number}")

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._ensure_unique_number(data["number"])
        data["qr_payload"] = table_qr_payload(data["number"])

    def _validate_update(self, entity: Table, data: dict[str, Any]) -> None:
        number = data.get("number")
        if number is not None and number != entity.number:
            self._ensure_unique_number(number, exclude_id=entity.id)
            data["qr_payload"] = table_qr_payload(number)

    def _validate_delete(self, entity: Table) -> None:
        if self.active_order_count(entity.id):
            raise ConflictError("Cannot delete a table with active orders", table_id=entity.id)
