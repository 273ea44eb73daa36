"""
Order Domain Service.

Order creation, the status state machine and payments. A status change,
its stock deduction and the table release are written in one
transaction: either all of them commit or none does.

Services return an OrderChange describing what happened; the router
commits and then broadcasts from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import (
    ORDER_TRANSITIONS,
    OrderStatus,
    PaymentStatus,
    TableStatus,
)
from shared.config.logging import orders_logger as logger
from shared.utils.exceptions import (
    ConflictError,
    InvalidTransitionError,
    OrderNotFoundError,
    TableNotFoundError,
    ValidationError,
)
from shared.utils.schemas import (
    OrderItemInput,
    OrderItemOutput,
    OrderOutput,
    PaymentOutput,
)
from rest_api.models import Order, OrderItem, Payment, Product, Table
from rest_api.routers._common.pagination import Pagination
from rest_api.services.domain.stock_service import StockService


def validate_transition(from_status: str, to_status: str) -> None:
    """
    Raises:
        InvalidTransitionError: to_status is not reachable from from_status.
    """
    if to_status not in ORDER_TRANSITIONS.get(from_status, []):
        raise InvalidTransitionError("Order", from_status, to_status)


def order_output(order: Order) -> OrderOutput:
    completed = [p for p in order.payments if p.status == PaymentStatus.COMPLETED]
    return OrderOutput(
        id=order.id,
        table_id=order.table_id,
        table_number=order.table.number if order.table else None,
        user_id=order.user_id,
        status=order.status,
        total_cents=order.total_cents,
        paid_cents=sum(p.amount_cents for p in completed),
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            OrderItemOutput(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product.name if item.product else None,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                subtotal_cents=item.subtotal_cents,
                notes=item.notes,
            )
            for item in order.items
        ],
        payments=[PaymentOutput.model_validate(p) for p in order.payments],
    )


def order_payload(order: Order) -> dict[str, Any]:
    """JSON-ready order for broadcasts (camelCase keys)."""
    payload = jsonable_encoder(order_output(order))
    payload["table"] = {"id": order.table_id, "number": order.table.number if order.table else None}
    return payload


@dataclass
class OrderChange:
    """What a write did, for the post-commit broadcasts."""

    order: Order
    previous_status: str | None = None
    table_status: str | None = None  # set when the table status changed
    low_stock: list[dict[str, Any]] = field(default_factory=list)


class OrderService:
    """Domain service for orders."""

    def __init__(self, db: Session):
        self._db = db
        self._stock = StockService(db)

    # =========================================================================
    # Reads
    # =========================================================================

    def _query(self):
        return select(Order).options(
            selectinload(Order.table),
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.payments),
        )

    def get_order(self, order_id: int, for_update: bool = False) -> Order:
        stmt = self._query().where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = self._db.scalar(stmt)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(
        self,
        pagination: Pagination,
        status: str | None = None,
        table_id: int | None = None,
    ) -> tuple[list[Order], int]:
        stmt = self._query()
        if status:
            stmt = stmt.where(Order.status == status)
        if table_id is not None:
            stmt = stmt.where(Order.table_id == table_id)
        return pagination.apply(self._db, stmt.order_by(Order.created_at.desc(), Order.id.desc()))

    def kitchen_orders(self) -> list[Order]:
        """Orders the kitchen is working on, oldest first."""
        stmt = (
            self._query()
            .where(Order.status.in_(OrderStatus.KITCHEN_VISIBLE))
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
        return list(self._db.scalars(stmt))

    def table_orders(self, table_id: int, status: str | None = None) -> list[Order]:
        if self._db.get(Table, table_id) is None:
            raise TableNotFoundError(table_id)
        stmt = self._query().where(Order.table_id == table_id)
        if status:
            stmt = stmt.where(Order.status == status)
        return list(self._db.scalars(stmt.order_by(Order.created_at.desc(), Order.id.desc())))

    # =========================================================================
    # Create
    # =========================================================================

    def create_order(
        self,
        table_id: int,
        items: list[OrderItemInput],
        notes: str | None = None,
        user_id: int | None = None,
    ) -> OrderChange:
        """
        Create a PENDING order with prices captured from the products.

        Raises:
            TableNotFoundError: Unknown or deleted table.
            ValidationError: No items, or a product is missing or not orderable.
        """
        if not items:
            raise ValidationError("Order must have at least one item")

        table = self._db.scalar(
            select(Table).where(Table.id == table_id, Table.is_active.is_(True)).with_for_update()
        )
        if table is None:
            raise TableNotFoundError(table_id)

        product_ids = {item.product_id for item in items}
        products = {
            p.id: p for p in self._db.scalars(select(Product).where(Product.id.in_(list(product_ids))))
        }
        unavailable = sorted(pid for pid in product_ids if pid not in products or not products[pid].orderable)
        if unavailable:
            raise ValidationError(
                "Some products are not available",
                data={"productIds": unavailable},
            )

        order = Order(table_id=table.id, user_id=user_id, status=OrderStatus.PENDING, notes=notes)
        for item in items:
            order.items.append(
                OrderItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price_cents=products[item.product_id].price_cents,
                    notes=item.notes,
                )
            )
        order.total_cents = sum(line.subtotal_cents for line in order.items)
        self._db.add(order)

        change = OrderChange(order=order)
        if table.status == TableStatus.AVAILABLE:
            table.status = TableStatus.OCCUPIED
            change.table_status = TableStatus.OCCUPIED

        self._db.flush()
        logger.info(
            "Order created",
            order_id=order.id,
            table_id=table.id,
            items=len(order.items),
            total_cents=order.total_cents,
        )
        return change

    # =========================================================================
    # Status
    # =========================================================================

    def update_status(
        self,
        order_id: int,
        new_status: str,
        notes: str | None = None,
        user_id: int | None = None,
    ) -> OrderChange:
        """
        Move an order through the state machine.

        CONFIRMED deducts recipe stock. DELIVERED and CANCELLED release the
        table when no other active order is left on it.

        Raises:
            OrderNotFoundError: Unknown order.
            InvalidTransitionError: Transition not allowed.
            InsufficientStockError: Confirming would take stock below zero.
        """
        order = self.get_order(order_id, for_update=True)
        previous = order.status
        validate_transition(previous, new_status)

        change = OrderChange(order=order, previous_status=previous)

        if new_status == OrderStatus.CONFIRMED:
            deduction = self._stock.deduct_for_order(order, user_id)
            change.low_stock = deduction.alerts

        order.status = new_status
        if notes is not None:
            order.notes = notes

        if new_status in OrderStatus.TERMINAL:
            change.table_status = self._release_table(order)

        self._db.flush()
        logger.info(
            "Order status changed",
            order_id=order.id,
            from_status=previous,
            to_status=new_status,
            table_released=change.table_status is not None,
        )
        return change

    def cancel_order(self, order_id: int, user_id: int | None = None) -> OrderChange:
        """Only PENDING and CONFIRMED orders can be cancelled."""
        return self.update_status(order_id, OrderStatus.CANCELLED, user_id=user_id)

    def _release_table(self, order: Order) -> str | None:
        """
        Set the table AVAILABLE when the order was its last active one.

        Any non-AVAILABLE status is released, RESERVED included. Returns
        the new status only when it actually changed.
        """
        others = self._db.scalar(
            select(func.count(Order.id)).where(
                Order.table_id == order.table_id,
                Order.id != order.id,
                Order.status.in_(OrderStatus.ACTIVE),
            )
        )
        if others:
            return None

        table = self._db.scalar(select(Table).where(Table.id == order.table_id).with_for_update())
        if table is None or table.status == TableStatus.AVAILABLE:
            return None
        table.status = TableStatus.AVAILABLE
        return TableStatus.AVAILABLE

    # =========================================================================
    # Payments
    # =========================================================================

    def add_payment(self, order_id: int, amount_cents: int, method: str) -> Payment:
        """
        Register a completed payment.

        Raises:
            ConflictError: Order cancelled, or the amount exceeds the balance.
        """
        order = self.get_order(order_id, for_update=True)
        if order.status == OrderStatus.CANCELLED:
            raise ConflictError("Cannot add a payment to a cancelled order")

        paid = sum(p.amount_cents for p in order.payments if p.status == PaymentStatus.COMPLETED)
        balance = order.total_cents - paid
        if amount_cents > balance:
            raise ConflictError(
                "Payment exceeds the order balance",
                data={"balanceCents": balance, "amountCents": amount_cents},
            )

        payment = Payment(
            order_id=order.id,
            amount_cents=amount_cents,
            method=method,
            status=PaymentStatus.COMPLETED,
        )
        order.payments.append(payment)
        self._db.flush()
        logger.info("Payment added", order_id=order.id, amount_cents=amount_cents, method=method)
        return payment

