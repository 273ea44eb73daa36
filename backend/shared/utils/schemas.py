"""
Shared Pydantic schemas used across the application.

JSON bodies use camelCase keys; request models also accept snake_case.
Money is always in integer cents.
"""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["ADMIN", "MANAGER", "WAITER", "KITCHEN"]
TableStatus = Literal["AVAILABLE", "OCCUPIED", "RESERVED", "OUT_OF_SERVICE"]
OrderStatus = Literal["PENDING", "CONFIRMED", "PREPARING", "READY", "DELIVERED", "CANCELLED"]
PaymentMethod = Literal["CASH", "CARD", "WEBPAY"]
PaymentStatus = Literal["PENDING", "COMPLETED", "FAILED", "REFUNDED"]
IngredientUnit = Literal["UNIT", "KG", "LITER", "PIECE"]
MovementType = Literal["IN", "OUT", "ADJUSTMENT", "WASTE"]
AlertType = Literal["LOW_STOCK", "OUT_OF_STOCK", "EXPIRED"]


class ApiModel(BaseModel):
    """Base for every API schema: camelCase aliases, ORM attribute loading."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(ApiModel):
    """Login with the user name and password."""

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class ValidateTokenRequest(ApiModel):
    token: str = Field(min_length=1)


class UserOutput(ApiModel):
    id: int
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime | None = None


class LoginResponse(ApiModel):
    user: UserOutput
    token: str
    redirect_path: str
    expires_in: int  # seconds


# =============================================================================
# User Schemas
# =============================================================================


class UserCreate(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: Role = "WAITER"


class UserUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None
    role: Role | None = None


class UserStatusUpdate(ApiModel):
    is_active: bool


# =============================================================================
# Table Schemas
# =============================================================================


class TableCreate(ApiModel):
    number: int = Field(gt=0)
    capacity: int = Field(default=4, gt=0, le=50)
    status: TableStatus = "AVAILABLE"


class TableUpdate(ApiModel):
    number: int | None = Field(default=None, gt=0)
    capacity: int | None = Field(default=None, gt=0, le=50)
    status: TableStatus | None = None


class TableStatusUpdate(ApiModel):
    status: TableStatus


class TableOutput(ApiModel):
    id: int
    number: int
    capacity: int
    status: TableStatus
    qr_payload: str | None = None
    is_active: bool = True


# =============================================================================
# Catalog Schemas
# =============================================================================


class CategoryCreate(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class CategoryUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class CategoryOutput(ApiModel):
    id: int
    name: str
    description: str | None = None
    is_active: bool = True
    product_count: int = 0


class ProductCreate(ApiModel):
    name: str = Field(min_length=2, max_length=150)
    description: str | None = Field(default=None, max_length=1000)
    price_cents: int = Field(gt=0)
    image_url: str | None = Field(default=None, max_length=500)
    category_id: int
    is_available: bool = True


class ProductUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=150)
    description: str | None = Field(default=None, max_length=1000)
    price_cents: int | None = Field(default=None, gt=0)
    image_url: str | None = Field(default=None, max_length=500)
    category_id: int | None = None
    is_available: bool | None = None


class ProductAvailabilityUpdate(ApiModel):
    is_available: bool


class ProductOutput(ApiModel):
    id: int
    name: str
    description: str | None = None
    price_cents: int
    image_url: str | None = None
    category_id: int
    category_name: str | None = None
    is_available: bool
    is_active: bool = True


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(ApiModel):
    product_id: int
    quantity: int = Field(ge=1, le=99)
    notes: str | None = Field(default=None, max_length=500)


class OrderCreate(ApiModel):
    table_id: int
    items: list[OrderItemInput] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=500)


class OrderStatusUpdate(ApiModel):
    status: OrderStatus
    notes: str | None = Field(default=None, max_length=500)
    estimated_time: int | None = Field(default=None, ge=0, le=600)  # minutes


class PaymentCreate(ApiModel):
    amount_cents: int = Field(gt=0)
    method: PaymentMethod


class OrderItemOutput(ApiModel):
    id: int
    product_id: int
    product_name: str | None = None
    quantity: int
    unit_price_cents: int
    subtotal_cents: int
    notes: str | None = None


class PaymentOutput(ApiModel):
    id: int
    order_id: int
    amount_cents: int
    method: PaymentMethod
    status: PaymentStatus
    created_at: datetime


class OrderOutput(ApiModel):
    id: int
    table_id: int
    table_number: int | None = None
    user_id: int | None = None
    status: OrderStatus
    total_cents: int
    paid_cents: int = 0
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    items: list[OrderItemOutput] = []
    payments: list[PaymentOutput] = []


# =============================================================================
# Inventory Schemas
# =============================================================================


class IngredientCreate(ApiModel):
    name: str = Field(min_length=2, max_length=150)
    description: str | None = Field(default=None, max_length=500)
    unit: IngredientUnit
    current_stock: float = Field(default=0.0, ge=0)
    min_stock: float | None = Field(default=None, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    unit_cost_cents: int = Field(default=0, ge=0)
    supplier: str | None = Field(default=None, max_length=150)


class IngredientUpdate(ApiModel):
    """Stock is not editable here; use a stock movement."""

    name: str | None = Field(default=None, min_length=2, max_length=150)
    description: str | None = Field(default=None, max_length=500)
    unit: IngredientUnit | None = None
    min_stock: float | None = Field(default=None, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    unit_cost_cents: int | None = Field(default=None, ge=0)
    supplier: str | None = Field(default=None, max_length=150)


class IngredientOutput(ApiModel):
    id: int
    name: str
    description: str | None = None
    unit: IngredientUnit
    current_stock: float
    min_stock: float
    max_stock: float | None = None
    unit_cost_cents: int
    supplier: str | None = None
    stock_status: Literal["OUT", "LOW", "OK"]
    stock_value_cents: int
    is_active: bool = True


class RecipeIngredientInput(ApiModel):
    ingredient_id: int
    quantity: float = Field(gt=0)
    unit: IngredientUnit | None = None  # defaults to the ingredient unit
    notes: str | None = Field(default=None, max_length=300)


class RecipeIngredientUpdate(ApiModel):
    quantity: float = Field(gt=0)
    unit: IngredientUnit | None = None
    notes: str | None = Field(default=None, max_length=300)


class RecipeCreate(ApiModel):
    product_id: int
    name: str = Field(min_length=2, max_length=150)
    description: str | None = Field(default=None, max_length=1000)
    instructions: str | None = None
    portions: int = Field(default=1, ge=1)
    prep_minutes: int | None = Field(default=None, ge=0)
    ingredients: list[RecipeIngredientInput] = []


class RecipeUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=150)
    description: str | None = Field(default=None, max_length=1000)
    instructions: str | None = None
    portions: int | None = Field(default=None, ge=1)
    prep_minutes: int | None = Field(default=None, ge=0)


class RecipeIngredientOutput(ApiModel):
    id: int
    ingredient_id: int
    ingredient_name: str
    quantity: float
    unit: str
    notes: str | None = None


class RecipeOutput(ApiModel):
    id: int
    product_id: int
    product_name: str | None = None
    name: str
    description: str | None = None
    instructions: str | None = None
    portions: int
    prep_minutes: int | None = None
    ingredients: list[RecipeIngredientOutput] = []
    total_cost_cents: int
    max_portions: int
    can_prepare: bool


class StockMovementCreate(ApiModel):
    ingredient_id: int
    type: MovementType
    quantity: float = Field(ge=0)
    reason: str | None = Field(default=None, max_length=300)
    reference: str | None = Field(default=None, max_length=100)


class StockMovementOutput(ApiModel):
    id: int
    ingredient_id: int
    ingredient_name: str | None = None
    type: MovementType
    quantity: float
    previous_stock: float
    new_stock: float
    reason: str | None = None
    reference: str | None = None
    user_id: int | None = None
    created_at: datetime


class StockAlertCreate(ApiModel):
    ingredient_id: int
    type: AlertType
    message: str = Field(min_length=1, max_length=500)


class StockAlertOutput(ApiModel):
    id: int
    ingredient_id: int
    ingredient_name: str | None = None
    type: AlertType
    message: str
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


# =============================================================================
# Daily Close Schemas
# =============================================================================


class DailyCloseRequest(ApiModel):
    notes: str | None = Field(default=None, max_length=1000)


class ReopenRequest(ApiModel):
    reason: str = Field(min_length=1, max_length=500)


class DailyCloseOutput(ApiModel):
    id: int
    business_date: date
    closed_at: datetime
    closed_by_id: int | None = None
    closed_by_name: str | None = None
    total_sales_cents: int
    total_orders: int
    top_products: list[dict[str, Any]] = []
    notes: str | None = None
    reopened_at: datetime | None = None
    reopened_by_id: int | None = None
    reopen_reason: str | None = None


# =============================================================================
# Socket Schemas
# =============================================================================


class EmergencyNotifyRequest(ApiModel):
    message: str = Field(min_length=1, max_length=500)
    data: dict[str, Any] | None = None


class TableNotifyRequest(ApiModel):
    message: str = Field(min_length=1, max_length=500)
    data: dict[str, Any] | None = None


class LowStockNotifyRequest(ApiModel):
    product_name: str = Field(min_length=1, max_length=150)
    stock: float
    unit: str | None = None
    alert_type: Literal["LOW_STOCK", "OUT_OF_STOCK"] = "LOW_STOCK"
