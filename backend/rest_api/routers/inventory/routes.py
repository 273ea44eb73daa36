"""
Inventory endpoints.

Writes are blocked while the day is closed, except for ADMIN.
Movements that raise a stock alert are broadcast after commit.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from rest_api.core.dependencies import get_broadcaster, require_day_open
from rest_api.models import Ingredient, StockAlert, StockMovement
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import RecipeService, StockService, recipe_output
from shared.config.constants import KITCHEN_ACCESS_ROLES, MANAGEMENT_ROLES, DayCloseCategory
from shared.infrastructure.db import get_db, safe_commit
from shared.security.auth import ctx_user_id, current_user_context, require_roles
from shared.utils import response
from shared.utils.schemas import (
    IngredientCreate,
    IngredientOutput,
    IngredientUpdate,
    RecipeCreate,
    RecipeIngredientInput,
    RecipeIngredientUpdate,
    RecipeUpdate,
    StockAlertCreate,
    StockAlertOutput,
    StockMovementCreate,
    StockMovementOutput,
)


router = APIRouter(prefix="/api/inventory", tags=["inventory"])

inventory_open = [Depends(require_day_open(DayCloseCategory.INVENTORY))]


def ingredient_output(ingredient: Ingredient) -> IngredientOutput:
    return IngredientOutput.model_validate(ingredient)


def movement_output(movement: StockMovement) -> StockMovementOutput:
    output = StockMovementOutput.model_validate(movement)
    output.ingredient_name = movement.ingredient.name if movement.ingredient else None
    return output


def alert_output(alert: StockAlert) -> StockAlertOutput:
    output = StockAlertOutput.model_validate(alert)
    output.ingredient_name = alert.ingredient.name if alert.ingredient else None
    return output


@router.get("/stats")
def inventory_stats(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    return response.ok(StockService(db).stats())


# =============================================================================
# Ingredients
# =============================================================================


@router.get("/ingredients")
def list_ingredients(
    search: str | None = None,
    low_stock: bool = Query(default=False, alias="lowStock"),
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    items, total = StockService(db).list_ingredients(pagination, search=search, low_stock=low_stock)
    return response.paginated([ingredient_output(i) for i in items], **pagination.to_dict(total))


@router.get("/ingredients/{ingredient_id}")
def get_ingredient(ingredient_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    return response.ok(ingredient_output(StockService(db).get_ingredient(ingredient_id)))


@router.post("/ingredients", status_code=status.HTTP_201_CREATED, dependencies=inventory_open)
def create_ingredient(
    body: IngredientCreate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    ingredient = StockService(db).create_ingredient(body)
    safe_commit(db)
    return response.created(ingredient_output(ingredient), "Ingredient created successfully")


@router.put("/ingredients/{ingredient_id}", dependencies=inventory_open)
def update_ingredient(
    ingredient_id: int,
    body: IngredientUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    ingredient = StockService(db).update_ingredient(ingredient_id, body)
    safe_commit(db)
    return response.ok(ingredient_output(ingredient), "Ingredient updated successfully")


@router.delete("/ingredients/{ingredient_id}", dependencies=inventory_open)
def delete_ingredient(ingredient_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    StockService(db).delete_ingredient(ingredient_id)
    safe_commit(db)
    return response.ok(None, "Ingredient deleted successfully")


# =============================================================================
# Recipes
# =============================================================================


@router.get("/recipes")
def list_recipes(
    product_id: int | None = Query(default=None, alias="productId"),
    search: str | None = None,
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    recipes, total = RecipeService(db).list_recipes(pagination, product_id=product_id, search=search)
    return response.paginated([recipe_output(r) for r in recipes], **pagination.to_dict(total))


@router.get("/recipes/{recipe_id}")
def get_recipe(recipe_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    return response.ok(recipe_output(RecipeService(db).get_recipe(recipe_id)))


def _commit_recipe(db: Session, service: RecipeService, recipe_id: int) -> dict:
    safe_commit(db)
    return recipe_output(service.get_recipe(recipe_id)).model_dump(by_alias=True)


@router.post("/recipes", status_code=status.HTTP_201_CREATED, dependencies=inventory_open)
def create_recipe(body: RecipeCreate, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = RecipeService(db)
    recipe = service.create_recipe(body)
    return response.created(_commit_recipe(db, service, recipe.id), "Recipe created successfully")


@router.put("/recipes/{recipe_id}", dependencies=inventory_open)
def update_recipe(
    recipe_id: int,
    body: RecipeUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = RecipeService(db)
    service.update_recipe(recipe_id, body)
    return response.ok(_commit_recipe(db, service, recipe_id), "Recipe updated successfully")


@router.delete("/recipes/{recipe_id}", dependencies=inventory_open)
def delete_recipe(recipe_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    RecipeService(db).delete_recipe(recipe_id)
    safe_commit(db)
    return response.ok(None, "Recipe deleted successfully")


@router.post("/recipes/{recipe_id}/ingredients", status_code=status.HTTP_201_CREATED, dependencies=inventory_open)
def add_recipe_ingredient(
    recipe_id: int,
    body: RecipeIngredientInput,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = RecipeService(db)
    service.add_ingredient(recipe_id, body)
    return response.created(_commit_recipe(db, service, recipe_id), "Ingredient added to recipe")


@router.put("/recipes/{recipe_id}/ingredients/{ingredient_id}", dependencies=inventory_open)
def update_recipe_ingredient(
    recipe_id: int,
    ingredient_id: int,
    body: RecipeIngredientUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = RecipeService(db)
    service.update_ingredient(recipe_id, ingredient_id, body)
    return response.ok(_commit_recipe(db, service, recipe_id), "Recipe ingredient updated")


@router.delete("/recipes/{recipe_id}/ingredients/{ingredient_id}", dependencies=inventory_open)
def remove_recipe_ingredient(
    recipe_id: int,
    ingredient_id: int,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = RecipeService(db)
    service.remove_ingredient(recipe_id, ingredient_id)
    return response.ok(_commit_recipe(db, service, recipe_id), "Ingredient removed from recipe")


# =============================================================================
# Stock
# =============================================================================


@router.get("/stock/movements")
def list_movements(
    ingredient_id: int | None = Query(default=None, alias="ingredientId"),
    movement_type: str | None = Query(default=None, alias="type"),
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    movements, total = StockService(db).list_movements(pagination, ingredient_id=ingredient_id, movement_type=movement_type)
    return response.paginated([movement_output(m) for m in movements], **pagination.to_dict(total))


@router.post("/stock/movements", status_code=status.HTTP_201_CREATED, dependencies=inventory_open)
async def create_movement(
    body: StockMovementCreate,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    change = StockService(db).apply_movement(
        body.ingredient_id,
        body.type,
        body.quantity,
        reason=body.reason,
        reference=body.reference,
        user_id=ctx_user_id(ctx),
    )
    low_stock = change.low_stock_payload()
    safe_commit(db)
    data = {
        "movement": movement_output(change.movement),
        "ingredient": ingredient_output(change.ingredient),
        "alert": alert_output(change.alert) if change.alert else None,
    }

    if low_stock is not None:
        await get_broadcaster(request).notify_low_stock(low_stock)
    return response.created(data, "Stock movement recorded")


@router.get("/stock/alerts")
def list_alerts(
    alert_type: str | None = Query(default=None, alias="type"),
    is_read: bool | None = Query(default=None, alias="isRead"),
    ingredient_id: int | None = Query(default=None, alias="ingredientId"),
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    alerts, total = StockService(db).list_alerts(
        pagination, alert_type=alert_type, is_read=is_read, ingredient_id=ingredient_id
    )
    return response.paginated([alert_output(a) for a in alerts], **pagination.to_dict(total))


@router.post("/stock/alerts", status_code=status.HTTP_201_CREATED, dependencies=inventory_open)
def create_alert(body: StockAlertCreate, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    alert = StockService(db).create_alert(body.ingredient_id, body.type, body.message)
    safe_commit(db)
    return response.created(alert_output(alert), "Stock alert created")


@router.patch("/stock/alerts/read-all")
def mark_all_alerts_read(
    ingredient_id: int | None = Query(default=None, alias="ingredientId"),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    count = StockService(db).mark_all_alerts_read(ingredient_id)
    safe_commit(db)
    return response.ok({"updated": count}, f"{count} alerts marked as read")


@router.patch("/stock/alerts/{alert_id}/read")
def mark_alert_read(alert_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    alert = StockService(db).mark_alert_read(alert_id)
    safe_commit(db)
    return response.ok(alert_output(alert), "Alert marked as read")


@router.get("/stock/critical")
def critical_stock(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    critical = StockService(db).critical_stock()
    return response.ok(
        {
            "outOfStock": [ingredient_output(i) for i in critical["outOfStock"]],
            "lowStock": [ingredient_output(i) for i in critical["lowStock"]],
            "totalCritical": critical["totalCritical"],
        }
    )


@router.post("/stock/process-order/{order_id}", dependencies=inventory_open)
async def process_order(
    order_id: int,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    """Deduct the recipe ingredients of a CONFIRMED order that was not deducted yet."""
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    deduction = StockService(db).process_order(order_id, ctx_user_id(ctx))
    alerts = deduction.alerts
    data = {
        "orderId": order_id,
        "movements": [movement_output(c.movement) for c in deduction.changes],
    }
    safe_commit(db)

    broadcaster = get_broadcaster(request)
    for item in alerts:
        await broadcaster.notify_low_stock(item)
    return response.ok(data, "Order ingredients processed")
