"""
Recipe Domain Service.

A recipe is the bill of materials of one product; stock deduction for
orders reads it through StockService.requirements_for_order().
"""

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from shared.config.logging import inventory_logger as logger
from shared.utils.exceptions import DuplicateEntityError, NotFoundError
from shared.utils.schemas import (
    RecipeCreate,
    RecipeIngredientInput,
    RecipeIngredientOutput,
    RecipeIngredientUpdate,
    RecipeOutput,
    RecipeUpdate,
)
from rest_api.models import Ingredient, Product, Recipe, RecipeIngredient
from rest_api.routers._common.pagination import Pagination


def recipe_output(recipe: Recipe) -> RecipeOutput:
    return RecipeOutput(
        id=recipe.id,
        product_id=recipe.product_id,
        product_name=recipe.product.name if recipe.product else None,
        name=recipe.name,
        description=recipe.description,
        instructions=recipe.instructions,
        portions=recipe.portions,
        prep_minutes=recipe.prep_minutes,
        ingredients=[
            RecipeIngredientOutput(
                id=line.id,
                ingredient_id=line.ingredient_id,
                ingredient_name=line.ingredient.name,
                quantity=line.quantity,
                unit=line.unit,
                notes=line.notes,
            )
            for line in recipe.ingredients
        ],
        total_cost_cents=recipe.total_cost_cents,
        max_portions=recipe.max_portions,
        can_prepare=recipe.can_prepare,
    )


class RecipeService:
    def __init__(self, db: Session):
        self._db = db

    def _base_query(self):
        return select(Recipe).where(Recipe.is_active.is_(True)).options(
            selectinload(Recipe.product),
            selectinload(Recipe.ingredients).selectinload(RecipeIngredient.ingredient),
        )

    def get_recipe(self, recipe_id: int) -> Recipe:
        recipe = self._db.scalar(self._base_query().where(Recipe.id == recipe_id))
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        return recipe

    def list_recipes(
        self,
        pagination: Pagination,
        product_id: int | None = None,
        search: str | None = None,
    ) -> tuple[list[Recipe], int]:
        stmt = self._base_query()
        if product_id is not None:
            stmt = stmt.where(Recipe.product_id == product_id)
        if search:
            stmt = stmt.where(Recipe.name.ilike(f"%{search}%"))
        return pagination.apply(self._db, stmt.order_by(Recipe.name))

    def _active_ingredient(self, ingredient_id: int) -> Ingredient:
        ingredient = self._db.get(Ingredient, ingredient_id)
        if ingredient is None or not ingredient.is_active:
            raise NotFoundError("Ingredient", ingredient_id)
        return ingredient

    def create_recipe(self, data: RecipeCreate) -> Recipe:
        """
        Raises:
            NotFoundError: Unknown product or ingredient.
            DuplicateEntityError: The product already has a recipe.
        """
        product = self._db.get(Product, data.product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product", data.product_id)

        existing = self._db.scalar(select(Recipe).where(Recipe.product_id == product.id))
        if existing is not None:
            if existing.is_active:
                raise DuplicateEntityError("Recipe", f"product {product.id}")
            # product_id is unique: a deleted recipe is replaced
            self._db.delete(existing)
            self._db.flush()

        recipe = Recipe(
            product_id=product.id,
            name=data.name,
            description=data.description,
            instructions=data.instructions,
            portions=data.portions,
            prep_minutes=data.prep_minutes,
        )
        seen: set[int] = set()
        for line in data.ingredients:
            if line.ingredient_id in seen:
                raise DuplicateEntityError("Recipe ingredient", str(line.ingredient_id))
            seen.add(line.ingredient_id)
            recipe.ingredients.append(self._build_line(line))

        self._db.add(recipe)
        self._db.flush()
        logger.info("Recipe created", recipe_id=recipe.id, product_id=product.id)
        return recipe

    def _build_line(self, line: RecipeIngredientInput) -> RecipeIngredient:
        ingredient = self._active_ingredient(line.ingredient_id)
        return RecipeIngredient(
            ingredient=ingredient,
            quantity=line.quantity,
            unit=line.unit or ingredient.unit,
            notes=line.notes,
        )

    def update_recipe(self, recipe_id: int, data: RecipeUpdate) -> Recipe:
        recipe = self.get_recipe(recipe_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(recipe, key, value)
        self._db.flush()
        return recipe

    def delete_recipe(self, recipe_id: int) -> Recipe:
        recipe = self.get_recipe(recipe_id)
        recipe.soft_delete()
        self._db.flush()
        return recipe

    def add_ingredient(self, recipe_id: int, line: RecipeIngredientInput) -> Recipe:
        recipe = self.get_recipe(recipe_id)
        if any(existing.ingredient_id == line.ingredient_id for existing in recipe.ingredients):
            raise DuplicateEntityError("Recipe ingredient", str(line.ingredient_id))
        recipe.ingredients.append(self._build_line(line))
        self._db.flush()
        return recipe

    def update_ingredient(self, recipe_id: int, ingredient_id: int, line: RecipeIngredientUpdate) -> Recipe:
        recipe = self.get_recipe(recipe_id)
        existing = self._find_line(recipe, ingredient_id)
        existing.quantity = line.quantity
        if line.unit is not None:
            existing.unit = line.unit
        existing.notes = line.notes
        self._db.flush()
        return recipe

    def remove_ingredient(self, recipe_id: int, ingredient_id: int) -> Recipe:
        recipe = self.get_recipe(recipe_id)
        recipe.ingredients.remove(self._find_line(recipe, ingredient_id))
        self._db.flush()
        return recipe

    @staticmethod
    def _find_line(recipe: Recipe, ingredient_id: int) -> RecipeIngredient:
        for line in recipe.ingredients:
            if line.ingredient_id == ingredient_id:
                return line
        raise NotFoundError("Recipe ingredient", ingredient_id)
