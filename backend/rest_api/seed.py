"""
Seed data for development and testing.
Creates demo staff, tables, menu, ingredients and recipes.
Idempotent: nothing is inserted once users exist.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import (
    Category,
    Ingredient,
    Product,
    Recipe,
    RecipeIngredient,
    Table,
    User,
)
from rest_api.services.domain.table_service import table_qr_payload
from shared.config.constants import IngredientUnit, Roles
from shared.config.logging import get_logger
from shared.security.password import hash_password

logger = get_logger(__name__)

DEMO_PASSWORD = "password123"
TABLE_COUNT = 10

USERS = [
    {"name": "admin", "email": "admin@restaurant.local", "role": Roles.ADMIN},
    {"name": "manager", "email": "manager@restaurant.local", "role": Roles.MANAGER},
    {"name": "waiter", "email": "waiter@restaurant.local", "role": Roles.WAITER},
    {"name": "kitchen", "email": "kitchen@restaurant.local", "role": Roles.KITCHEN},
]

MENU = {
    "Starters": [
        ("Bruschetta", "Toasted bread with tomato and basil", 5500),
        ("Garlic Soup", "Traditional garlic and bread soup", 4800),
    ],
    "Mains": [
        ("Margherita Pizza", "Tomato, mozzarella and basil", 11900),
        ("Beef Burger", "Grilled beef, cheese and fries", 12900),
    ],
    "Desserts": [
        ("Tiramisu", "Coffee and mascarpone", 5900),
    ],
    "Drinks": [
        ("Lemonade", "Fresh lemonade 400ml", 2900),
        ("Sparkling Water", "500ml bottle", 1900),
    ],
}

# name, unit, stock, min_stock, unit cost
INGREDIENTS = [
    ("Tomato", IngredientUnit.KG, 20.0, 5.0, 1800),
    ("Mozzarella", IngredientUnit.KG, 10.0, 2.0, 7500),
    ("Flour", IngredientUnit.KG, 25.0, 5.0, 900),
    ("Beef", IngredientUnit.KG, 15.0, 3.0, 11000),
    ("Burger Bun", IngredientUnit.UNIT, 60.0, 12.0, 300),
    ("Bread", IngredientUnit.UNIT, 40.0, 10.0, 200),
    ("Lemon", IngredientUnit.UNIT, 50.0, 10.0, 150),
    ("Garlic", IngredientUnit.KG, 3.0, 0.5, 4000),
]

# product -> [(ingredient, quantity per portion)]
RECIPES = {
    "Margherita Pizza": [("Flour", 0.25), ("Tomato", 0.15), ("Mozzarella", 0.12)],
    "Beef Burger": [("Beef", 0.18), ("Burger Bun", 1)],
    "Bruschetta": [("Bread", 2), ("Tomato", 0.1)],
    "Garlic Soup": [("Garlic", 0.03), ("Bread", 1)],
    "Lemonade": [("Lemon", 2)],
}


def seed_users(db: Session) -> None:
    password = hash_password(DEMO_PASSWORD)
    for data in USERS:
        db.add(User(password=password, **data))


def seed_tables(db: Session) -> None:
    for number in range(1, TABLE_COUNT + 1):
        db.add(
            Table(
                number=number,
                capacity=2 if number <= 4 else 4,
                qr_payload=table_qr_payload(number),
            )
        )


def seed_menu(db: Session) -> dict[str, Product]:
    products: dict[str, Product] = {}
    for category_name, items in MENU.items():
        category = Category(name=category_name)
        db.add(category)
        for name, description, price_cents in items:
            product = Product(
                category=category,
                name=name,
                description=description,
                price_cents=price_cents,
            )
            db.add(product)
            products[name] = product
    return products


def seed_inventory(db: Session, products: dict[str, Product]) -> None:
    ingredients: dict[str, Ingredient] = {}
    for name, unit, stock, min_stock, cost in INGREDIENTS:
        ingredient = Ingredient(
            name=name,
            unit=unit,
            current_stock=stock,
            min_stock=min_stock,
            unit_cost_cents=cost,
        )
        db.add(ingredient)
        ingredients[name] = ingredient

    for product_name, lines in RECIPES.items():
        recipe = Recipe(product=products[product_name], name=product_name)
        for ingredient_name, quantity in lines:
            ingredient = ingredients[ingredient_name]
            recipe.ingredients.append(
                RecipeIngredient(ingredient=ingredient, quantity=quantity, unit=ingredient.unit)
            )
        db.add(recipe)


def seed(db: Session) -> bool:
    """Insert the demo data set when the database is empty. Returns False if skipped."""
    if db.scalar(select(User.id).limit(1)):
        logger.info("Database already seeded, skipping")
        return False

    seed_users(db)
    seed_tables(db)
    products = seed_menu(db)
    seed_inventory(db, products)
    db.commit()

    logger.info(
        "Database seeded successfully",
        user_count=len(USERS),
        table_count=TABLE_COUNT,
        product_count=len(products),
        ingredient_count=len(INGREDIENTS),
        recipe_count=len(RECIPES),
    )
    return True
