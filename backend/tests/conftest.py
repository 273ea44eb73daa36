"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are read at import time: configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EVENT_TRANSPORT"] = "local"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import (
    Base, Category, Ingredient, Product, Recipe, RecipeIngredient, Table, User,
)
from shared.config.constants import Roles
from shared.infrastructure.db import get_db
from shared.security.password import hash_password


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "testpass123"


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Users and auth
# =============================================================================


def make_user(db_session, name: str, role: str) -> User:
    user = User(
        name=name,
        email=f"{name}@test.com",
        password=hash_password(TEST_PASSWORD),
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def login(client, username: str, password: str = TEST_PASSWORD) -> dict:
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, "admin", Roles.ADMIN)


@pytest.fixture
def manager_user(db_session):
    return make_user(db_session, "manager", Roles.MANAGER)


@pytest.fixture
def waiter_user(db_session):
    return make_user(db_session, "waiter", Roles.WAITER)


@pytest.fixture
def kitchen_user(db_session):
    return make_user(db_session, "kitchen", Roles.KITCHEN)


@pytest.fixture
def admin_headers(client, admin_user):
    return login(client, "admin")


@pytest.fixture
def manager_headers(client, manager_user):
    return login(client, "manager")


@pytest.fixture
def waiter_headers(client, waiter_user):
    return login(client, "waiter")


@pytest.fixture
def kitchen_headers(client, kitchen_user):
    return login(client, "kitchen")


# =============================================================================
# Domain data
# =============================================================================


@pytest.fixture
def seed_table(db_session):
    table = Table(number=1, capacity=4, status="AVAILABLE")
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def seed_category(db_session):
    category = Category(name="Mains", description="Main dishes")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def seed_product(db_session, seed_category):
    product = Product(name="Burger", price_cents=8900, category_id=seed_category.id)
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product


@pytest.fixture
def seed_ingredient(db_session):
    ingredient = Ingredient(
        name="Beef patty",
        unit="UNIT",
        current_stock=10,
        min_stock=3,
        unit_cost_cents=1200,
    )
    db_session.add(ingredient)
    db_session.commit()
    db_session.refresh(ingredient)
    return ingredient


@pytest.fixture
def seed_recipe(db_session, seed_product, seed_ingredient):
    """Burger: one patty per portion."""
    recipe = Recipe(product_id=seed_product.id, name="Burger recipe")
    recipe.ingredients.append(
        RecipeIngredient(ingredient_id=seed_ingredient.id, quantity=1, unit="UNIT")
    )
    db_session.add(recipe)
    db_session.commit()
    db_session.refresh(recipe)
    return recipe


@pytest.fixture
def create_order(client, waiter_headers, seed_table, seed_product):
    """Factory posting an order for the seeded table and product."""
    def _create(quantity: int = 1, headers=None):
        response = client.post(
            "/api/orders",
            json={
                "tableId": seed_table.id,
                "items": [{"productId": seed_product.id, "quantity": quantity}],
            },
            headers=headers or waiter_headers,
        )
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _create
