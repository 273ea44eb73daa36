"""
Tests for the demo seed data.
"""

from sqlalchemy import func, select

from rest_api.models import Recipe, Table, User
from rest_api.seed import DEMO_PASSWORD, TABLE_COUNT, USERS, seed


def test_seed_creates_demo_data(db_session):
    assert seed(db_session) is True

    assert db_session.scalar(select(func.count(User.id))) == len(USERS)
    assert db_session.scalar(select(func.count(Table.id))) == TABLE_COUNT
    assert db_session.scalar(select(func.count(Recipe.id))) > 0


def test_seed_is_idempotent(db_session):
    seed(db_session)
    assert seed(db_session) is False
    assert db_session.scalar(select(func.count(User.id))) == len(USERS)


def test_seeded_users_can_login(client, db_session):
    seed(db_session)
    response = client.post("/api/auth/login", json={"username": "kitchen", "password": DEMO_PASSWORD})
    assert response.status_code == 200
    assert response.json()["data"]["redirectPath"] == "/kitchen"
