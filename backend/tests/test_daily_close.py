"""
Tests for closing and reopening the business day.
"""

from sqlalchemy.exc import OperationalError

from rest_api.core import dependencies
from rest_api.models import Table
from shared.config.settings import settings


def _close(client, headers, **body):
    return client.post("/api/daily-close", json=body or None, headers=headers)


def _deliver(client, order_id, headers):
    for status in ("CONFIRMED", "PREPARING", "READY", "DELIVERED"):
        response = client.put(f"/api/orders/{order_id}/status", json={"status": status}, headers=headers)
        assert response.status_code == 200, response.json()


class TestCloseStatus:
    def test_open_day(self, client, waiter_headers):
        data = client.get("/api/daily-close/status", headers=waiter_headers).json()["data"]
        assert data["isClosed"] is False
        assert data["canClose"] is True
        assert data["totalSales"] == 0

    def test_pre_validation_requires_management(self, client, waiter_headers):
        assert client.get("/api/daily-close/pre-validation", headers=waiter_headers).status_code == 403

    def test_unfinished_order_blocks_close(self, client, create_order, manager_headers):
        create_order()

        check = client.get("/api/daily-close/pre-validation", headers=manager_headers).json()["data"]
        assert check["canClose"] is False
        assert check["issues"] == ["1 orders must be completed before closing"]

        response = _close(client, manager_headers)
        assert response.status_code == 400
        assert response.json()["data"] == {"issues": check["issues"]}

    def test_low_stock_is_only_a_warning(self, client, db_session, manager_headers, seed_ingredient):
        seed_ingredient.current_stock = 1
        db_session.commit()

        check = client.get("/api/daily-close/pre-validation", headers=manager_headers).json()["data"]
        assert check["canClose"] is True
        assert check["warnings"] == ["1 ingredients are low on stock"]


class TestExecuteClose:
    """Test closing the day and the write lock it sets."""

    def test_close_stores_day_totals(self, client, create_order, manager_headers, manager_user):
        order = create_order(quantity=2)
        _deliver(client, order["id"], manager_headers)

        response = _close(client, manager_headers, notes="Quiet night")
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["totalSalesCents"] == 17800
        assert data["totalOrders"] == 1
        assert data["topProducts"] == [{"name": "Burger", "quantity": 2}]
        assert data["closedById"] == manager_user.id
        assert data["closedByName"] == "manager"
        assert data["notes"] == "Quiet night"

        status = client.get("/api/daily-close/status", headers=manager_headers).json()["data"]
        assert status["isClosed"] is True
        assert status["totalSales"] == 17800

    def test_second_close_is_rejected(self, client, manager_headers):
        assert _close(client, manager_headers).status_code == 201
        assert _close(client, manager_headers).status_code == 400

    def test_closed_day_locks_orders(self, client, manager_headers, waiter_headers, seed_table, seed_product):
        _close(client, manager_headers)

        response = client.post(
            "/api/orders",
            json={"tableId": seed_table.id, "items": [{"productId": seed_product.id, "quantity": 1}]},
            headers=waiter_headers,
        )
        assert response.status_code == 423
        assert "orders are not allowed" in response.json()["error"]

    def test_reads_stay_available(self, client, manager_headers, waiter_headers):
        _close(client, manager_headers)
        assert client.get("/api/orders", headers=waiter_headers).status_code == 200

    def test_admin_bypasses_inventory_lock_only(self, client, admin_headers, manager_headers, seed_ingredient):
        _close(client, manager_headers)
        body = {"ingredientId": seed_ingredient.id, "type": "IN", "quantity": 1}

        assert client.post("/api/inventory/stock/movements", json=body, headers=manager_headers).status_code == 423
        assert client.post("/api/inventory/stock/movements", json=body, headers=admin_headers).status_code == 201

    def test_admin_does_not_bypass_order_lock(self, client, admin_headers, manager_headers, seed_table, seed_product):
        _close(client, manager_headers)
        response = client.post(
            "/api/orders",
            json={"tableId": seed_table.id, "items": [{"productId": seed_product.id, "quantity": 1}]},
            headers=admin_headers,
        )
        assert response.status_code == 423

    def test_closed_day_locks_table_status(self, client, manager_headers, waiter_headers, seed_table):
        _close(client, manager_headers)
        response = client.patch(
            f"/api/tables/{seed_table.id}/status", json={"status": "RESERVED"}, headers=waiter_headers
        )
        assert response.status_code == 423
        assert "changes are not allowed" in response.json()["error"]

    def test_admin_does_not_bypass_general_lock(self, client, admin_headers, manager_headers, seed_category):
        _close(client, manager_headers)

        product = client.post(
            "/api/products",
            json={"name": "Salad", "priceCents": 4500, "categoryId": seed_category.id},
            headers=admin_headers,
        )
        assert product.status_code == 423

        user = client.post(
            "/api/users",
            json={"name": "New waiter", "email": "new@example.com", "password": "secret123"},
            headers=admin_headers,
        )
        assert user.status_code == 423

    def test_history(self, client, manager_headers):
        _close(client, manager_headers)
        body = client.get("/api/daily-close/history", headers=manager_headers).json()
        assert body["pagination"]["total"] == 1


class TestReopen:
    def test_admin_reopens(self, client, admin_headers, manager_headers, waiter_headers, seed_table, seed_product):
        _close(client, manager_headers)

        response = client.post("/api/daily-close/reopen", json={"reason": "Late table"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["reopenReason"] == "Late table"

        order = client.post(
            "/api/orders",
            json={"tableId": seed_table.id, "items": [{"productId": seed_product.id, "quantity": 1}]},
            headers=waiter_headers,
        )
        assert order.status_code == 201

    def test_manager_cannot_reopen(self, client, manager_headers):
        _close(client, manager_headers)
        response = client.post("/api/daily-close/reopen", json={"reason": "x"}, headers=manager_headers)
        assert response.status_code == 403

    def test_nothing_to_reopen(self, client, admin_headers):
        response = client.post("/api/daily-close/reopen", json={"reason": "x"}, headers=admin_headers)
        assert response.status_code == 404

    def test_reason_is_required(self, client, admin_headers):
        response = client.post("/api/daily-close/reopen", json={}, headers=admin_headers)
        assert response.status_code == 422


class TestCloseCheckFailure:
    """The lock check when the lookup itself fails."""

    def _failing_lookup(self, db, day=None):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def test_fail_open_allows_writes(self, client, monkeypatch, create_order):
        monkeypatch.setattr(dependencies, "is_day_closed", self._failing_lookup)
        monkeypatch.setattr(settings, "daily_close_fail_open", True)
        assert create_order()["status"] == "PENDING"

    def test_fail_closed_returns_503(self, client, monkeypatch, waiter_headers, seed_table, seed_product):
        monkeypatch.setattr(dependencies, "is_day_closed", self._failing_lookup)
        monkeypatch.setattr(settings, "daily_close_fail_open", False)

        response = client.post(
            "/api/orders",
            json={"tableId": seed_table.id, "items": [{"productId": seed_product.id, "quantity": 1}]},
            headers=waiter_headers,
        )
        assert response.status_code == 503

    def test_fail_open_leaves_session_usable(self, client, monkeypatch, db_session, create_order):
        def broken_lookup(db, day=None):
            db.add(Table(number=None))
            db.flush()

        monkeypatch.setattr(dependencies, "is_day_closed", broken_lookup)
        monkeypatch.setattr(settings, "daily_close_fail_open", True)

        order = create_order()
        assert order["status"] == "PENDING"
        assert db_session.query(Table).filter(Table.number.is_(None)).count() == 0
