"""
Tests for ingredients, recipes, stock movements and alerts.
"""

from rest_api.models import Order, OrderItem, Recipe, RecipeIngredient


def _movement(client, headers, ingredient_id, movement_type, quantity, **extra):
    return client.post(
        "/api/inventory/stock/movements",
        json={"ingredientId": ingredient_id, "type": movement_type, "quantity": quantity, **extra},
        headers=headers,
    )


class TestIngredients:
    """Test ingredient endpoints."""

    def test_create_ingredient(self, client, manager_headers):
        response = client.post(
            "/api/inventory/ingredients",
            json={"name": "Tomato", "unit": "KG", "currentStock": 5, "minStock": 1, "unitCostCents": 1500},
            headers=manager_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["stockStatus"] == "OK"
        assert data["stockValueCents"] == 7500

    def test_duplicate_name_conflicts(self, client, manager_headers, seed_ingredient):
        response = client.post(
            "/api/inventory/ingredients",
            json={"name": "beef patty", "unit": "UNIT"},
            headers=manager_headers,
        )
        assert response.status_code == 409

    def test_max_below_min_is_rejected(self, client, manager_headers):
        response = client.post(
            "/api/inventory/ingredients",
            json={"name": "Cheese", "unit": "KG", "minStock": 5, "maxStock": 2},
            headers=manager_headers,
        )
        assert response.status_code == 400

    def test_kitchen_reads_but_cannot_create(self, client, kitchen_headers, seed_ingredient):
        listed = client.get("/api/inventory/ingredients", headers=kitchen_headers).json()["data"]
        assert [i["name"] for i in listed] == ["Beef patty"]

        response = client.post(
            "/api/inventory/ingredients",
            json={"name": "Lettuce", "unit": "UNIT"},
            headers=kitchen_headers,
        )
        assert response.status_code == 403

    def test_low_stock_filter(self, client, db_session, kitchen_headers, seed_ingredient):
        assert client.get(
            "/api/inventory/ingredients", params={"lowStock": True}, headers=kitchen_headers
        ).json()["data"] == []

        seed_ingredient.current_stock = 2
        db_session.commit()
        low = client.get("/api/inventory/ingredients", params={"lowStock": True}, headers=kitchen_headers)
        assert [i["id"] for i in low.json()["data"]] == [seed_ingredient.id]

    def test_delete_ingredient_used_in_recipe_conflicts(self, client, manager_headers, seed_recipe, seed_ingredient):
        response = client.delete(f"/api/inventory/ingredients/{seed_ingredient.id}", headers=manager_headers)
        assert response.status_code == 409


class TestStockMovements:
    def test_in_movement(self, client, kitchen_headers, seed_ingredient):
        response = _movement(client, kitchen_headers, seed_ingredient.id, "IN", 5, reason="Delivery")
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["movement"]["previousStock"] == 10
        assert data["movement"]["newStock"] == 15
        assert data["movement"]["ingredientName"] == "Beef patty"
        assert data["ingredient"]["currentStock"] == 15
        assert data["alert"] is None

    def test_adjustment_sets_stock(self, client, kitchen_headers, seed_ingredient):
        data = _movement(client, kitchen_headers, seed_ingredient.id, "ADJUSTMENT", 4).json()["data"]
        assert data["ingredient"]["currentStock"] == 4

    def test_out_below_zero_conflicts(self, client, kitchen_headers, seed_ingredient):
        response = _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 11)
        assert response.status_code == 409

    def test_low_stock_raises_alert(self, client, kitchen_headers, seed_ingredient):
        data = _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 8).json()["data"]
        assert data["ingredient"]["stockStatus"] == "LOW"
        assert data["alert"]["type"] == "LOW_STOCK"
        assert data["alert"]["ingredientName"] == "Beef patty"

    def test_waste_to_zero_is_out_of_stock(self, client, kitchen_headers, seed_ingredient):
        data = _movement(client, kitchen_headers, seed_ingredient.id, "WASTE", 10).json()["data"]
        assert data["alert"]["type"] == "OUT_OF_STOCK"

    def test_low_stock_is_broadcast(self, client, kitchen_headers, seed_ingredient):
        token = kitchen_headers["Authorization"].split(" ", 1)[1]
        with client.websocket_connect(f"/ws?token={token}") as ws:
            ws.receive_json()
            _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 8)

            frame = ws.receive_json()
            assert frame["event"] == "low-stock"
            assert frame["payload"]["data"]["name"] == "Beef patty"
            assert frame["payload"]["data"]["alertType"] == "LOW_STOCK"

    def test_list_movements_filters(self, client, kitchen_headers, seed_ingredient):
        _movement(client, kitchen_headers, seed_ingredient.id, "IN", 1)
        _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 1)

        body = client.get(
            "/api/inventory/stock/movements", params={"type": "OUT"}, headers=kitchen_headers
        ).json()
        assert [m["type"] for m in body["data"]] == ["OUT"]
        assert body["pagination"]["total"] == 1


class TestAlerts:
    def test_mark_read(self, client, kitchen_headers, seed_ingredient):
        alert = _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 8).json()["data"]["alert"]

        response = client.patch(f"/api/inventory/stock/alerts/{alert['id']}/read", headers=kitchen_headers)
        assert response.status_code == 200
        assert response.json()["data"]["isRead"] is True

        unread = client.get("/api/inventory/stock/alerts", params={"isRead": False}, headers=kitchen_headers)
        assert unread.json()["data"] == []

    def test_mark_all_read(self, client, kitchen_headers, seed_ingredient):
        _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 8)
        _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 2)

        response = client.patch("/api/inventory/stock/alerts/read-all", headers=kitchen_headers)
        assert response.json()["data"] == {"updated": 2}

    def test_manual_alert(self, client, manager_headers, seed_ingredient):
        response = client.post(
            "/api/inventory/stock/alerts",
            json={"ingredientId": seed_ingredient.id, "type": "EXPIRED", "message": "Batch expired"},
            headers=manager_headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["type"] == "EXPIRED"

    def test_critical(self, client, kitchen_headers, seed_ingredient):
        _movement(client, kitchen_headers, seed_ingredient.id, "OUT", 8)
        data = client.get("/api/inventory/stock/critical", headers=kitchen_headers).json()["data"]
        assert data["outOfStock"] == []
        assert [i["name"] for i in data["lowStock"]] == ["Beef patty"]
        assert data["totalCritical"] == 1


class TestRecipes:
    def test_create_recipe(self, client, manager_headers, seed_product, seed_ingredient):
        response = client.post(
            "/api/inventory/recipes",
            json={
                "productId": seed_product.id,
                "name": "Classic burger",
                "ingredients": [{"ingredientId": seed_ingredient.id, "quantity": 2}],
            },
            headers=manager_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["productName"] == "Burger"
        assert data["ingredients"][0]["unit"] == "UNIT"
        assert data["totalCostCents"] == 2400
        assert data["maxPortions"] == 5
        assert data["canPrepare"] is True

    def test_second_recipe_for_product_conflicts(self, client, manager_headers, seed_recipe, seed_product):
        response = client.post(
            "/api/inventory/recipes",
            json={"productId": seed_product.id, "name": "Another"},
            headers=manager_headers,
        )
        assert response.status_code == 409

    def test_recipe_lines(self, client, db_session, manager_headers, seed_recipe, seed_ingredient):
        url = f"/api/inventory/recipes/{seed_recipe.id}/ingredients"
        duplicate = client.post(url, json={"ingredientId": seed_ingredient.id, "quantity": 1}, headers=manager_headers)
        assert duplicate.status_code == 409

        updated = client.put(f"{url}/{seed_ingredient.id}", json={"quantity": 3}, headers=manager_headers)
        assert updated.json()["data"]["ingredients"][0]["quantity"] == 3

        removed = client.delete(f"{url}/{seed_ingredient.id}", headers=manager_headers)
        assert removed.json()["data"]["ingredients"] == []


class TestProcessOrder:
    """Manual deduction for orders confirmed before their recipe existed."""

    def _confirmed_order(self, db_session, seed_table, seed_product, quantity=2):
        order = Order(table_id=seed_table.id, status="CONFIRMED", total_cents=seed_product.price_cents * quantity)
        order.items.append(
            OrderItem(product_id=seed_product.id, quantity=quantity, unit_price_cents=seed_product.price_cents)
        )
        db_session.add(order)
        db_session.commit()
        return order

    def test_process_order(self, client, db_session, kitchen_headers, seed_table, seed_recipe, seed_product, seed_ingredient):
        order = self._confirmed_order(db_session, seed_table, seed_product)

        response = client.post(f"/api/inventory/stock/process-order/{order.id}", headers=kitchen_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["orderId"] == order.id
        assert [m["quantity"] for m in data["movements"]] == [2]

        db_session.refresh(seed_ingredient)
        assert seed_ingredient.current_stock == 8

    def test_process_order_twice_conflicts(self, client, db_session, kitchen_headers, seed_table, seed_recipe, seed_product):
        order = self._confirmed_order(db_session, seed_table, seed_product)
        url = f"/api/inventory/stock/process-order/{order.id}"

        assert client.post(url, headers=kitchen_headers).status_code == 200
        assert client.post(url, headers=kitchen_headers).status_code == 409

    def test_pending_order_is_rejected(self, client, db_session, kitchen_headers, seed_table, seed_product):
        order = Order(table_id=seed_table.id, status="PENDING", total_cents=0)
        db_session.add(order)
        db_session.commit()

        response = client.post(f"/api/inventory/stock/process-order/{order.id}", headers=kitchen_headers)
        assert response.status_code == 400

    def test_unknown_order(self, client, kitchen_headers):
        assert client.post("/api/inventory/stock/process-order/999", headers=kitchen_headers).status_code == 404


class TestInventoryStats:
    def test_stats(self, client, kitchen_headers, seed_recipe, seed_ingredient):
        data = client.get("/api/inventory/stats", headers=kitchen_headers).json()["data"]
        assert data["totalIngredients"] == 1
        assert data["totalValueCents"] == 12000
        assert data["totalRecipes"] == 1
        assert data["productsWithoutRecipe"] == 0
