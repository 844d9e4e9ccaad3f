from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from cafe_pos.models import AuditLog, Category, InventoryLog, Order, OrderItem

from conftest import ADMIN_PASSWORD


async def place_order(client, *lines, **fields):
    payload = {"items": list(lines), "payment_method": "cash", **fields}
    resp = await client.post("/orders/", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def admin_void(reason="wrong order", password=ADMIN_PASSWORD):
    return {"void_reason": reason, "admin_username": "admin", "admin_password": password}


async def test_health(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["database"] == "ok"


class TestCreateOrder:
    async def test_created_order_is_returned_with_item_names(self, client, catalog, stock_of):
        body = await place_order(
            client,
            {"menu_item_id": catalog.latte_id, "quantity": 2},
            {"menu_item_id": catalog.croissant_id, "quantity": 1},
            customer_name="Maria",
        )

        assert Decimal(body["total_amount"]) == Decimal("360")
        assert body["status"] == "pending"
        assert body["is_voided"] is False
        assert body["customer_name"] == "Maria"
        assert [item["menu_item_name"] for item in body["items"]] == ["Latte", "Croissant"]
        assert await stock_of(catalog.latte_id) == 8
        assert await stock_of(catalog.croissant_id) == 4

        resp = await client.get(f"/orders/{body['id']}")
        assert resp.status_code == 200
        assert resp.json()["order_number"] == body["order_number"]
        assert len(resp.json()["items"]) == 2

    async def test_variant_line(self, client, catalog):
        body = await place_order(
            client, {"menu_item_id": catalog.latte_id, "menu_item_variant_id": catalog.latte_22_id, "quantity": 1}
        )

        item = body["items"][0]
        assert Decimal(item["unit_price"]) == Decimal("180")
        assert item["size_label"] == "22oz"
        assert item["variant_name"] == "Latte 22oz"

    @pytest.mark.parametrize(
        "payload",
        [
            {"items": [], "payment_method": "cash"},
            {"items": [{"menu_item_id": 1, "quantity": 0}], "payment_method": "cash"},
            {"items": [{"menu_item_id": 1, "quantity": 1}], "payment_method": "card"},
            {"items": [{"menu_item_id": 1, "quantity": 1}], "payment_method": "cash", "discount_amount": "-5"},
            {"items": [{"menu_item_id": 1, "quantity": 1}], "payment_method": "cash", "status": "voided"},
            {"payment_method": "cash"},
        ],
    )
    async def test_malformed_request(self, client, catalog, count_rows, payload):
        resp = await client.post("/orders/", json=payload)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Validation error"
        assert resp.json()["errors"]
        assert await count_rows(Order) == 0

    async def test_insufficient_stock(self, client, catalog, count_rows, stock_of):
        resp = await client.post(
            "/orders/",
            json={"items": [{"menu_item_id": catalog.croissant_id, "quantity": 6}], "payment_method": "cash"},
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == 'Insufficient stock for "Croissant". Available: 5'
        assert await stock_of(catalog.croissant_id) == 5
        assert await count_rows(Order) == 0

    async def test_missing_menu_item(self, client, catalog, count_rows):
        resp = await client.post(
            "/orders/",
            json={
                "items": [
                    {"menu_item_id": catalog.croissant_id, "quantity": 2},
                    {"menu_item_id": 999, "quantity": 1},
                ],
                "payment_method": "gcash",
            },
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Menu item with ID 999 not found"
        assert await count_rows(InventoryLog) == 0

    async def test_unavailable_menu_item(self, client, catalog):
        resp = await client.post(
            "/orders/",
            json={"items": [{"menu_item_id": catalog.mocha_id, "quantity": 1}], "payment_method": "cash"},
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == 'Menu item "Mocha" is not available'


async def test_database_failure_on_create(client, catalog, count_rows, stock_of, monkeypatch):
    def broken_transaction(**kwargs):
        raise OperationalError("INSERT INTO transactions", {}, Exception("connection lost"))

    monkeypatch.setattr("cafe_pos.crud.order.Transaction", broken_transaction)

    resp = await client.post(
        "/orders/",
        json={"items": [{"menu_item_id": catalog.latte_id, "quantity": 2}], "payment_method": "cash"},
    )

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Database error"
    assert await stock_of(catalog.latte_id) == 10
    assert await count_rows(Order) == 0
    assert await count_rows(OrderItem) == 0
    assert await count_rows(InventoryLog) == 0


async def test_get_missing_order(client, catalog):
    resp = await client.get("/orders/12345")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Order not found"


class TestUpdateStatus:
    async def test_ready(self, client, catalog, stock_of):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 2})

        resp = await client.patch(f"/orders/{order['id']}/status", json={"status": "ready"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "ready"
        assert await stock_of(catalog.latte_id) == 8

    async def test_voided_is_not_a_settable_status(self, client, catalog):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})

        resp = await client.patch(f"/orders/{order['id']}/status", json={"status": "voided"})

        assert resp.status_code == 400

    async def test_unknown_field_is_rejected(self, client, catalog):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})

        resp = await client.patch(f"/orders/{order['id']}/status", json={"status": "ready", "is_voided": True})

        assert resp.status_code == 400

    async def test_missing_order(self, client, catalog):
        resp = await client.patch("/orders/404/status", json={"status": "ready"})

        assert resp.status_code == 404

    async def test_staff_header_goes_to_audit(self, client, catalog, count_rows):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})

        resp = await client.patch(
            f"/orders/{order['id']}/status",
            json={"status": "completed"},
            headers={"X-Staff-User-Id": str(catalog.cashier_id)},
        )

        assert resp.status_code == 200
        assert await count_rows(AuditLog, AuditLog.user_id == catalog.cashier_id) == 1


class TestVoid:
    async def test_void_flow(self, client, catalog, stock_of):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 2})
        url = f"/orders/{order['id']}/void"

        resp = await client.post(url, json=admin_void(password="nope"))
        assert resp.status_code == 401
        assert await stock_of(catalog.latte_id) == 8

        resp = await client.post(url, json=admin_void())
        assert resp.status_code == 200
        assert resp.json()["status"] == "voided"
        assert resp.json()["is_voided"] is True
        assert resp.json()["voided_by"] == catalog.admin_id
        assert await stock_of(catalog.latte_id) == 10

        resp = await client.post(url, json=admin_void())
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Order is already voided"
        assert await stock_of(catalog.latte_id) == 10

        resp = await client.patch(f"/orders/{order['id']}/status", json={"status": "completed"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot update status of voided order"

    async def test_cashier_cannot_void(self, client, catalog):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})

        resp = await client.post(
            f"/orders/{order['id']}/void",
            json={"void_reason": "oops", "admin_username": "cashier", "admin_password": "cashier123"},
        )

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid admin credentials"

    async def test_blank_reason(self, client, catalog):
        order = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})

        resp = await client.post(f"/orders/{order['id']}/void", json=admin_void(reason="   "))

        assert resp.status_code == 400

    async def test_missing_order(self, client, catalog):
        resp = await client.post("/orders/404/void", json=admin_void())

        assert resp.status_code == 404


class TestListOrders:
    async def test_pagination_and_item_count(self, client, catalog):
        for _ in range(3):
            await place_order(
                client,
                {"menu_item_id": catalog.latte_id, "quantity": 1},
                {"menu_item_id": catalog.croissant_id, "quantity": 1},
            )

        resp = await client.get("/orders/", params={"limit": 2})

        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert len(body["orders"]) == 2
        assert all(order["item_count"] == 2 for order in body["orders"])

        resp = await client.get("/orders/", params={"limit": 2, "offset": 2})
        assert resp.json()["pagination"]["page"] == 2
        assert len(resp.json()["orders"]) == 1

    async def test_newest_first(self, client, catalog):
        first = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})
        second = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1})

        resp = await client.get("/orders/")

        assert [order["id"] for order in resp.json()["orders"]] == [second["id"], first["id"]]

    async def test_filters(self, client, catalog):
        cash = await place_order(client, {"menu_item_id": catalog.latte_id, "quantity": 1}, customer_name="Annabel")
        gcash = await place_order(
            client, {"menu_item_id": catalog.latte_id, "quantity": 1}, payment_method="gcash", customer_name="Ben"
        )
        voided = await place_order(client, {"menu_item_id": catalog.croissant_id, "quantity": 1})
        await client.post(f"/orders/{voided['id']}/void", json=admin_void())

        async def ids(**params):
            resp = await client.get("/orders/", params=params)
            assert resp.status_code == 200
            return {order["id"] for order in resp.json()["orders"]}

        assert await ids(status="voided") == {voided["id"]}
        assert await ids(status="pending") == {cash["id"], gcash["id"]}
        assert await ids(payment_method="gcash") == {gcash["id"]}
        assert await ids(search="nabel") == {cash["id"]}
        assert await ids(search=cash["order_number"]) == {cash["id"]}
        assert await ids(start_date="2000-01-01", end_date="2000-01-31") == set()
        assert await ids(start_date="2000-01-01") == {cash["id"], gcash["id"], voided["id"]}

    async def test_bad_status_filter(self, client, catalog):
        resp = await client.get("/orders/", params={"status": "lost"})

        assert resp.status_code == 400


class TestMenu:
    async def test_active_categories_in_display_order(self, client, catalog, session_factory):
        async with session_factory() as session:
            session.add_all(
                [
                    Category(name="Seasonal", display_order=0),
                    Category(name="Archive", display_order=3, is_active=False),
                ]
            )
            await session.commit()

        resp = await client.get("/menu/categories")

        assert resp.status_code == 200
        assert [c["name"] for c in resp.json()] == ["Seasonal", "Coffee", "Pastries"]
        assert resp.json()[1]["id"] == catalog.coffee_id

    async def test_lists_available_items_with_variants(self, client, catalog):
        resp = await client.get("/menu/items")

        assert resp.status_code == 200
        items = resp.json()
        assert [item["name"] for item in items] == ["Latte", "Croissant"]
        latte, croissant = items
        assert [v["size_label"] for v in latte["variants"]] == ["16oz", "22oz", "32oz"]
        assert latte["category_name"] == "Coffee"
        assert latte["is_low_stock"] is False
        assert croissant["is_low_stock"] is True

    async def test_category_filter(self, client, catalog):
        resp = await client.get("/menu/items", params={"category_id": catalog.coffee_id})

        assert [item["name"] for item in resp.json()] == ["Latte"]

    async def test_single_item(self, client, catalog):
        resp = await client.get(f"/menu/items/{catalog.croissant_id}")

        assert resp.status_code == 200
        assert Decimal(resp.json()["price"]) == Decimal("60")

    async def test_missing_item(self, client, catalog):
        resp = await client.get("/menu/items/999")

        assert resp.status_code == 404


class TestStockAndLedger:
    async def test_restock(self, client, catalog, stock_of):
        resp = await client.patch(
            f"/menu/items/{catalog.croissant_id}/stock",
            json={"action": "add", "quantity": 7, "notes": "Morning delivery"},
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "menu_item_id": catalog.croissant_id,
            "previous_stock": 5,
            "new_stock": 12,
            "quantity_change": 7,
        }
        assert await stock_of(catalog.croissant_id) == 12

        logs = (await client.get("/inventory/logs", params={"menu_item_id": catalog.croissant_id})).json()
        assert len(logs) == 1
        assert logs[0]["action_type"] == "restock"
        assert logs[0]["notes"] == "Morning delivery"

    async def test_set_below_current_is_adjustment(self, client, catalog, stock_of):
        resp = await client.patch(f"/menu/items/{catalog.latte_id}/stock", json={"action": "set", "quantity": 3})

        assert resp.status_code == 200
        assert resp.json()["quantity_change"] == -7
        assert await stock_of(catalog.latte_id) == 3

        logs = (await client.get("/inventory/logs", params={"action_type": "adjustment"})).json()
        assert [log["quantity_change"] for log in logs] == [-7]

    async def test_subtract_more_than_on_hand(self, client, catalog, stock_of, count_rows):
        resp = await client.patch(
            f"/menu/items/{catalog.croissant_id}/stock", json={"action": "subtract", "quantity": 6}
        )

        assert resp.status_code == 400
        assert await stock_of(catalog.croissant_id) == 5
        assert await count_rows(InventoryLog) == 0

    async def test_missing_item(self, client, catalog):
        resp = await client.patch("/menu/items/999/stock", json={"action": "add", "quantity": 1})

        assert resp.status_code == 404

    async def test_ledger_for_an_order(self, client, catalog):
        order = await place_order(
            client,
            {"menu_item_id": catalog.latte_id, "quantity": 2},
            {"menu_item_id": catalog.croissant_id, "quantity": 1},
        )
        await client.post(f"/orders/{order['id']}/void", json=admin_void())

        resp = await client.get("/inventory/logs", params={"reference_order_id": order["id"]})

        assert resp.status_code == 200
        logs = resp.json()
        assert sorted((log["action_type"], log["quantity_change"]) for log in logs) == [
            ("adjustment", 1),
            ("adjustment", 2),
            ("sale", -2),
            ("sale", -1),
        ]
        # журнал сходится: сумма изменений по заказу равна нулю
        assert sum(log["quantity_change"] for log in logs) == 0
