"""API endpoint tests."""

import pytest
from fastapi.testclient import TestClient

API = "/api/v1"


def _create_product(client, **fields):
    payload = {"name": "Cable Ties", "sku": "CT-100", "stock": 100, "minimum_stock": 10, "selling_price": "2.00"}
    payload.update(fields)
    response = client.post(f"{API}/products/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _create_customer(client, name="Acme Hardware"):
    response = client.post(f"{API}/customers/", json={"name": name, "email": "orders@acme.example.com"})
    assert response.status_code == 201, response.text
    return response.json()


def _create_order(client, customer_id, lines):
    response = client.post(f"{API}/orders/", json={
        "customer_id": customer_id,
        "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthCheck:
    """Test health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test health check returns healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "healthy"

    def test_root(self, client: TestClient):
        assert client.get("/").json()["health"] == "/health"


class TestProducts:
    """Test product endpoints."""

    def test_create_and_get(self, client: TestClient):
        product = _create_product(client)
        assert product["stock"] == 100
        assert product["available_stock"] == 100
        assert product["version"] == 1

        response = client.get(f"{API}/products/{product['id']}")
        assert response.status_code == 200
        assert response.json()["sku"] == "CT-100"

        movements = client.get(f"{API}/products/{product['id']}/movements").json()
        assert [m["type"] for m in movements] == ["in"]

    def test_duplicate_sku(self, client: TestClient):
        _create_product(client)
        response = client.post(f"{API}/products/", json={"name": "Other", "sku": "CT-100"})
        assert response.status_code == 409

    def test_list_with_filters(self, client: TestClient):
        _create_product(client)
        _create_product(client, name="Zip Bags", sku="ZB-1", stock=2, minimum_stock=5)

        data = client.get(f"{API}/products/", params={"low_stock": True}).json()
        assert data["total"] == 1
        assert data["items"][0]["name"] == "Zip Bags"
        assert data["has_more"] is False

        data = client.get(f"{API}/products/", params={"search": "cable"}).json()
        assert [p["sku"] for p in data["items"]] == ["CT-100"]

    def test_update_with_version(self, client: TestClient):
        product = _create_product(client)
        url = f"{API}/products/{product['id']}"

        response = client.put(url, json={"selling_price": "2.50", "version": 1})
        assert response.status_code == 200
        assert response.json()["version"] == 2

        response = client.put(url, json={"selling_price": "3.00", "version": 1})
        assert response.status_code == 409

    def test_not_found(self, client: TestClient):
        assert client.get(f"{API}/products/999").status_code == 404
        assert client.delete(f"{API}/products/999").status_code == 404

    def test_delete_refused_when_on_order(self, client: TestClient):
        product = _create_product(client)
        customer = _create_customer(client)
        _create_order(client, customer["id"], [(product["id"], 1)])
        assert client.delete(f"{API}/products/{product['id']}").status_code == 409

    def test_delete(self, client: TestClient):
        product = _create_product(client)
        assert client.delete(f"{API}/products/{product['id']}").status_code == 204
        assert client.get(f"{API}/products/{product['id']}").status_code == 404


class TestStock:
    """Test stock movement and alert endpoints."""

    def test_record_movements(self, client: TestClient):
        product = _create_product(client, stock=10)

        response = client.post(f"{API}/stock/movements", json={
            "product_id": product["id"], "type": "out", "quantity": 4, "reason": "Sold over counter",
        })
        assert response.status_code == 201
        assert client.get(f"{API}/products/{product['id']}").json()["stock"] == 6

        response = client.post(f"{API}/stock/movements", json={
            "product_id": product["id"], "type": "out", "quantity": 50, "reason": "Too many",
        })
        assert response.status_code == 400

        response = client.post(f"{API}/stock/movements", json={
            "product_id": 999, "type": "in", "quantity": 5, "reason": "Delivery",
        })
        assert response.status_code == 404

        response = client.post(f"{API}/stock/movements", json={
            "product_id": product["id"], "type": "reserved", "quantity": 5, "reason": "Nope",
        })
        assert response.status_code == 422

        movements = client.get(f"{API}/stock/movements", params={"product_id": product["id"], "type": "out"}).json()
        assert [m["quantity"] for m in movements] == [4]

    def test_alerts_and_scan(self, client: TestClient):
        _create_product(client, name="Empty Bin", sku="EB-1", stock=0, minimum_stock=3)

        alerts = client.get(f"{API}/stock/alerts").json()
        assert {a["type"] for a in alerts} == {"low_stock", "out_of_stock"}

        result = client.post(f"{API}/stock/alerts/scan").json()
        assert result["created"] == 2

        notifications = client.get(f"{API}/notifications/", params={"category": "inventory"}).json()
        assert len(notifications) == 2
        response = client.put(f"{API}/notifications/{notifications[0]['id']}/read")
        assert response.json()["read"] is True
        assert client.put(f"{API}/notifications/read-all").json() == {"updated": 1}
        assert client.get(f"{API}/notifications/", params={"unread_only": True}).json() == []


class TestOrderPreparation:
    """Test the order preparation and fulfilment flow over HTTP."""

    def test_prepare_backorder_and_complete(self, client: TestClient):
        product = _create_product(client, stock=100)
        customer = _create_customer(client)
        order = _create_order(client, customer["id"], [(product["id"], 150)])

        response = client.post(f"{API}/orders/{order['id']}/items/0/prepare", json={"quantity": 150, "prepared_by": "picker"})
        assert response.status_code == 200
        prepared = response.json()
        assert prepared["status"] == "preparing"
        assert prepared["has_backorders"] is True
        assert prepared["items"][0]["prepared_quantity"] == 100
        assert prepared["items"][0]["backorder_quantity"] == 50
        assert prepared["items"][0]["preparation_status"] == "partial"

        backorders = client.get(f"{API}/backorders/", params={"status": "pending"}).json()
        assert [b["quantity"] for b in backorders] == [50]
        report = client.get(f"{API}/backorders/report").json()
        assert report[0]["customer_id"] == customer["id"]

        response = client.post(f"{API}/orders/{order['id']}/complete")
        assert response.status_code == 409

        response = client.post(f"{API}/orders/{order['id']}/complete", json={"allow_partial": True})
        assert response.status_code == 200
        assert response.json()["fulfilled_at"] is not None

        stock = client.get(f"{API}/products/{product['id']}").json()
        assert stock["stock"] == 0
        assert stock["reserved_stock"] == 0

    def test_prepare_errors(self, client: TestClient):
        product = _create_product(client, stock=5)
        customer = _create_customer(client)
        order = _create_order(client, customer["id"], [(product["id"], 2)])
        url = f"{API}/orders/{order['id']}"

        assert client.post(f"{url}/items/5/prepare", json={"quantity": 1}).status_code == 404
        assert client.post(f"{API}/orders/999/items/0/prepare", json={"quantity": 1}).status_code == 404
        assert client.post(f"{url}/items/0/prepare", json={"quantity": -1}).status_code == 422
        assert client.post(f"{url}/items/0/prepare", json={"quantity": 1, "version": 42}).status_code == 409

    def test_status_changes(self, client: TestClient):
        product = _create_product(client, stock=5)
        customer = _create_customer(client)
        order = _create_order(client, customer["id"], [(product["id"], 2)])
        url = f"{API}/orders/{order['id']}/status"

        assert client.put(url, json={"status": "delivered"}).status_code == 409
        response = client.put(url, json={"status": "confirmed"})
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        assert client.put(f"{API}/orders/999/status", json={"status": "confirmed"}).status_code == 404

        listed = client.get(f"{API}/orders/", params={"status": "confirmed"}).json()
        assert listed["total"] == 1
        assert client.get(f"{API}/customers/{customer['id']}/orders").json()[0]["id"] == order["id"]

    def test_unknown_customer(self, client: TestClient):
        product = _create_product(client)
        response = client.post(f"{API}/orders/", json={
            "customer_id": 999, "items": [{"product_id": product["id"], "quantity": 1}],
        })
        assert response.status_code == 404

    def test_empty_order_rejected(self, client: TestClient):
        customer = _create_customer(client)
        response = client.post(f"{API}/orders/", json={"customer_id": customer["id"], "items": []})
        assert response.status_code == 422


class TestSuppliersAndAutomation:
    """Test supplier prices, automation rules and purchase orders."""

    def test_supplier_prices_and_auto_po(self, client: TestClient):
        product = _create_product(client, stock=1, minimum_stock=5, maximum_stock=10)
        supplier = client.post(f"{API}/suppliers/", json={"name": "Fasteners Ltd"}).json()

        response = client.post(f"{API}/suppliers/{supplier['id']}/prices", json={"product_id": product["id"], "price": "1.10"})
        assert response.status_code == 201
        assert client.post(f"{API}/suppliers/{supplier['id']}/prices", json={"product_id": 999, "price": "1"}).status_code == 404
        assert len(client.get(f"{API}/suppliers/{supplier['id']}/prices").json()) == 1

        response = client.post(f"{API}/purchase-orders/auto-generate")
        assert response.status_code == 201
        pos = response.json()
        assert len(pos) == 1
        assert pos[0]["items"][0]["quantity"] == 10
        assert client.get(f"{API}/purchase-orders/{pos[0]['id']}").status_code == 200

    def test_rule_crud_and_run(self, client: TestClient):
        _create_product(client, stock=1, minimum_stock=5)

        response = client.post(f"{API}/automation/rules", json={
            "name": "Low stock", "type": "low_stock",
            "conditions": {"stock_level": 3}, "actions": {"send_alert": True},
        })
        assert response.status_code == 201
        rule = response.json()
        assert rule["conditions"] == {"stock_level": 3}

        result = client.post(f"{API}/automation/run").json()
        assert result["rules_triggered"] == 1
        assert result["notifications_created"] == 1

        response = client.put(f"{API}/automation/rules/{rule['id']}", json={"is_active": False})
        assert response.json()["is_active"] is False
        assert client.post(f"{API}/automation/run").json()["rules_checked"] == 0

        assert client.delete(f"{API}/automation/rules/{rule['id']}").status_code == 204
        assert client.get(f"{API}/automation/rules").json() == []

    def test_invalid_rule_type(self, client: TestClient):
        response = client.post(f"{API}/automation/rules", json={"name": "Bad", "type": "weather"})
        assert response.status_code == 422


class TestReports:
    """Test report endpoints."""

    @pytest.mark.parametrize("report", ["abc", "xyz", "forecast", "cohorts", "profit"])
    def test_reports_respond(self, client: TestClient, report):
        product = _create_product(client)
        customer = _create_customer(client)
        _create_order(client, customer["id"], [(product["id"], 3)])

        response = client.get(f"{API}/reports/{report}")
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_abc_ignores_cancelled_orders(self, client: TestClient):
        product = _create_product(client)
        customer = _create_customer(client)
        order = _create_order(client, customer["id"], [(product["id"], 3)])
        client.put(f"{API}/orders/{order['id']}/status", json={"status": "cancelled"})

        rows = client.get(f"{API}/reports/abc").json()
        assert rows[0]["revenue"] == 0
        assert rows[0]["category"] == "C"


class TestDataTransfer:
    """Test export and import endpoints."""

    def test_export_import_round_trip(self, client: TestClient):
        product = _create_product(client)
        customer = _create_customer(client)
        _create_order(client, customer["id"], [(product["id"], 3)])

        exported = client.get(f"{API}/data/export").json()
        response = client.post(f"{API}/data/import", json=exported)
        assert response.status_code == 200
        result = response.json()
        assert {k: result[k] for k in ("products", "orders", "customers", "suppliers")} == {
            "products": 1, "orders": 1, "customers": 1, "suppliers": 0,
        }
        assert result["removed"]["orders"] == 1

        again = client.get(f"{API}/data/export").json()
        for key in ("products", "orders", "customers", "suppliers"):
            assert again[key] == exported[key]

    def test_import_missing_keys(self, client: TestClient):
        response = client.post(f"{API}/data/import", json={"products": []})
        assert response.status_code == 422
        assert "orders" in response.json()["detail"]

    def test_csv_export(self, client: TestClient):
        _create_product(client)
        response = client.get(f"{API}/data/export/products.csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.startswith('"id","name"')
        assert client.get(f"{API}/data/export/invoices.csv").status_code == 404


class TestAuditLog:

    def test_actions_are_logged(self, client: TestClient):
        product = _create_product(client)
        entries = client.get(f"{API}/audit-logs/", params={"entity_type": "product"}).json()
        assert entries[0]["action"] == "create"
        assert entries[0]["entity_id"] == str(product["id"])
