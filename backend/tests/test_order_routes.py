"""
Order, customer and item HTTP API tests.
"""

import pytest

from laundry.models import Invoice


class TestOrderRoutes:

    def _create(self, client, headers, customer, item, **overrides):
        payload = {
            "customer_id": customer.id,
            "total_amount_cents": 10000,
            "lines": [{"item_id": item.id, "quantity": 1, "price_cents": 10000, "services": ["wash"]}],
        }
        payload.update(overrides)
        return client.post("/api/orders", headers=headers, json=payload)

    def test_create_records_acting_user(self, client, headers, user, customer, item):
        resp = self._create(client, headers, customer, item)

        assert resp.status_code == 201
        order = resp.json["order"]
        assert order["status"] == "received"
        assert order["paid_cents"] == 0
        assert order["created_by"]["id"] == user.id
        assert order["lines"][0]["item_name"] == "Shirt"

    def test_create_unknown_customer_is_404(self, client, headers, customer, item):
        resp = self._create(client, headers, customer, item, customer_id=9999)
        assert resp.status_code == 404

    def test_create_without_lines_is_400(self, client, headers, customer, item):
        resp = self._create(client, headers, customer, item, lines=[])

        assert resp.status_code == 400
        assert resp.json["field"] == "lines"

    def test_update_paid_is_400(self, client, headers, order):
        resp = client.put(f"/api/orders/{order.id}", headers=headers, json={"paid_cents": 10000})
        assert resp.status_code == 400

    def test_update_status_override(self, client, headers, order):
        resp = client.put(f"/api/orders/{order.id}", headers=headers, json={"status": "completed"})

        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "completed"

    def test_delete_cascades(self, client, headers, db_session, order):
        client.post("/api/invoices", headers=headers, json={"order_id": order.id, "total_cents": 100, "paid_cents": 100})

        resp = client.delete(f"/api/orders/{order.id}", headers=headers)

        assert resp.status_code == 200
        assert len(resp.json["order"]["deleted_invoice_ids"]) == 1
        assert db_session.query(Invoice).count() == 0
        assert client.get(f"/api/orders/{order.id}", headers=headers).status_code == 404

    def test_reconcile_endpoint(self, client, headers, db_session, order):
        client.post("/api/invoices", headers=headers, json={"order_id": order.id, "total_cents": 100, "paid_cents": 2500})
        order.paid_cents = 0
        order.status = "received"
        db_session.commit()

        dry = client.post(f"/api/orders/{order.id}/reconcile?dry_run=true", headers=headers)
        assert dry.json["reconciliation"]["changed"] is True
        assert client.get(f"/api/orders/{order.id}", headers=headers).json["order"]["paid_cents"] == 0

        resp = client.post(f"/api/orders/{order.id}/reconcile", headers=headers)
        assert resp.status_code == 200
        assert resp.json["reconciliation"]["paid_cents"] == 2500
        assert resp.json["reconciliation"]["status"] == "completed"

    def test_list_filters(self, client, headers, make_order):
        make_order(1000, order_code=501)
        make_order(1000, order_code=502)

        resp = client.get("/api/orders?order_code=502", headers=headers)
        assert [o["order_code"] for o in resp.json["items"]] == [502]

        resp = client.get("/api/orders?status=received&per_page=1&page=2", headers=headers)
        assert resp.json["count"] == 1
        assert resp.json["pagination"]["has_prev"] is True

        resp = client.get("/api/orders?status=lost", headers=headers)
        assert resp.status_code == 400

    def test_order_invoices_of_missing_order(self, client, headers, db_session):
        resp = client.get("/api/orders/9999/invoices", headers=headers)
        assert resp.status_code == 404


class TestCustomerRoutes:

    def test_create_and_conflict(self, client, headers):
        resp = client.post("/api/customers", headers=headers, json={"name": "Luis Gomez", "phone": "809-555-0001"})
        assert resp.status_code == 201
        assert resp.json["customer"]["customer_code"] == 1

        resp = client.post("/api/customers", headers=headers, json={"name": "Luis Gomez", "phone": "809-555-0002"})
        assert resp.status_code == 409

    def test_delete_with_orders_is_409(self, client, headers, order, customer):
        resp = client.delete(f"/api/customers/{customer.id}", headers=headers)
        assert resp.status_code == 409

    def test_search(self, client, headers, customer):
        resp = client.get("/api/customers?search=ana", headers=headers)

        assert resp.status_code == 200
        assert resp.json["items"][0]["id"] == customer.id


class TestItemRoutes:

    def test_bulk_price_update(self, client, headers, item):
        resp = client.put("/api/items", headers=headers, json={
            "updates": [{"id": item.id, "wash_price_cents": 175}],
        })

        assert resp.status_code == 200
        assert resp.json["items"][0]["wash_price_cents"] == 175

    def test_bulk_price_update_requires_list(self, client, headers, item):
        resp = client.put("/api/items", headers=headers, json={"updates": {}})
        assert resp.status_code == 400

    def test_item_crud(self, client, headers, db_session):
        created = client.post("/api/items", headers=headers, json={"item_name": "Coat", "category": "clothing"})
        assert created.status_code == 201
        item_id = created.json["item"]["id"]

        resp = client.put(f"/api/items/{item_id}", headers=headers, json={"repair_price_cents": 500})
        assert resp.json["item"]["repair_price_cents"] == 500

        assert client.delete(f"/api/items/{item_id}", headers=headers).status_code == 200
        assert client.get(f"/api/items/{item_id}", headers=headers).status_code == 404

    @pytest.mark.parametrize("category", ["home", "garage"])
    def test_list_by_category(self, client, headers, item, category):
        resp = client.get(f"/api/items?category={category}", headers=headers)
        expected = 200 if category == "home" else 400
        assert resp.status_code == expected
