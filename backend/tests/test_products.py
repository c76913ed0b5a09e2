"""Product catalog tests: validation, SKU uniqueness, stock edits, deletion rules."""

import pytest

from invoicehub.errors import DuplicateKey, ReferenceInUse
from invoicehub.models import ActivityLog, Product
from invoicehub.services import invoice_service, products_service


def _payload(**overrides):
    data = {"name": "Tape Measure", "brand": "Komelon", "sku": "TM-25", "quantity": 4, "price": "12.50"}
    data.update(overrides)
    return data


class TestCreateProduct:

    def test_create_via_api(self, client, admin_a_headers, business_a):
        resp = client.post("/api/products", json=_payload(), headers=admin_a_headers)

        assert resp.status_code == 201
        body = resp.json
        assert body["business_id"] == business_a.id
        assert body["price_cents"] == 1250
        assert body["price"] == "12.50"
        # default threshold is 10, so 4 on hand is already low
        assert body["low_stock_amount"] == 10
        assert body["low_stock_alert"] is True

    def test_price_and_price_cents_together_rejected(self, client, admin_a_headers):
        resp = client.post("/api/products", json=_payload(price_cents=999), headers=admin_a_headers)
        assert resp.status_code == 400

    def test_price_cents_accepted(self, client, admin_a_headers):
        data = _payload()
        del data["price"]
        data["price_cents"] = 999
        resp = client.post("/api/products", json=data, headers=admin_a_headers)
        assert resp.status_code == 201
        assert resp.json["price"] == "9.99"

    @pytest.mark.parametrize("overrides", [
        {"price": "1.999"},
        {"price": "-1"},
        {"price": "abc"},
        {"quantity": -1},
        {"quantity": "1.5"},
        {"low_stock_amount": -2},
        {"name": ""},
        {"sku": "x" * 65},
        {"is_admin": True},
    ])
    def test_invalid_payload(self, client, admin_a_headers, overrides):
        resp = client.post("/api/products", json=_payload(**overrides), headers=admin_a_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"

    def test_missing_required_field(self, client, admin_a_headers):
        data = _payload()
        del data["brand"]
        resp = client.post("/api/products", json=data, headers=admin_a_headers)
        assert resp.status_code == 400
        assert "brand" in resp.json["error"]

    def test_duplicate_sku_in_same_business(self, db_session, actor_a, product_a):
        with pytest.raises(DuplicateKey):
            products_service.create_product(actor_a, {
                "name": "Other", "brand": "Other", "sku": "HAM-001", "quantity": 1, "price_cents": 100,
            })

    def test_same_sku_in_other_business_allowed(self, db_session, actor_b, product_a):
        product = products_service.create_product(actor_b, {
            "name": "Hammer", "brand": "Estwing", "sku": "HAM-001", "quantity": 1, "price_cents": 100,
        })
        assert product.sku == "HAM-001"

    def test_create_is_audited(self, db_session, product_a):
        entry = db_session.query(ActivityLog).filter_by(entity_name="Product", action="create").one()
        assert entry.entity_id == product_a.id
        assert "HAM-001" in entry.description


class TestUpdateProduct:

    def test_quantity_edit_goes_through_ledger(self, client, admin_a_headers, product_a, db_session):
        resp = client.patch(f"/api/products/{product_a.id}", json={"quantity": 2}, headers=admin_a_headers)

        assert resp.status_code == 200
        assert resp.json["quantity"] == 2
        assert resp.json["low_stock_alert"] is True
        adjustment = db_session.query(ActivityLog).filter(
            ActivityLog.entity_id == product_a.id,
            ActivityLog.description.like("Manual stock update:%"),
        ).one()
        assert "-8" in adjustment.description

    def test_threshold_edit_recomputes_alert(self, client, admin_a_headers, product_a):
        resp = client.patch(f"/api/products/{product_a.id}", json={"low_stock_amount": 12}, headers=admin_a_headers)
        assert resp.status_code == 200
        assert resp.json["low_stock_alert"] is True

    @pytest.mark.parametrize("quantity,low_stock_amount", [(6, 7), (2, 1), (4, 4)])
    def test_quantity_and_threshold_edited_together(
        self, client, admin_a_headers, product_a, quantity, low_stock_amount
    ):
        resp = client.patch(f"/api/products/{product_a.id}", json={
            "quantity": quantity, "low_stock_amount": low_stock_amount,
        }, headers=admin_a_headers)

        assert resp.status_code == 200
        assert resp.json["quantity"] == quantity
        assert resp.json["low_stock_amount"] == low_stock_amount
        assert resp.json["low_stock_alert"] is (quantity <= low_stock_amount)

    def test_update_describes_changes(self, db_session, actor_a, product_a):
        products_service.update_product(actor_a, product_a.id, {"name": "Framing Hammer", "price_cents": 1299})

        entry = db_session.query(ActivityLog).filter(
            ActivityLog.entity_id == product_a.id,
            ActivityLog.description.like("%updated.%"),
        ).one()
        assert 'name from "Claw Hammer" to "Framing Hammer"' in entry.description
        assert 'price from "10.00" to "12.99"' in entry.description

    def test_sku_change_to_taken_sku(self, db_session, actor_a, product_a, product_a2):
        with pytest.raises(DuplicateKey):
            products_service.update_product(actor_a, product_a2.id, {"sku": "HAM-001"})

    def test_negative_quantity_rejected(self, client, admin_a_headers, product_a):
        resp = client.patch(f"/api/products/{product_a.id}", json={"quantity": -3}, headers=admin_a_headers)
        assert resp.status_code == 400


class TestDeleteProduct:

    def test_delete_unreferenced_product(self, client, admin_a_headers, product_a, db_session):
        product_id = product_a.id
        resp = client.delete(f"/api/products/{product_id}", headers=admin_a_headers)

        assert resp.status_code == 200
        assert resp.json["id"] == product_id
        assert db_session.get(Product, product_id) is None

    def test_delete_invoiced_product_refused(self, db_session, actor_a, customer_a, product_a):
        invoice_service.create_invoice(
            actor_a, customer_a.id, [{"product_id": product_a.id, "quantity": 1, "price": "10.00"}]
        )
        with pytest.raises(ReferenceInUse):
            products_service.delete_product(actor_a, product_a.id)


class TestProductQueries:

    def test_low_stock_listing(self, db_session, actor_a, product_a, product_a2):
        products_service.update_product(actor_a, product_a2.id, {"quantity": 1})

        result = products_service.list_low_stock_products(actor_a)
        assert [p["sku"] for p in result["items"]] == ["SCR-010"]

    def test_search_matches_name_brand_and_sku(self, db_session, actor_a, product_a, product_a2):
        assert [p["sku"] for p in products_service.search_products(actor_a, "hammer")["items"]] == ["HAM-001"]
        assert [p["sku"] for p in products_service.search_products(actor_a, "SPAX")["items"]] == ["SCR-010"]
        assert [p["sku"] for p in products_service.search_products(actor_a, "scr-")["items"]] == ["SCR-010"]

    def test_search_requires_term(self, client, admin_a_headers):
        resp = client.get("/api/products/search?search_term=%20", headers=admin_a_headers)
        assert resp.status_code == 400

    def test_list_is_paginated(self, client, admin_a_headers, product_a, product_a2):
        resp = client.get("/api/products?first=1&offset=0", headers=admin_a_headers)

        assert resp.status_code == 200
        assert resp.json["total_count"] == 2
        assert resp.json["has_more"] is True
        assert len(resp.json["items"]) == 1

        resp = client.get("/api/products?first=1&offset=1", headers=admin_a_headers)
        assert resp.json["has_more"] is False
