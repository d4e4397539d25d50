# Overview: Pytest coverage for product create, patch and delete rules.

from decimal import Decimal

import pytest

from backoffice.models import Category, Inventory, Product, Review
from conftest import make_category, make_inventory, make_order, make_review


WIDGET = {
    "name": "Widget",
    "cost_price": 10,
    "selling_price": 15,
    "image_urls": ["https://x/1.png"],
}


class TestCreateProduct:

    def test_create_minimal(self, client, db_session, acme, alice_headers):
        company, owner = acme
        resp = client.post("/api/products", json=WIDGET, headers=alice_headers)
        assert resp.status_code == 201

        product = resp.get_json()["product"]
        assert product["name"] == "Widget"
        assert product["cost_price"] == 10.0
        assert product["selling_price"] == 15.0
        assert product["image_urls"] == ["https://x/1.png"]
        assert product["company_id"] == company.id
        assert product["created_by_user_id"] == owner.id
        assert product["category"] is None

    def test_create_with_existing_category(self, client, db_session, alice_headers):
        shoes = make_category(db_session, "Shoes")
        resp = client.post("/api/products", json={**WIDGET, "category_id": shoes.id}, headers=alice_headers)
        assert resp.status_code == 201
        assert resp.get_json()["product"]["category"] == {"id": shoes.id, "name": "Shoes"}

    def test_create_with_new_category(self, client, db_session, alice_headers):
        apparel = make_category(db_session, "Apparel")
        resp = client.post(
            "/api/products",
            json={**WIDGET, "category": {"name": "Boots", "parent_id": apparel.id}},
            headers=alice_headers,
        )
        assert resp.status_code == 201

        boots = db_session.query(Category).filter_by(name="Boots").one()
        assert boots.parent_id == apparel.id
        assert resp.get_json()["product"]["category_id"] == boots.id

    def test_category_xor(self, client, db_session, alice_headers):
        shoes = make_category(db_session, "Shoes")
        resp = client.post(
            "/api/products",
            json={**WIDGET, "category_id": shoes.id, "category": {"name": "Boots"}},
            headers=alice_headers,
        )
        assert resp.status_code == 400
        assert "not both" in resp.get_json()["error"]
        assert db_session.query(Category).count() == 1
        assert db_session.query(Product).count() == 0

    def test_new_category_with_missing_parent_writes_nothing(self, client, db_session, alice_headers):
        resp = client.post(
            "/api/products",
            json={**WIDGET, "category": {"name": "Boots", "parent_id": 4242}},
            headers=alice_headers,
        )
        assert resp.status_code == 400
        assert db_session.query(Category).count() == 0
        assert db_session.query(Product).count() == 0

    def test_dangling_category_id_rejected(self, client, db_session, alice_headers):
        resp = client.post("/api/products", json={**WIDGET, "category_id": 4242}, headers=alice_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "overrides",
        [
            {"selling_price": 5},
            {"cost_price": -1},
            {"image_urls": []},
            {"image_urls": [""]},
            {"image_urls": "https://x/1.png"},
            {"attributes": ["not", "an", "object"]},
            {"name": ""},
            {"cost_price": "ten"},
            {"cost_price": True},
            {"sku": "unknown-field"},
            {"category_id": 10**30},
            {"category_id": "²"},
            {"category": {"name": "Boots", "parent_id": 10**30}},
        ],
    )
    def test_invalid_payloads(self, client, db_session, alice_headers, overrides):
        resp = client.post("/api/products", json={**WIDGET, **overrides}, headers=alice_headers)
        assert resp.status_code == 400
        assert db_session.query(Product).count() == 0

    @pytest.mark.parametrize("missing", ["name", "cost_price", "selling_price", "image_urls"])
    def test_missing_required(self, client, db_session, alice_headers, missing):
        body = {k: v for k, v in WIDGET.items() if k != missing}
        resp = client.post("/api/products", json=body, headers=alice_headers)
        assert resp.status_code == 400

    def test_attributes_object_and_description(self, client, db_session, alice_headers):
        resp = client.post(
            "/api/products",
            json={**WIDGET, "attributes": {"color": "red", "size": {"eu": 42}}, "description": "  Nice  "},
            headers=alice_headers,
        )
        product = resp.get_json()["product"]
        assert product["attributes"] == {"color": "red", "size": {"eu": 42}}
        assert product["description"] == "Nice"

    def test_equal_prices_allowed(self, client, db_session, alice_headers):
        resp = client.post("/api/products", json={**WIDGET, "selling_price": 10}, headers=alice_headers)
        assert resp.status_code == 201


class TestGetProduct:

    def test_detail_includes_category_path(self, client, db_session, acme, alice_headers):
        company, owner = acme
        root = make_category(db_session, "Apparel")
        leaf = make_category(db_session, "Boots", parent=root)
        resp = client.post("/api/products", json={**WIDGET, "category_id": leaf.id}, headers=alice_headers)
        pid = resp.get_json()["product"]["id"]

        detail = client.get(f"/api/products/{pid}", headers=alice_headers).get_json()["product"]
        assert [c["name"] for c in detail["category_path"]] == ["Apparel", "Boots"]

    @pytest.mark.parametrize("path_id", ["abc", "0", "²", "99999999999999999999999", str(2**63)])
    def test_invalid_id(self, client, alice_headers, path_id):
        resp = client.get(f"/api/products/{path_id}", headers=alice_headers)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid product id"}

    def test_largest_id_is_not_found(self, client, alice_headers):
        assert client.get(f"/api/products/{2**63 - 1}", headers=alice_headers).status_code == 404


class TestPatchProduct:

    def test_selling_below_cost_rejected(self, client, db_session, alice_headers, widget):
        resp = client.patch(f"/api/products/{widget.id}", json={"selling_price": 5}, headers=alice_headers)
        assert resp.status_code == 400
        assert "selling_price" in resp.get_json()["error"]

        db_session.refresh(widget)
        assert widget.selling_price == Decimal("15.00")

    def test_cost_raised_above_existing_selling_rejected(self, client, alice_headers, widget):
        # Delta alone is valid; the merged candidate is not
        resp = client.patch(f"/api/products/{widget.id}", json={"cost_price": 20}, headers=alice_headers)
        assert resp.status_code == 400

    def test_partial_update(self, client, db_session, alice_headers, widget):
        resp = client.patch(
            f"/api/products/{widget.id}",
            json={"name": "Widget Pro", "selling_price": 25},
            headers=alice_headers,
        )
        assert resp.status_code == 200
        product = resp.get_json()["product"]
        assert product["name"] == "Widget Pro"
        assert product["selling_price"] == 25.0
        assert product["cost_price"] == 10.0

    def test_empty_patch_rejected(self, client, alice_headers, widget):
        resp = client.patch(f"/api/products/{widget.id}", json={}, headers=alice_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No fields to update"

    def test_cannot_empty_images(self, client, alice_headers, widget):
        resp = client.patch(f"/api/products/{widget.id}", json={"image_urls": []}, headers=alice_headers)
        assert resp.status_code == 400

        resp = client.patch(f"/api/products/{widget.id}", json={"keep_image_urls": []}, headers=alice_headers)
        assert resp.status_code == 400

    def test_image_only_change(self, client, alice_headers, widget):
        resp = client.patch(
            f"/api/products/{widget.id}",
            json={"keep_image_urls": [], "add_image_urls": ["https://x/2.png"]},
            headers=alice_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["product"]["image_urls"] == ["https://x/2.png"]

    def test_append_images(self, client, alice_headers, widget):
        resp = client.patch(
            f"/api/products/{widget.id}",
            json={"add_image_urls": ["https://x/2.png"]},
            headers=alice_headers,
        )
        assert resp.get_json()["product"]["image_urls"] == ["https://x/1.png", "https://x/2.png"]

    def test_keep_unknown_image_rejected(self, client, alice_headers, widget):
        resp = client.patch(
            f"/api/products/{widget.id}",
            json={"keep_image_urls": ["https://evil/1.png"]},
            headers=alice_headers,
        )
        assert resp.status_code == 400

    def test_clear_category(self, client, db_session, alice_headers, widget):
        shoes = make_category(db_session, "Shoes")
        widget.category_id = shoes.id
        db_session.commit()

        resp = client.patch(f"/api/products/{widget.id}", json={"category_id": None}, headers=alice_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["category"] is None

    def test_missing_product(self, client, alice_headers):
        resp = client.patch("/api/products/99999", json={"name": "X"}, headers=alice_headers)
        assert resp.status_code == 404


class TestDeleteProduct:

    def test_delete_blocked_by_orders(self, client, db_session, alice_headers, widget, customer):
        make_order(db_session, widget, customer, in_inventory=True)

        resp = client.delete(f"/api/products/{widget.id}", headers=alice_headers)
        assert resp.status_code == 409
        assert db_session.get(Product, widget.id) is not None

    def test_delete_removes_inventory_and_reviews(self, client, db_session, alice_headers, widget, customer):
        make_inventory(db_session, widget, 3)
        make_review(db_session, widget, customer, 4)
        widget_id = widget.id

        resp = client.delete(f"/api/products/{widget_id}", headers=alice_headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"deleted": {"id": widget_id, "name": "Widget"}}

        db_session.expire_all()
        assert db_session.get(Product, widget_id) is None
        assert db_session.query(Inventory).filter_by(product_id=widget_id).count() == 0
        assert db_session.query(Review).filter_by(product_id=widget_id).count() == 0

    def test_delete_missing(self, client, alice_headers):
        assert client.delete("/api/products/99999", headers=alice_headers).status_code == 404
