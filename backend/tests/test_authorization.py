"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Users without a permission flag are denied mutations (403)
- Permission flags are re-read live: the token snapshot is never trusted
- A deleted user or a tampered company claim is Unauthorized
"""

import pytest
from jose import jwt

from backoffice.time_utils import epoch_seconds
from conftest import auth_headers, headers_for, make_user


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/products"),
            ("GET", "/api/products/1"),
            ("POST", "/api/products"),
            ("PATCH", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("GET", "/api/inventory"),
            ("GET", "/api/inventory/count"),
            ("GET", "/api/inventory/1"),
            ("POST", "/api/inventory"),
            ("PUT", "/api/inventory/1"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/1"),
            ("GET", "/api/reviews"),
            ("GET", "/api/overview"),
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("PATCH", "/api/users/1/permissions"),
            ("DELETE", "/api/users/1"),
            ("PATCH", "/api/users/1"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json() == {"error": "Unauthorized"}

    @pytest.mark.parametrize("path", ["/api/categories", "/api/reviews/1", "/health"])
    def test_public_endpoints(self, client, db_session, path):
        assert client.get(path).status_code == 200

    def test_forged_token_rejected(self, client, acme):
        company, owner = acme
        now = epoch_seconds()
        forged = jwt.encode(
            {"id": owner.id, "company_id": company.id, "iat": now, "exp": now + 60},
            "attacker-secret",
            algorithm="HS256",
        )
        resp = client.get("/api/products", headers=auth_headers(forged))
        assert resp.status_code == 401


# =============================================================================
# MISSING FLAG: 403
# =============================================================================


class TestMissingPermission:
    """A valid principal without the specific flag is Forbidden."""

    def test_cannot_create_product(self, client, bob_headers):
        resp = client.post(
            "/api/products",
            json={"name": "X", "cost_price": 1, "selling_price": 2, "image_urls": ["https://x/1.png"]},
            headers=bob_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Forbidden"}

    def test_cannot_update_inventory(self, client, bob_headers, widget):
        resp = client.post(
            "/api/inventory",
            json={"updates": [{"product_id": widget.id, "in_stock": 5}]},
            headers=bob_headers,
        )
        assert resp.status_code == 403

    def test_cannot_list_users(self, client, bob_headers):
        assert client.get("/api/users", headers=bob_headers).status_code == 403

    def test_can_still_read(self, client, bob_headers, widget):
        assert client.get("/api/products", headers=bob_headers).status_code == 200
        assert client.get(f"/api/products/{widget.id}", headers=bob_headers).status_code == 200
        assert client.get("/api/inventory", headers=bob_headers).status_code == 200


# =============================================================================
# LIVE RE-CHECK: token flags are a cache only
# =============================================================================


class TestLivePermissionCheck:

    def test_revoked_flag_denied_despite_token_snapshot(self, client, db_session, acme):
        company, _ = acme
        carol = make_user(db_session, company, name="Carol", email="carol@acme.com", manage_products=True)
        headers = headers_for(carol, company)  # token says manage_products=True

        carol.manage_products = False
        db_session.commit()

        resp = client.post(
            "/api/products",
            json={"name": "X", "cost_price": 1, "selling_price": 2, "image_urls": ["https://x/1.png"]},
            headers=headers,
        )
        assert resp.status_code == 403

    def test_granted_flag_allowed_despite_stale_token(self, client, db_session, acme, bob):
        company, _ = acme
        headers = headers_for(bob, company)  # token says manage_products=False

        bob.manage_products = True
        db_session.commit()

        resp = client.post(
            "/api/products",
            json={"name": "X", "cost_price": 1, "selling_price": 2, "image_urls": ["https://x/1.png"]},
            headers=headers,
        )
        assert resp.status_code == 201

    def test_deleted_user_is_unauthorized(self, client, db_session, acme):
        company, _ = acme
        carol = make_user(db_session, company, name="Carol", email="carol@acme.com", manage_products=True)
        headers = headers_for(carol, company)

        db_session.delete(carol)
        db_session.commit()

        resp = client.post(
            "/api/products",
            json={"name": "X", "cost_price": 1, "selling_price": 2, "image_urls": ["https://x/1.png"]},
            headers=headers,
        )
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Unauthorized"}

    def test_tampered_company_claim_is_unauthorized(self, client, app, acme, beta):
        company_a, alice = acme
        company_b, _ = beta
        now = epoch_seconds()
        # Correctly signed, but claims Alice belongs to Beta
        token = jwt.encode(
            {
                "id": alice.id,
                "company_id": company_b.id,
                "manage_products": True,
                "iat": now,
                "exp": now + 60,
            },
            app.config["JWT_SECRET"],
            algorithm="HS256",
        )
        resp = client.post(
            "/api/products",
            json={"name": "X", "cost_price": 1, "selling_price": 2, "image_urls": ["https://x/1.png"]},
            headers=auth_headers(token),
        )
        assert resp.status_code == 401
