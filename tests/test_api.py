"""HTTP tests for the public and admin endpoints via TestClient."""

import pytest
from fastapi.testclient import TestClient

from errors import PersistenceError
from memory_store import InMemoryOrderStore


def _place(client, checkout_payload, **overrides):
    response = client.post("/api/checkout", json=checkout_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["orderId"]


class TestCatalogEndpoints:
    def test_root(self, client):
        assert client.get("/").status_code == 200

    def test_list_products(self, client):
        response = client.get("/api/products")
        assert response.status_code == 200
        assert any(p["id"] == "rank-knight" and p["price"] == 9.99 for p in response.json())

    def test_list_by_category(self, client):
        response = client.get("/api/products", params={"category": "kits"})
        assert {p["category"] for p in response.json()} == {"kits"}

    def test_unknown_category(self, client):
        response = client.get("/api/products", params={"category": "weapons"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_get_product(self, client):
        assert client.get("/api/products/kit-pvp").json()["name"] == "PvP Master Kit"

    def test_get_missing_product(self, client):
        response = client.get("/api/products/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Product not found: nope"}


class TestCheckoutEndpoint:
    def test_success_shape(self, client, checkout_payload):
        response = client.post("/api/checkout", json=checkout_payload())
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["orderId"].startswith("ORD-")
        assert body["minecraftUsername"] == "Steve_123"
        assert body["edition"] == "java"
        assert body["total"] == 19.98
        assert body["items"][0] == {
            "productId": "rank-knight",
            "name": "Knight Rank",
            "unitPrice": 9.99,
            "quantity": 2,
            "lineTotal": 19.98,
        }
        assert "message" in body

    def test_forged_price_ignored(self, client, checkout_payload):
        payload = checkout_payload(items=[{"id": "rank-knight", "quantity": 2, "price": 0.01}])
        assert client.post("/api/checkout", json=payload).json()["total"] == 19.98

    def test_legacy_field_names(self, client, checkout_payload):
        payload = checkout_payload()
        payload["utrNumber"] = payload.pop("transactionReference")
        assert client.post("/api/checkout", json=payload).status_code == 201

    def test_bedrock_formatting(self, client, checkout_payload):
        body = client.post("/api/checkout", json=checkout_payload(minecraftUsername="Steve 123", edition="bedrock")).json()
        assert body["minecraftUsername"] == ".Steve_123"

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"minecraftUsername": ""}, "Minecraft username is required."),
            ({"minecraftUsername": "ab"}, "Invalid username format."),
            ({"edition": "pocket"}, "Invalid edition. Must be 'java' or 'bedrock'."),
            ({"transactionReference": "41234567890"}, "UTR must be exactly 12 digits."),
            ({"transactionReference": "٤١٢٣٤٥٦٧٨٩٠١"}, "UTR must be exactly 12 digits."),
            ({"transactionReference": ""}, "UTR / Transaction ID is required."),
            ({"items": []}, "Cart is empty."),
            ({"items": [{"id": "rank-knight", "quantity": 0}]}, "Invalid quantity for item: rank-knight"),
        ],
    )
    def test_invalid_input(self, client, checkout_payload, order_store, overrides, error):
        response = client.post("/api/checkout", json=checkout_payload(**overrides))
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": error}
        assert order_store.list_orders() == []

    def test_unknown_product_is_distinct(self, client, checkout_payload, order_store):
        response = client.post("/api/checkout", json=checkout_payload(items=[{"id": "rank-gone", "quantity": 1}]))
        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "Product not found: rank-gone"}
        assert order_store.list_orders() == []

    def test_malformed_body(self, client):
        response = client.post("/api/checkout", json={"items": "lots"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request."}

    def test_store_failure_is_internal(self, client, checkout_payload):
        import main

        class DownStore(InMemoryOrderStore):
            def insert_order(self, order):
                raise PersistenceError()

        main.app.dependency_overrides[main.get_order_store] = lambda: DownStore()
        response = client.post("/api/checkout", json=checkout_payload())
        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "try again" in response.json()["error"]

    def test_notification_failure_does_not_fail_checkout(self, client, checkout_payload, email, order_store):
        email.configure(should_succeed=False)
        order_id = _place(client, checkout_payload)
        assert order_store.get_order(order_id) is not None


class TestCartEndpoints:
    def test_viewing_without_session_creates_nothing(self, client, cart_registry):
        for _ in range(50):
            response = client.get("/api/cart")
            assert response.json() == {"items": [], "subtotal": 0, "itemCount": 0, "toasts": []}
        assert "cart_session" not in response.cookies
        assert len(cart_registry) == 0

    def test_made_up_session_creates_nothing(self, client, cart_registry):
        client.cookies.set("cart_session", "forged")
        client.get("/api/cart")
        client.put("/api/cart/items/rank-knight", json={"quantity": 3})
        client.delete("/api/cart")
        assert len(cart_registry) == 0

    def test_first_add_sets_session_cookie(self, client, cart_registry):
        response = client.post("/api/cart/items", json={"productId": "rank-knight"})
        assert "cart_session" in response.cookies
        assert len(cart_registry) == 1

    def test_add_and_view(self, client):
        client.post("/api/cart/items", json={"productId": "rank-knight"})
        body = client.post("/api/cart/items", json={"productId": "rank-knight"}).json()
        assert body["itemCount"] == 2
        assert body["subtotal"] == 19.98
        assert body["items"][0]["lineTotal"] == 19.98
        assert [t["message"] for t in body["toasts"]] == ["Knight Rank added to cart!"] * 2

    def test_add_unknown_product(self, client):
        assert client.post("/api/cart/items", json={"productId": "nope"}).status_code == 404

    def test_set_quantity_and_remove(self, client):
        client.post("/api/cart/items", json={"productId": "rank-knight"})
        client.post("/api/cart/items", json={"productId": "kit-pvp"})
        assert client.put("/api/cart/items/rank-knight", json={"quantity": 4}).json()["itemCount"] == 5
        assert client.put("/api/cart/items/kit-pvp", json={"quantity": 0}).json()["itemCount"] == 4
        assert client.delete("/api/cart/items/rank-knight").json()["items"] == []

    def test_dismiss_toast(self, client):
        toast = client.post("/api/cart/items", json={"productId": "rank-knight"}).json()["toasts"][0]
        assert client.delete(f"/api/cart/toasts/{toast['id']}").json()["toasts"] == []

    def test_carts_are_per_session(self, client):
        client.post("/api/cart/items", json={"productId": "rank-knight"})
        import main

        other = TestClient(main.app)
        assert other.get("/api/cart").json()["itemCount"] == 0

    def test_checkout_clears_cart(self, client, order_store):
        client.post("/api/cart/items", json={"productId": "key-rare"})
        response = client.post(
            "/api/cart/checkout",
            json={"minecraftUsername": "Steve 123", "edition": "bedrock", "transactionReference": "412345678901"},
        )
        assert response.status_code == 201
        assert response.json()["minecraftUsername"] == ".Steve_123"
        assert response.json()["total"] == 3.49
        assert client.get("/api/cart").json()["items"] == []
        assert len(order_store.list_orders()) == 1

    def test_checkout_drops_session_cart(self, client, cart_registry):
        client.post("/api/cart/items", json={"productId": "key-rare"})
        client.post(
            "/api/cart/checkout",
            json={"minecraftUsername": "Steve", "edition": "java", "transactionReference": "412345678901"},
        )
        assert len(cart_registry) == 0

    def test_checkout_strips_reference_separators(self, client, order_store):
        client.post("/api/cart/items", json={"productId": "key-rare"})
        response = client.post(
            "/api/cart/checkout",
            json={"minecraftUsername": "Steve", "edition": "java", "transactionReference": "4123-4567 8901"},
        )
        assert response.status_code == 201
        assert order_store.list_orders()[0].transaction_reference == "412345678901"

    def test_failed_checkout_keeps_cart(self, client):
        client.post("/api/cart/items", json={"productId": "key-rare"})
        response = client.post(
            "/api/cart/checkout",
            json={"minecraftUsername": "Steve", "edition": "java", "transactionReference": "123"},
        )
        assert response.status_code == 400
        assert client.get("/api/cart").json()["itemCount"] == 1

    def test_checkout_rejects_raw_username_symbols(self, client):
        client.post("/api/cart/items", json={"productId": "key-rare"})
        response = client.post(
            "/api/cart/checkout",
            json={"minecraftUsername": "Ste-ve", "edition": "java", "transactionReference": "412345678901"},
        )
        assert response.status_code == 400
        assert "letters, numbers" in response.json()["error"]

    def test_checkout_empty_cart(self, client):
        response = client.post(
            "/api/cart/checkout",
            json={"minecraftUsername": "Steve", "edition": "java", "transactionReference": "412345678901"},
        )
        assert response.json() == {"success": False, "error": "Cart is empty."}


class TestAdminAuth:
    def test_admin_routes_need_token(self, client):
        response = client.get("/api/admin/orders")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_wrong_header_token(self, client):
        assert client.get("/api/admin/orders", headers={"X-Admin-Token": "guess"}).status_code == 401

    def test_login_sets_cookie(self, client):
        response = client.post("/api/admin/auth", json={"password": "s3cret-admin"})
        assert response.status_code == 200
        assert response.cookies.get("admin_token") not in (None, "s3cret-admin")
        assert client.get("/api/admin/orders").status_code == 200

    def test_bad_password(self, client):
        response = client.post("/api/admin/auth", json={"password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid password."

    def test_logout(self, client):
        client.post("/api/admin/auth", json={"password": "s3cret-admin"})
        client.delete("/api/admin/auth")
        assert client.get("/api/admin/orders").status_code == 401

    def test_secret_not_configured(self, client, settings):
        settings.ADMIN_SECRET_KEY = None
        response = client.get("/api/admin/orders", headers={"X-Admin-Token": "anything"})
        assert response.status_code == 500
        assert "ADMIN_SECRET_KEY" in response.json()["error"]


class TestAdminOrders:
    def test_approve_and_reject_flow(self, client, checkout_payload, admin_headers):
        first = _place(client, checkout_payload, minecraftUsername="Alpha_1")
        second = _place(client, checkout_payload, minecraftUsername="Bravo_2")
        third = _place(client, checkout_payload, minecraftUsername="Charlie_3")

        approved = client.post("/api/admin/orders/approve", json={"orderId": first}, headers=admin_headers)
        assert approved.json() == {"success": True, "orderId": first, "status": "success"}
        client.post("/api/admin/orders/reject", json={"orderId": third}, headers=admin_headers)

        pending = client.get("/api/admin/orders", params={"status": "pending"}, headers=admin_headers).json()
        assert [o["orderId"] for o in pending] == [second]
        assert pending[0]["transactionReference"] == "412345678901"

    def test_approve_is_idempotent(self, client, checkout_payload, admin_headers):
        order_id = _place(client, checkout_payload)
        for _ in range(2):
            response = client.post("/api/admin/orders/approve", json={"orderId": order_id}, headers=admin_headers)
            assert response.status_code == 200
            assert response.json()["status"] == "success"

    def test_cross_terminal_transition(self, client, checkout_payload, admin_headers):
        order_id = _place(client, checkout_payload)
        client.post("/api/admin/orders/reject", json={"orderId": order_id}, headers=admin_headers)
        response = client.post("/api/admin/orders/approve", json={"orderId": order_id}, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_unknown_order(self, client, admin_headers):
        response = client.post("/api/admin/orders/approve", json={"orderId": "ORD-0-ZZZZZ"}, headers=admin_headers)
        assert response.status_code == 404

    def test_stats(self, client, checkout_payload, admin_headers):
        order_id = _place(client, checkout_payload)
        _place(client, checkout_payload, minecraftUsername="Bravo_2")
        client.post("/api/admin/orders/approve", json={"orderId": order_id}, headers=admin_headers)
        stats = client.get("/api/admin/stats", headers=admin_headers).json()
        assert stats["totalOrders"] == 2
        assert stats["pendingOrders"] == 1
        assert stats["successOrders"] == 1
        assert stats["totalRevenue"] == 19.98
        assert stats["totalProducts"] == 13


class TestAdminProducts:
    def test_crud(self, client, admin_headers):
        created = client.post(
            "/api/admin/products",
            json={"name": "Dragon Rank", "price": 49.99, "category": "ranks", "perks": ["Wings"]},
            headers=admin_headers,
        )
        assert created.status_code == 201
        assert created.json()["id"] == "dragon-rank"

        updated = client.put(
            "/api/admin/products/dragon-rank",
            json={"name": "Dragon Rank", "price": 44.99, "category": "ranks"},
            headers=admin_headers,
        )
        assert updated.json()["price"] == 44.99
        assert client.get("/api/products/dragon-rank").json()["price"] == 44.99

        assert client.delete("/api/admin/products/dragon-rank", headers=admin_headers).json() == {"success": True}
        assert client.get("/api/products/dragon-rank").status_code == 404

    def test_duplicate_product(self, client, admin_headers):
        response = client.post(
            "/api/admin/products",
            json={"name": "Knight Rank", "price": 1, "category": "ranks"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["id"] == "knight-rank"
        again = client.post(
            "/api/admin/products",
            json={"name": "Knight Rank", "price": 1, "category": "ranks"},
            headers=admin_headers,
        )
        assert again.status_code == 409

    def test_negative_price_rejected(self, client, admin_headers):
        response = client.post(
            "/api/admin/products",
            json={"name": "Free Money", "price": -1, "category": "misc"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_deleted_product_breaks_checkout_only_for_that_item(self, client, checkout_payload, admin_headers):
        client.delete("/api/admin/products/rank-knight", headers=admin_headers)
        response = client.post("/api/checkout", json=checkout_payload())
        assert response.status_code == 409
        assert "rank-knight" in response.json()["error"]

    def test_seed_skipped_when_not_empty(self, client, admin_headers):
        assert client.post("/api/admin/seed", headers=admin_headers).json()["seeded"] is False

    def test_seed_empty_catalog(self, client, admin_headers, catalog_store):
        for product in catalog_store.list_products():
            catalog_store.delete_product(product.id)
        body = client.post("/api/admin/seed", headers=admin_headers).json()
        assert body["seeded"] is True
        assert body["count"] == 13
