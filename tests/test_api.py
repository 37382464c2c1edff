from decimal import Decimal


def _place(client, headers, products, address="123 Main St"):
    return client.post(
        "/api/orders",
        json={
            "shipping_address": address,
            "items": [
                {"product_id": products["p1"].id, "quantity": 2, "unit_price": "89.99"},
                {"product_id": products["p2"].id, "quantity": 1, "unit_price": "199.99"},
            ],
        },
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["service"] == "Storefront API"


def test_register_login_and_me(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "Carol@Example.com", "password": "s3cret-pass", "full_name": "Carol"},
    )
    assert resp.status_code == 201
    assert resp.json()["email"] == "carol@example.com"
    assert resp.json()["role"] == "customer"

    dup = client.post("/api/auth/register", json={"email": "carol@example.com", "password": "s3cret-pass"})
    assert dup.status_code == 400

    bad = client.post("/api/auth/token", data={"username": "carol@example.com", "password": "wrong-pass"})
    assert bad.status_code == 400

    token = client.post("/api/auth/token", data={"username": "carol@example.com", "password": "s3cret-pass"})
    assert token.status_code == 200
    headers = {"Authorization": f"Bearer {token.json()['access_token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["full_name"] == "Carol"

    updated = client.patch("/api/auth/me", json={"phone": "+1 555 123 4567"}, headers=headers)
    assert updated.json()["phone"] == "+1 555 123 4567"
    assert updated.json()["full_name"] == "Carol"


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_place_order_over_http(client, customer_user, products, auth_headers):
    resp = _place(client, auth_headers(customer_user), products)

    assert resp.status_code == 201
    body = resp.json()
    assert Decimal(body["total_amount"]) == Decimal("379.97")
    assert body["status"] == "pending"
    assert body["can_cancel"] is True
    assert body["total_display"] == "$379.97"
    assert body["status_info"]["label"] == "Pending"
    assert len(body["items"]) == 2
    assert {item["product_name"] for item in body["items"]} == {"Wireless Headphones", "Smart Watch"}


def test_client_supplied_total_is_ignored(client, customer_user, products, auth_headers):
    resp = client.post(
        "/api/orders",
        json={
            "shipping_address": "123 Main St",
            "total_amount": "0.01",
            "items": [{"product_id": products["p2"].id, "quantity": 1, "unit_price": "199.99"}],
        },
        headers=auth_headers(customer_user),
    )
    assert Decimal(resp.json()["total_amount"]) == Decimal("199.99")


def test_place_order_without_token_is_unauthorized(client, products):
    resp = _place(client, {}, products)
    assert resp.status_code == 401
    assert resp.json()["kind"] == "unauthorized"


def test_place_order_with_empty_cart_is_invalid(client, customer_user, products, auth_headers):
    resp = client.post(
        "/api/orders",
        json={"shipping_address": "123 Main St", "items": []},
        headers=auth_headers(customer_user),
    )
    assert resp.status_code == 422
    assert resp.json()["kind"] == "invalid_input"


def test_order_history_and_cancel(client, customer_user, other_user, products, auth_headers):
    headers = auth_headers(customer_user)
    order_id = _place(client, headers, products).json()["id"]

    listed = client.get("/api/orders", headers=headers).json()
    assert [o["id"] for o in listed] == [order_id]

    assert client.get(f"/api/orders/{order_id}", headers=auth_headers(other_user)).status_code == 404

    cancelled = client.post(f"/api/orders/{order_id}/cancel", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["can_cancel"] is False

    again = client.post(f"/api/orders/{order_id}/cancel", headers=headers)
    assert again.status_code == 409
    assert again.json()["kind"] == "invalid_transition"

    stats = client.get("/api/orders/stats", headers=headers).json()
    assert stats["total_orders"] == 1
    assert stats["orders_by_status"]["cancelled"] == 1

    recent = client.get("/api/orders/recent", headers=headers).json()
    assert recent[0]["total_items"] == 3


def test_admin_status_updates(client, customer_user, admin_user, products, auth_headers):
    order_id = _place(client, auth_headers(customer_user), products).json()["id"]
    url = f"/api/orders/{order_id}/status"

    assert client.patch(url, json={"status": "processing"}, headers=auth_headers(customer_user)).status_code == 403

    admin = auth_headers(admin_user)
    assert client.patch(url, json={"status": "processing"}, headers=admin).json()["status"] == "processing"
    assert client.patch(url, json={"status": "shipped"}, headers=admin).json()["status"] == "shipped"

    cancel = client.post(f"/api/orders/{order_id}/cancel", headers=auth_headers(customer_user))
    assert cancel.status_code == 409
    assert cancel.json()["message"] == "Only pending or processing orders can be cancelled"

    back = client.patch(url, json={"status": "pending"}, headers=admin)
    assert back.status_code == 409
    unknown = client.patch(url, json={"status": "lost"}, headers=admin)
    assert unknown.status_code == 422


def test_cart_and_checkout(client, customer_user, products, auth_headers):
    headers = auth_headers(customer_user)

    resp = client.post("/api/cart/items", json={"product_id": products["p1"].id, "quantity": 2}, headers=headers)
    assert resp.status_code == 201
    client.post("/api/cart/items", json={"product_id": products["book"].id}, headers=headers)
    cart = client.patch(f"/api/cart/items/{products['book'].id}", json={"quantity": 3}, headers=headers).json()
    assert cart["item_count"] == 5
    assert Decimal(cart["subtotal"]) == Decimal("217.48")

    order = client.post("/api/orders/checkout", json={"shipping_address": "5 Pine Rd"}, headers=headers)
    assert order.status_code == 201
    assert Decimal(order.json()["total_amount"]) == Decimal("217.48")

    assert client.get("/api/cart", headers=headers).json()["items"] == []


def test_cart_requires_login(client):
    resp = client.get("/api/cart")
    assert resp.status_code == 401
    assert resp.json()["kind"] == "unauthorized"


def test_catalog_browsing(client, products):
    listed = client.get("/api/products").json()
    assert {p["name"] for p in listed} == {"Wireless Headphones", "Smart Watch", "Paper Novel"}

    books = client.get("/api/products", params={"category": "books"}).json()
    assert [p["name"] for p in books] == ["Paper Novel"]

    found = client.get("/api/products/search", params={"q": "watch"}).json()
    assert [p["name"] for p in found] == ["Smart Watch"]

    assert client.get("/api/products/categories").json() == ["books", "electronics"]
    assert client.get("/api/products/missing").status_code == 404


def test_catalog_admin(client, admin_user, customer_user, auth_headers):
    payload = {
        "name": "Desk Lamp",
        "price": "24.00",
        "stock_quantity": 5,
        "category": "home",
        "image_urls": ["/img/lamp-1.jpg", "/img/lamp-2.jpg"],
    }
    assert client.post("/api/products", json=payload, headers=auth_headers(customer_user)).status_code == 403

    admin = auth_headers(admin_user)
    created = client.post("/api/products", json=payload, headers=admin)
    assert created.status_code == 201
    product = created.json()
    assert [img["is_primary"] for img in product["images"]] == [True, False]

    image = client.post(
        f"/api/products/{product['id']}/images", json={"image_url": "/img/lamp-3.jpg", "is_primary": True}, headers=admin
    ).json()
    assert image["display_order"] == 2

    detail = client.get(f"/api/products/{product['id']}").json()
    assert [img["is_primary"] for img in detail["images"]] == [False, False, True]

    stock = client.put(f"/api/products/{product['id']}/stock", json={"stock_quantity": 9}, headers=admin)
    assert stock.json()["stock_quantity"] == 9

    assert client.delete(f"/api/products/{product['id']}", headers=admin).status_code == 204


def test_ordered_product_cannot_be_deleted(client, admin_user, customer_user, products, auth_headers):
    _place(client, auth_headers(customer_user), products)
    resp = client.delete(f"/api/products/{products['p1'].id}", headers=auth_headers(admin_user))
    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"
