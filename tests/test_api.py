import uuid

import pytest


@pytest.fixture
async def shop(client):
    store = (await client.post("/api/v1/stores", json={"name": "API Store"})).json()
    headers = {"X-Store-Id": store["id"], "X-Actor": "admin@shop"}
    product = (await client.post(
        "/api/v1/products",
        json={"name": "Kurta", "price": "1500.00", "stock_quantity": 5},
        headers=headers,
    )).json()
    return headers, product


def _order_body(product_id, quantity=1, email="zara@example.com", phone="0333-0000000", address="5 Canal Rd"):
    return {
        "product_id": product_id,
        "quantity": quantity,
        "contact": {"name": "Zara", "email": email, "phone": phone, "address": address},
    }


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "connected"


async def test_order_lifecycle_over_http(client, shop):
    headers, product = shop

    created = await client.post("/api/v1/orders", json=_order_body(product["id"], quantity=2), headers=headers)
    assert created.status_code == 201
    order = created.json()
    assert order["status"] == "PENDING"
    assert order["timeline"][0]["actor"] == "admin@shop"

    product_after = (await client.get(f"/api/v1/products/{product['id']}", headers=headers)).json()
    assert product_after["stock_quantity"] == 3

    cancelled = await client.put(
        f"/api/v1/orders/{order['id']}/status", json={"status": "cancelled"}, headers=headers
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"

    product_after = (await client.get(f"/api/v1/products/{product['id']}", headers=headers)).json()
    assert product_after["stock_quantity"] == 5


async def test_insufficient_stock_is_rendered_with_available_quantity(client, shop):
    headers, product = shop

    response = await client.post("/api/v1/orders", json=_order_body(product["id"], quantity=9), headers=headers)

    assert response.status_code == 409
    body = response.json()
    assert body["type"] == "InsufficientStockError"
    assert body["available"] == 5
    assert body["detail"] == "Insufficient stock. Only 5 units available."


async def test_invalid_return_quantity_is_a_400(client, shop):
    headers, product = shop
    order = (await client.post("/api/v1/orders", json=_order_body(product["id"], quantity=2), headers=headers)).json()

    response = await client.post(
        "/api/v1/returns", json={"order_id": order["id"], "quantity": 3, "reason": "Too big"}, headers=headers
    )

    assert response.status_code == 400
    assert response.json()["type"] == "InvalidQuantityError"
    assert response.json()["remaining"] == 2


async def test_return_approval_and_order_detail(client, shop):
    headers, product = shop
    order = (await client.post("/api/v1/orders", json=_order_body(product["id"], quantity=2), headers=headers)).json()
    created = (await client.post(
        "/api/v1/returns", json={"order_id": order["id"], "quantity": 1, "reason": "Stitching"}, headers=headers
    )).json()

    approved = await client.put(
        f"/api/v1/returns/{created['id']}/status", json={"status": "Approved", "note": "ok"}, headers=headers
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"
    assert approved.json()["history"][0]["actor"] == "admin@shop"

    detail = (await client.get(f"/api/v1/orders/{order['id']}", headers=headers)).json()
    assert [r["id"] for r in detail["returns"]] == [created["id"]]

    product_after = (await client.get(f"/api/v1/products/{product['id']}", headers=headers)).json()
    assert product_after["stock_quantity"] == 4


async def test_customer_detail_aggregates_orders(client, shop):
    headers, product = shop
    first = (await client.post("/api/v1/orders", json=_order_body(product["id"]), headers=headers)).json()
    await client.post(
        "/api/v1/orders", json=_order_body(product["id"], email="ZARA@example.com "), headers=headers
    )

    detail = await client.get(f"/api/v1/customers/{first['customer_id']}", headers=headers)

    assert detail.status_code == 200
    body = detail.json()
    assert body["order_count"] == 2
    assert float(body["total_spent"]) == 3000.0
    assert body["alternative_emails"] == []


async def test_customer_update_merge_over_http(client, shop):
    headers, product = shop
    keep = (await client.post("/api/v1/orders", json=_order_body(product["id"]), headers=headers)).json()
    drop = (await client.post(
        "/api/v1/orders", json=_order_body(product["id"], email="zara.alt@example.com", phone="0344-1111111", address="9 Mall Rd"),
        headers=headers,
    )).json()
    assert keep["customer_id"] != drop["customer_id"]

    response = await client.patch(
        f"/api/v1/customers/{drop['customer_id']}", json={"phone": "03330000000"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["id"] == keep["customer_id"]
    gone = await client.get(f"/api/v1/customers/{drop['customer_id']}", headers=headers)
    assert gone.status_code == 404


async def test_cross_store_access_is_not_found(client, shop):
    headers, product = shop
    order = (await client.post("/api/v1/orders", json=_order_body(product["id"]), headers=headers)).json()
    other_store = (await client.post("/api/v1/stores", json={"name": "Elsewhere"})).json()

    response = await client.get(f"/api/v1/orders/{order['id']}", headers={"X-Store-Id": other_store["id"]})

    assert response.status_code == 404
    assert response.json()["type"] == "NotFoundError"


async def test_store_header_is_required(client):
    response = await client.get("/api/v1/orders")

    assert response.status_code == 422


async def test_unknown_product_name_is_a_404(client, shop):
    headers, _ = shop
    body = _order_body(None)
    body.pop("product_id")
    body["product_name"] = "Does Not Exist"

    response = await client.post("/api/v1/orders", json=body, headers=headers)

    assert response.status_code == 404
    assert response.json()["type"] == "ProductNotFoundError"


async def test_unknown_return_is_a_404(client, shop):
    headers, _ = shop

    response = await client.get(f"/api/v1/returns/{uuid.uuid4()}", headers=headers)

    assert response.status_code == 404


async def test_malformed_email_is_rejected_before_any_write(client, shop):
    headers, product = shop

    response = await client.post(
        "/api/v1/orders", json=_order_body(product["id"], email="not-an-email"), headers=headers
    )

    assert response.status_code == 422
    product_after = (await client.get(f"/api/v1/products/{product['id']}", headers=headers)).json()
    assert product_after["stock_quantity"] == 5
    customers = (await client.get("/api/v1/customers", headers=headers)).json()
    assert customers["total"] == 0
