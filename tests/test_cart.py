from storefront import config


async def test_session_cart_is_created_on_demand(client):
    r = await client.get("/api/cart/abc123")
    assert r.status_code == 200
    body = r.json()
    assert body["cart"]["session_id"] == "abc123"
    assert body["items"] == []
    assert body["count"] == 0
    assert body["total"] == 0

    again = (await client.get("/api/cart/abc123")).json()
    assert again["cart"]["id"] == body["cart"]["id"]


async def test_create_cart_requires_session_id_for_anonymous(client):
    assert (await client.post("/api/cart", json={})).status_code == 400


async def test_adding_items_grows_count_by_quantity(client, session_cart, make_product):
    product = await make_product(price=120)
    cart = await session_cart("s-1")

    r = await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": product.id, "quantity": 2})
    assert r.status_code == 201
    assert r.json()["cart"]["count"] == 2

    # same product again merges into the existing line
    r = await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": product.id, "quantity": 3})
    assert r.status_code == 200
    summary = r.json()["cart"]
    assert summary["count"] == 5
    assert len(summary["items"]) == 1
    assert summary["items"][0]["line_total"] == 600
    assert summary["subtotal"] == 600
    assert summary["shipping"] == config.SHIPPING_FEE
    assert summary["total"] == 600 + config.SHIPPING_FEE


async def test_add_item_errors(client, session_cart, make_product):
    product = await make_product()
    cart = await session_cart()
    r = await client.post("/api/cart/99999/items", json={"product_id": product.id})
    assert r.status_code == 404
    r = await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": 99999})
    assert r.status_code == 404
    r = await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": product.id, "quantity": 0})
    assert r.status_code == 400


async def test_removing_units_then_last_unit_removes_row(client, session_cart, make_product):
    product = await make_product()
    cart = await session_cart("s-2")
    r = await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": product.id, "quantity": 3})
    item_id = r.json()["item"]["id"]

    r = await client.delete(f"/api/cart/items/{item_id}", params={"quantity": 2})
    assert r.status_code == 204
    summary = (await client.get("/api/cart/s-2")).json()
    assert summary["count"] == 1
    assert summary["items"][0]["id"] == item_id

    r = await client.delete(f"/api/cart/items/{item_id}", params={"quantity": 1})
    assert r.status_code == 204
    summary = (await client.get("/api/cart/s-2")).json()
    assert summary["items"] == []
    assert summary["count"] == 0

    assert (await client.delete(f"/api/cart/items/{item_id}")).status_code == 404


async def test_update_quantity_and_clear(client, session_cart, make_product):
    a = await make_product(price=100)
    b = await make_product(price=50)
    cart = await session_cart("s-3")
    r = await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": a.id})
    item_id = r.json()["item"]["id"]
    await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": b.id, "quantity": 2})

    r = await client.patch(f"/api/cart/items/{item_id}", json={"quantity": 4})
    assert r.status_code == 200
    assert r.json()["quantity"] == 4
    assert (await client.patch(f"/api/cart/items/{item_id}", json={"quantity": 0})).status_code == 400
    assert (await client.patch("/api/cart/items/99999", json={"quantity": 1})).status_code == 404

    summary = (await client.get("/api/cart/s-3")).json()
    assert summary["count"] == 6
    assert summary["subtotal"] == 500

    assert (await client.delete(f"/api/cart/{cart['id']}/items")).status_code == 204
    assert (await client.get("/api/cart/s-3")).json()["items"] == []


async def test_user_cart_is_private(client, register, make_product):
    owner = await register()
    stranger = await register()
    product = await make_product()

    r = await client.get("/api/cart", headers=owner["headers"])
    assert r.status_code == 200
    cart_id = r.json()["cart"]["id"]
    assert r.json()["cart"]["user_id"] == owner["id"]

    r = await client.post(f"/api/cart/{cart_id}/items", json={"product_id": product.id}, headers=owner["headers"])
    assert r.status_code == 201

    r = await client.post(f"/api/cart/{cart_id}/items", json={"product_id": product.id},
                          headers=stranger["headers"])
    assert r.status_code == 403
    r = await client.post(f"/api/cart/{cart_id}/items", json={"product_id": product.id})
    assert r.status_code == 401

    # POST /api/cart while signed in returns the same cart
    r = await client.post("/api/cart", json={}, headers=owner["headers"])
    assert r.json()["id"] == cart_id
