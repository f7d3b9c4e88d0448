import pytest

from storefront import config, storage

from conftest import CHECKOUT_DETAILS

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def place_order(client, user, make_product):
    product = await make_product(price=100)
    cart = (await client.get("/api/cart", headers=user["headers"])).json()["cart"]
    await client.post(f"/api/cart/{cart['id']}/items", json={"product_id": product.id}, headers=user["headers"])
    r = await client.post("/api/orders", json={"cart_id": cart["id"], **CHECKOUT_DETAILS}, headers=user["headers"])
    return r.json()["order"]["id"]


async def test_customer_thread_and_admin_reply(client, customer, admin_headers):
    r = await client.post("/api/messages", json={"subject": "Sizing", "content": "Do you have size 7?"},
                          headers=customer["headers"])
    assert r.status_code == 201
    assert r.json()["is_admin"] is False

    unread = (await client.get("/api/admin/messages/unread", headers=admin_headers)).json()
    assert [m["content"] for m in unread] == ["Do you have size 7?"]

    r = await client.post("/api/admin/messages", headers=admin_headers,
                          json={"user_id": customer["id"], "content": "Yes, in stock."})
    assert r.status_code == 201
    reply_id = r.json()["id"]

    count = (await client.get("/api/messages/unread-count", headers=customer["headers"])).json()
    assert count == {"count": 1}

    thread = (await client.get("/api/messages", headers=customer["headers"])).json()
    assert [m["is_admin"] for m in thread] == [False, True]

    r = await client.post("/api/messages/read", json={"ids": [reply_id]}, headers=customer["headers"])
    assert r.json() == {"updated": 1}
    assert (await client.get("/api/messages/unread-count", headers=customer["headers"])).json() == {"count": 0}

    r = await client.post("/api/admin/messages/read", json={"ids": [thread[0]["id"]]}, headers=admin_headers)
    assert r.json() == {"updated": 1}
    assert (await client.get("/api/admin/messages/unread", headers=admin_headers)).json() == []


async def test_reply_to_unknown_user(client, admin_headers):
    r = await client.post("/api/admin/messages", headers=admin_headers, json={"user_id": "nobody", "content": "hi"})
    assert r.status_code == 404


async def test_order_messages_belong_to_the_order_owner(client, register, make_product):
    owner = await register()
    other = await register()
    order_id = await place_order(client, owner, make_product)

    r = await client.post("/api/messages", json={"content": "Where is it?", "order_id": order_id},
                          headers=owner["headers"])
    assert r.status_code == 201
    r = await client.post("/api/messages", json={"content": "Mine now", "order_id": order_id},
                          headers=other["headers"])
    assert r.status_code == 404

    msgs = (await client.get(f"/api/orders/{order_id}/messages", headers=owner["headers"])).json()
    assert [m["content"] for m in msgs] == ["Where is it?"]
    assert (await client.get(f"/api/orders/{order_id}/messages", headers=other["headers"])).status_code == 404


async def test_empty_message_is_rejected(client, customer):
    r = await client.post("/api/messages", json={"content": ""}, headers=customer["headers"])
    assert r.status_code == 400


@pytest.fixture
def storage_configured(monkeypatch):
    monkeypatch.setattr(config, "OBJECT_STORAGE_URL", "https://storage.test")
    monkeypatch.setattr(config, "OBJECT_STORAGE_PUBLIC_URL", "https://cdn.test/message-images")


async def test_upload_rejects_non_images(client, customer, storage_configured):
    r = await client.post("/api/messages/upload", files={"file": ("notes.txt", b"hello", "text/plain")},
                          headers=customer["headers"])
    assert r.status_code == 400


async def test_upload_rejects_oversize_files(client, customer, storage_configured, monkeypatch):
    monkeypatch.setattr(config, "MAX_IMAGE_BYTES", 32)
    r = await client.post("/api/messages/upload", files={"file": ("big.png", PNG, "image/png")},
                          headers=customer["headers"])
    assert r.status_code == 400


async def test_upload_without_storage_is_503(client, customer, monkeypatch):
    monkeypatch.setattr(config, "OBJECT_STORAGE_URL", None)
    r = await client.post("/api/messages/upload", files={"file": ("a.png", PNG, "image/png")},
                          headers=customer["headers"])
    assert r.status_code == 503


async def test_upload_failure_is_502(client, customer, storage_configured, monkeypatch):
    async def broken(data, content_type, user_id):
        raise storage.StorageError("boom")

    monkeypatch.setattr(storage, "upload_image", broken)
    r = await client.post("/api/messages/upload", files={"file": ("a.png", PNG, "image/png")},
                          headers=customer["headers"])
    assert r.status_code == 502


async def test_upload_returns_public_url(client, customer, storage_configured, monkeypatch):
    calls = []

    async def fake_upload(data, content_type, user_id):
        calls.append((len(data), content_type, user_id))
        return storage.public_url(storage.object_key(user_id, content_type))

    monkeypatch.setattr(storage, "upload_image", fake_upload)
    r = await client.post("/api/messages/upload", files={"file": ("a.png", PNG, "image/png")},
                          headers=customer["headers"])
    assert r.status_code == 201
    url = r.json()["url"]
    assert url.startswith(f"https://cdn.test/message-images/messages/{customer['id']}/")
    assert url.endswith(".png")
    assert calls == [(len(PNG), "image/png", customer["id"])]


async def test_upload_needs_a_customer(client):
    r = await client.post("/api/messages/upload", files={"file": ("a.png", PNG, "image/png")})
    assert r.status_code == 401


async def test_message_images_must_come_from_storage(client, customer, admin_headers, storage_configured):
    own = f"https://cdn.test/message-images/messages/{customer['id']}/abc.png"
    r = await client.post("/api/messages", json={"content": "Photo", "image_url": own}, headers=customer["headers"])
    assert r.status_code == 201
    assert r.json()["image_url"] == own

    for url in ("https://evil.test/x.png", "https://cdn.test/message-images/messages/someone-else/abc.png"):
        r = await client.post("/api/messages", json={"content": "Photo", "image_url": url},
                              headers=customer["headers"])
        assert r.status_code == 400

    r = await client.post("/api/admin/messages", headers=admin_headers,
                          json={"user_id": customer["id"], "content": "Ours", "image_url": "https://evil.test/x.png"})
    assert r.status_code == 400


async def test_message_image_rejected_without_storage(client, customer, monkeypatch):
    monkeypatch.setattr(config, "OBJECT_STORAGE_URL", None)
    r = await client.post("/api/messages", json={"content": "Photo", "image_url": "https://cdn.test/a.png"},
                          headers=customer["headers"])
    assert r.status_code == 400
