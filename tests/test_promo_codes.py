PROMO = {"code": "welcome", "description": "Welcome gift", "discount_type": "fixed", "discount_amount": 100}


async def test_create_stores_upper_case_and_rejects_duplicates(client, admin_headers):
    r = await client.post("/api/admin/promo-codes", json=PROMO, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()["code"] == "WELCOME"
    assert r.json()["used_count"] == 0

    r = await client.post("/api/admin/promo-codes", json={**PROMO, "code": "Welcome"}, headers=admin_headers)
    assert r.status_code == 409


async def test_percentage_over_100_is_rejected(client, admin_headers):
    r = await client.post("/api/admin/promo-codes", headers=admin_headers,
                          json={**PROMO, "discount_type": "percentage", "discount_amount": 150})
    assert r.status_code == 400


async def test_validate(client, admin_headers):
    await client.post("/api/admin/promo-codes", json={**PROMO, "min_order_amount": 300}, headers=admin_headers)

    r = await client.post("/api/promo-codes/validate", json={"code": "welcome", "subtotal": 500})
    assert r.status_code == 200
    assert r.json()["valid"] is True
    assert r.json()["discount"] == 100

    r = await client.post("/api/promo-codes/validate", json={"code": "WELCOME", "subtotal": 200})
    assert r.status_code == 400
    assert r.json()["detail"] == "Minimum order amount is 300"

    r = await client.post("/api/promo-codes/validate", json={"code": "MISSING", "subtotal": 500})
    assert r.status_code == 404


async def test_toggle_deactivates(client, admin_headers):
    promo_id = (await client.post("/api/admin/promo-codes", json=PROMO, headers=admin_headers)).json()["id"]
    r = await client.patch(f"/api/admin/promo-codes/{promo_id}/toggle", headers=admin_headers)
    assert r.json()["is_active"] is False

    r = await client.post("/api/promo-codes/validate", json={"code": "WELCOME", "subtotal": 500})
    assert r.status_code == 400
    assert r.json()["detail"] == "Promo code is not active"


async def test_expired_code(client, admin_headers):
    await client.post("/api/admin/promo-codes", headers=admin_headers, json={
        **PROMO, "start_date": "2020-01-01T00:00:00Z", "end_date": "2020-02-01T00:00:00Z",
    })
    r = await client.post("/api/promo-codes/validate", json={"code": "WELCOME", "subtotal": 500})
    assert r.status_code == 400
    assert r.json()["detail"] == "Promo code has expired"


async def test_update_and_delete(client, admin_headers):
    promo_id = (await client.post("/api/admin/promo-codes", json=PROMO, headers=admin_headers)).json()["id"]
    r = await client.patch(f"/api/admin/promo-codes/{promo_id}", json={"discount_amount": 75, "max_uses": 10},
                           headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["discount_amount"] == 75
    assert r.json()["max_uses"] == 10

    assert (await client.delete(f"/api/admin/promo-codes/{promo_id}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/admin/promo-codes/{promo_id}", headers=admin_headers)).status_code == 404
    assert (await client.get("/api/admin/promo-codes", headers=admin_headers)).json() == []
