async def test_list_and_filter_products(client, make_category, make_product):
    rings = await make_category("Rings", "rings")
    necklaces = await make_category("Necklaces", "necklaces")
    await make_product(name="Solitaire Ring", category_id=rings.id, is_featured=True)
    await make_product(name="Tennis Necklace", category_id=necklaces.id, is_new=True)

    r = await client.get("/api/products")
    assert r.status_code == 200
    assert len(r.json()) == 2

    r = await client.get("/api/products", params={"category": "necklaces"})
    assert [p["name"] for p in r.json()] == ["Tennis Necklace"]
    assert r.json()[0]["category_slug"] == "necklaces"

    r = await client.get("/api/products", params={"q": "solitaire"})
    assert [p["name"] for p in r.json()] == ["Solitaire Ring"]

    assert [p["name"] for p in (await client.get("/api/products/featured")).json()] == ["Solitaire Ring"]
    assert [p["name"] for p in (await client.get("/api/products/new")).json()] == ["Tennis Necklace"]


async def test_product_detail_and_related(client, make_category, make_product):
    rings = await make_category("Rings", "rings")
    a = await make_product(name="A", category_id=rings.id, price=900, sale_price=750)
    b = await make_product(name="B", category_id=rings.id)
    await make_product(name="Elsewhere")

    r = await client.get(f"/api/products/{a.id}")
    assert r.status_code == 200
    assert r.json()["unit_price"] == 750
    assert r.json()["category_name"] == "Rings"

    related = (await client.get(f"/api/products/{a.id}/related")).json()
    assert [p["id"] for p in related] == [b.id]

    assert (await client.get("/api/products/99999")).status_code == 404
    assert (await client.get("/api/products/not-a-number")).status_code == 400


async def test_admin_product_crud(client, admin_headers, make_category):
    category = await make_category("Earrings", "earrings")
    payload = {
        "name": "Drop Earrings",
        "description": "Delicate drops",
        "price": 1899,
        "main_image": "https://img.test/drop.jpg",
        "category_id": category.id,
        "sku": "EAR-001",
    }
    r = await client.post("/api/products", json=payload, headers=admin_headers)
    assert r.status_code == 201
    product_id = r.json()["id"]

    assert (await client.post("/api/products", json=payload, headers=admin_headers)).status_code == 409
    r = await client.post("/api/products", json={**payload, "sku": "EAR-002", "category_id": 999},
                          headers=admin_headers)
    assert r.status_code == 404

    r = await client.patch(f"/api/products/{product_id}", json={"sale_price": 1500}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["unit_price"] == 1500

    assert (await client.delete(f"/api/products/{product_id}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/products/{product_id}")).status_code == 404


async def test_product_writes_need_admin(client, customer, make_category):
    category = await make_category()
    payload = {"name": "X", "description": "Y", "price": 10, "main_image": "m", "category_id": category.id, "sku": "S"}
    assert (await client.post("/api/products", json=payload)).status_code == 401
    assert (await client.post("/api/products", json=payload, headers=customer["headers"])).status_code == 403


async def test_categories(client, admin_headers, make_product):
    r = await client.post("/api/categories", json={"name": "Bracelets", "slug": "bracelets"}, headers=admin_headers)
    assert r.status_code == 201
    category_id = r.json()["id"]
    r = await client.post("/api/categories", json={"name": "Again", "slug": "bracelets"}, headers=admin_headers)
    assert r.status_code == 409
    r = await client.post("/api/categories", json={"name": "Bad", "slug": "Not A Slug"}, headers=admin_headers)
    assert r.status_code == 400

    assert (await client.get("/api/categories/bracelets")).json()["name"] == "Bracelets"
    assert (await client.get("/api/categories/nothing-here")).status_code == 404
    assert (await client.get("/api/categories/nothing-here/products")).json() == []

    product = await make_product(category_id=category_id)
    products = (await client.get("/api/categories/bracelets/products")).json()
    assert [p["id"] for p in products] == [product.id]

    # a category with products cannot go
    assert (await client.delete(f"/api/categories/{category_id}", headers=admin_headers)).status_code == 409
    await client.delete(f"/api/products/{product.id}", headers=admin_headers)
    assert (await client.delete(f"/api/categories/{category_id}", headers=admin_headers)).status_code == 204
    assert [c["slug"] for c in (await client.get("/api/categories")).json()] == []


async def test_product_patch_ignores_nulls_for_required_fields(client, admin_headers, make_product):
    product = await make_product(price=900, sale_price=700)
    r = await client.patch(f"/api/products/{product.id}",
                           json={"price": None, "name": None, "sku": None, "sale_price": None},
                           headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["price"] == 900
    assert body["name"] == "Moissanite Ring"
    assert body["sku"] == product.sku
    # optional columns can still be cleared
    assert body["sale_price"] is None
    assert body["unit_price"] == 900


async def test_category_patch_ignores_nulls_for_required_fields(client, admin_headers, make_category):
    category = await make_category("Anklets", "anklets")
    r = await client.patch(f"/api/categories/{category.id}", json={"name": None, "slug": None, "description": None},
                           headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Anklets"
    assert r.json()["slug"] == "anklets"
    assert r.json()["description"] is None
