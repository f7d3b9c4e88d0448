import os
import uuid

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "test"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["OBJECT_STORAGE_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront import auth, crud, mailer
from storefront.app import app
from storefront.db import Base, get_db

ADMIN_PASSWORD = "admin-pass-123"
USER_PASSWORD = "secret-pass-1"

CHECKOUT_DETAILS = {
    "customer_name": "Dana Levi",
    "customer_email": "dana@example.com",
    "customer_phone": "0501234567",
    "shipping_address": {"address": "12 Herzl St", "city": "Tel Aviv", "postal_code": "6100000", "country": "Israel"},
}


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def getdel(self, key):
        return self.store.pop(key, None)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(auth, "redis_client", fake)
    return fake


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []

    async def fake_send(to, subject, text=None, html=None):
        sent.append({"to": to, "subject": subject, "text": text, "html": html})
        return True

    monkeypatch.setattr(mailer, "send_email", fake_send)
    return sent


@pytest.fixture
async def client(session_factory, fake_redis):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_category(session_factory):
    async def _make(name="Rings", slug=None):
        async with session_factory() as db:
            return await crud.create_category(db, {
                "name": name,
                "slug": slug or f"cat-{uuid.uuid4().hex[:8]}",
                "description": f"{name} collection",
            })
    return _make


@pytest.fixture
def make_product(session_factory, make_category):
    async def _make(price=500, sale_price=None, stock=None, category_id=None, **extra):
        if category_id is None:
            category_id = (await make_category()).id
        data = {
            "name": extra.pop("name", "Moissanite Ring"),
            "description": "A ring",
            "price": price,
            "sale_price": sale_price,
            "main_image": "https://img.test/ring.jpg",
            "images": [],
            "category_id": category_id,
            "sku": extra.pop("sku", f"SKU-{uuid.uuid4().hex[:8]}"),
            **extra,
        }
        async with session_factory() as db:
            product = await crud.create_product(db, data)
            if stock is not None:
                await crud.create_inventory(db, {"product_id": product.id, "quantity": stock})
                await db.refresh(product)
        return product
    return _make


@pytest.fixture
def register(client):
    async def _register(username=None, email=None, password=USER_PASSWORD):
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        r = await client.post("/api/register", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        })
        assert r.status_code == 201, r.text
        client.cookies.clear()
        body = r.json()
        return {"id": body["user"]["id"], "token": body["access_token"], "headers": bearer(body["access_token"])}
    return _register


@pytest.fixture
async def customer(register):
    return await register()


@pytest.fixture
async def admin_headers(client, session_factory):
    async with session_factory() as db:
        await crud.create_admin(db, "boss", "boss@example.com", ADMIN_PASSWORD)
    r = await client.post("/api/admin/login", json={"username": "boss", "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return bearer(r.json()["access_token"])


@pytest.fixture
def session_cart(client):
    async def _cart(session_id=None):
        r = await client.post("/api/cart", json={"session_id": session_id or uuid.uuid4().hex})
        assert r.status_code == 201, r.text
        return r.json()
    return _cart
