"""
Shared fixtures: an in-memory SQLite database per test, the mock media
service and an in-process event broker wired into the FastAPI app through
dependency overrides, plus small factories for restaurants, menu items and
customers.
"""

import itertools
import os
from types import SimpleNamespace

# Must be set before qrar reads its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENV_MODE"] = "development"
os.environ["REALTIME_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qrar.database import Base, get_db
from qrar.main import app
from qrar.services.media import MockMediaService, get_media_service
from qrar.services.realtime import MemoryEventBroker, get_event_broker

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def image_upload(name: str = "image.png", field: str = "img") -> dict:
    return {field: (name, PNG_BYTES, "image/png")}


@pytest.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def media():
    return MockMediaService()


@pytest.fixture
def broker():
    return MemoryEventBroker(queue_size=10)


@pytest.fixture
async def client(session_maker, media, broker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_service] = lambda: media
    app.dependency_overrides[get_event_broker] = lambda: broker

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_restaurant(client):
    """Register and log in a restaurant; returns id, token and auth headers."""
    counter = itertools.count(1)

    async def _make(tax_type: str = "none", tax_percentage: float = 0.0, **overrides):
        n = next(counter)
        payload = {
            "name": f"Restaurant {n}",
            "email": f"owner{n}@example.com",
            "password": "secret123",
            "number": f"98765432{n:02d}",
            "address": f"{n} Main Street",
            "tax_type": tax_type,
            "tax_percentage": tax_percentage,
            **overrides,
        }
        response = await client.post("/restaurants/register", json=payload)
        assert response.status_code == 201, response.text

        login = await client.post(
            "/restaurants/login",
            json={"email": payload["email"], "password": payload["password"]},
        )
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return SimpleNamespace(
            id=response.json()["id"],
            email=payload["email"],
            number=payload["number"],
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def add_category(client):
    async def _add(restaurant, cat_name: str = "Mains"):
        response = await client.post(
            "/categories",
            data={"cat_name": cat_name},
            files=image_upload(f"{cat_name}.png"),
            headers=restaurant.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _add


@pytest.fixture
def add_product(client, add_category):
    """Create a product, and a category for it unless one is given."""

    async def _add(restaurant, price: float = 100.0, tax_rate: float = 0.0, name: str = "Thali", category_id=None):
        if category_id is None:
            category_id = (await add_category(restaurant))["id"]
        response = await client.post(
            "/products",
            data={
                "name": name,
                "category_id": str(category_id),
                "price": str(price),
                "tax_rate": str(tax_rate),
            },
            files=image_upload(f"{name}.png"),
            headers=restaurant.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _add


@pytest.fixture
def add_customer(client):
    counter = itertools.count(1)

    async def _add(restaurant, dob: str = "1995-06-15", phone=None):
        n = next(counter)
        response = await client.post(
            f"/users/{restaurant.id}",
            json={"name": f"Customer {n}", "phone": phone or f"90000000{n:02d}", "dob": dob},
        )
        assert response.status_code in (200, 201), response.text
        return response.json()["customer_identifier"]

    return _add


@pytest.fixture
def place_order(client):
    async def _place(restaurant, customer_id: int, items: list, **extra):
        return await client.post(
            f"/orders/{restaurant.id}",
            json={"customer_id": customer_id, "items": items, **extra},
        )

    return _place
