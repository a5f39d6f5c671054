"""
Test Configuration — Fixtures for async DB, test client, and mock data.

Each test gets a fresh in-memory SQLite database. The API client shares
the test session, so rows seeded by a test are visible to the app and
rows written by the app are visible to the test.
"""

import uuid
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_db
from api.main import app
from db.models import Alert, Batch, Location, Product
from db.session import Base
from inventory.store import SqlInventoryStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
async def test_engine():
    """Create a private in-memory database with all tables."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(test_db):
    return SqlInventoryStore(test_db)


@pytest.fixture
async def client(test_db):
    """Create an async test client with the DB dependency overridden."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Row builders ───────────────────────────────────────────────────────────


@pytest.fixture
def add_product(test_db):
    async def _add(**overrides) -> Product:
        fields = {
            "sku": f"SKU-{uuid.uuid4().hex[:8].upper()}",
            "name": "Test Product",
            "reorder_point": 10,
            "total_stock": 0,
        }
        fields.update(overrides)
        product = Product(**fields)
        test_db.add(product)
        await test_db.commit()
        return product

    return _add


@pytest.fixture
def add_location(test_db):
    async def _add(**overrides) -> Location:
        fields = {"code": f"LOC-{uuid.uuid4().hex[:6].upper()}", "name": "Main Warehouse"}
        fields.update(overrides)
        location = Location(**fields)
        test_db.add(location)
        await test_db.commit()
        return location

    return _add


@pytest.fixture
def add_batch(test_db):
    async def _add(product: Product, location: Location, **overrides) -> Batch:
        fields = {
            "product_id": product.id,
            "location_id": location.id,
            "batch_number": f"B-{uuid.uuid4().hex[:6].upper()}",
            "quantity": 10,
        }
        fields.update(overrides)
        batch = Batch(**fields)
        test_db.add(batch)
        await test_db.commit()
        return batch

    return _add


@pytest.fixture
def add_alert(test_db):
    async def _add(related_id: uuid.UUID, **overrides) -> Alert:
        fields = {
            "alert_type": "stock",
            "alert_level": "medium",
            "message": "Test alert",
            "related_id": related_id,
            "related_type": "product",
            "resolved": False,
        }
        fields.update(overrides)
        alert = Alert(**fields)
        test_db.add(alert)
        await test_db.commit()
        return alert

    return _add


@pytest.fixture
async def seeded_db(add_product, add_location, add_batch):
    """A product with two batches at one location, plus an empty second location."""
    product = await add_product(sku="SKU-0001", name="Whole Milk", category="Dairy", reorder_point=20)
    warehouse = await add_location(code="WH-1", name="Main Warehouse", description="Ground floor")
    backroom = await add_location(code="BR-1", name="Back Room")
    fresh = await add_batch(product, warehouse, batch_number="MILK-001", quantity=8, expiry_date=NOW + timedelta(days=5))
    older = await add_batch(product, warehouse, batch_number="MILK-002", quantity=4, expiry_date=NOW + timedelta(days=60))
    return {
        "product": product,
        "warehouse": warehouse,
        "backroom": backroom,
        "batches": [fresh, older],
    }
