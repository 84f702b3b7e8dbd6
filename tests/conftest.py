"""
Pytest configuration for storefront core tests

Every test gets its own SQLite database file, so tests can open several
sessions at once to exercise concurrent writers.
"""
import os

# Settings require DATABASE_URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///./storefront-test.db")

import uuid
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import select

from storefront.database import build_engine, build_session_factory, get_db, init_db
from storefront.models import Product, Store, Customer
from storefront.schemas.contact import ContactInfo


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def store(db):
    store = Store(id=uuid.uuid4(), name="Test Store")
    db.add(store)
    await db.commit()
    return store


@pytest.fixture
async def other_store(db):
    store = Store(id=uuid.uuid4(), name="Other Store")
    db.add(store)
    await db.commit()
    return store


@pytest.fixture
def make_product(db, store):
    async def _make(stock=10, price="100.00", name="Lawn Suit", store_id=None):
        product = Product(
            id=uuid.uuid4(),
            store_id=store_id or store.id,
            name=name,
            price=Decimal(price),
            stock_quantity=stock,
        )
        db.add(product)
        await db.commit()
        return product
    return _make


@pytest.fixture
def stock_of(session_factory):
    """Read a product's stock through a fresh session."""
    async def _stock(product_id):
        async with session_factory() as session:
            return await session.scalar(
                select(Product.stock_quantity).where(Product.id == product_id)
            )
    return _stock


@pytest.fixture
def customer_count(session_factory):
    async def _count(store_id):
        async with session_factory() as session:
            result = await session.execute(select(Customer.id).where(Customer.store_id == store_id))
            return len(result.scalars().all())
    return _count


@pytest.fixture
def contact():
    def _contact(name="Ayesha Khan", email="ayesha@example.com", phone="0300-1234567", address="12 Main St, Lahore"):
        return ContactInfo(name=name, email=email, phone=phone, address=address)
    return _contact


@pytest.fixture
async def client(session_factory):
    from storefront.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
