"""Pytest configuration and fixtures."""
import os

# Must be set before the app modules read settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.product import Product
from app.models.user import User
from main import app


@pytest.fixture
async def test_db():
    """Create test database."""
    TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    AsyncSessionLocal = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with AsyncSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def make_creator(test_db):
    """Factory for committed creator accounts."""
    counter = {"n": 0}

    async def _make(**overrides) -> User:
        counter["n"] += 1
        fields = {
            "name": f"Creator {counter['n']}",
            "email": f"creator{counter['n']}@example.com",
            "username": f"creator{counter['n']}",
            "status": "active",
            "user_role": "user",
        }
        fields.update(overrides)
        user = User(**fields)
        test_db.add(user)
        await test_db.commit()
        await test_db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(test_db):
    """Factory for committed products; prices in cents."""

    async def _make(creator: User, **overrides) -> Product:
        fields = {
            "user_id": creator.uuid,
            "title": "Preset Pack",
            "price": 5000,
            "is_active": True,
        }
        fields.update(overrides)
        product = Product(**fields)
        test_db.add(product)
        await test_db.commit()
        await test_db.refresh(product)
        return product

    return _make


@pytest.fixture
async def creator(make_creator):
    return await make_creator()


@pytest.fixture
async def admin(make_creator):
    return await make_creator(name="Admin", email="admin@example.com", username="admin", user_role="admin")


@pytest.fixture
async def product(make_product, creator):
    return await make_product(creator)


@pytest.fixture
async def client(test_db):
    """HTTP client bound to the app with the test session injected."""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
