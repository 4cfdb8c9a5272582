"""
Pytest configuration and fixtures for the Naboopay gateway tests.
"""

import os
import sys
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# Add app directory to Python path for imports
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)
sys.path.append(os.path.join(ROOT_DIR, "app"))

from config import Settings  # noqa: E402
from models import Base  # noqa: E402
from order_store import SqlOrderStore  # noqa: E402
from schemas import OrderCreate, OrderItemIn  # noqa: E402
from security import compute_signature  # noqa: E402

WEBHOOK_SECRET = "qh2spgnIj4xZboZWQmTAr6DMwgUCul9p"  # noqa: S105


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def sign():
    """Sign a raw body the way Naboopay does."""

    def _sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
        return compute_signature(body, secret)

    return _sign


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        STORE_URL="https://shop.example.com",
        NABOOPAY_API_TOKEN="naboo_test_token",
        NABOOPAY_WEBHOOK_SECRET=WEBHOOK_SECRET,
        NABOOPAY_API_URL="https://api.naboopay.test/api/v1",
    )


@pytest.fixture
def mock_redis():
    """Mock Redis client for testing."""
    redis_mock = AsyncMock()
    redis_mock.ping.return_value = True
    redis_mock.get.return_value = None
    redis_mock.setex.return_value = True
    redis_mock.close.return_value = None
    return redis_mock


@pytest_asyncio.fixture
async def sessionmaker():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def order_store(sessionmaker):
    return SqlOrderStore(sessionmaker)


@pytest.fixture
def order_data():
    return OrderCreate(
        currency="XOF",
        customer_email="awa@example.com",
        items=[
            OrderItemIn(
                name="Thiéboudienne",
                category="Food",
                unit_price=Decimal("2500.00"),
                quantity=2,
                description="Plat du jour",
            ),
            OrderItemIn(name="Bissap", unit_price=Decimal("499.50")),
        ],
    )


@pytest_asyncio.fixture
async def linked_order(order_store, order_data):
    """An order already linked to Naboopay transaction ``naboo_123``."""
    order = await order_store.create_order(order_data)
    return await order_store.set_transaction_id(order.order_id, "naboo_123")
