"""Shared test fixtures and configuration."""
import os
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("PAYHERE_MERCHANT_ID", "1211149")
os.environ.setdefault("PAYHERE_MERCHANT_SECRET", "test-merchant-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RESTAURANT_NAME", "Test Restaurant")

from storefront.main import app
from storefront.services.cart import sessions as session_carts
from storefront.core.config import Settings
from storefront.db.database import get_db
from storefront.db.models import Base
from storefront.db.models import Offer as OfferRecord
from storefront.services.cart.models import CartItem
from storefront.services.cart.store import CartStore
from storefront.services.offers.models import Offer, OfferType
from storefront.services.ordering.boundaries import OrderBoundary, PaymentVerificationBoundary
from storefront.services.ordering.submitter import OrderSubmitter
from storefront.services.payments.gateway import PaymentGatewayBridge
from storefront.services.payments.payhere import PayHereSigner
from storefront.services.persistence.local import InMemoryLocalStore
from storefront.services.pricing.engine import PricingPolicy


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed clock for offer windows
NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings():
    """Settings for testing."""
    return Settings(
        payhere_merchant_id="1211149",
        payhere_merchant_secret="test-merchant-secret",
        database_url=TEST_DATABASE_URL,
        restaurant_name="Test Restaurant",
        frontend_url="http://guest.test",
        backend_url="http://api.test",
    )


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def override_get_db(test_db):
    """Override get_db dependency with test database."""
    async def _override_get_db():
        yield test_db
    return _override_get_db


@pytest.fixture
async def api_client(override_get_db, test_settings, monkeypatch):
    """Async HTTP client bound to the app, with the test database."""
    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr("storefront.core.dependencies.settings", test_settings)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def clean_session_carts():
    """Clean up synced session carts before and after tests."""
    session_carts.clear_session_carts()
    yield
    session_carts.clear_session_carts()


@pytest.fixture
def signer(test_settings):
    return PayHereSigner(test_settings.payhere_merchant_id, test_settings.payhere_merchant_secret)


@pytest.fixture
async def seeded_offers(test_db):
    """Offers available to the API tests."""
    window = {
        "start_date": datetime(2026, 1, 1),
        "end_date": datetime(2030, 12, 31),
    }
    records = [
        OfferRecord(id="welcome10", code="WELCOME10", title="10% off", type="percentage",
                    value=Decimal("10"), is_active=True, redemptions=0, **window),
        OfferRecord(id="loyal15", code="LOYAL15", title="Returning guests", type="percentage",
                    value=Decimal("15"), is_active=True, redemptions=0, min_orders=2, **window),
        OfferRecord(id="old5", code="OLD5", title="Expired", type="fixed_amount",
                    value=Decimal("5"), is_active=True, redemptions=0,
                    start_date=datetime(2020, 1, 1), end_date=datetime(2020, 2, 1)),
    ]
    test_db.add_all(records)
    await test_db.commit()
    return records


# Checkout engine fixtures


@pytest.fixture
def local_store():
    return InMemoryLocalStore()


@pytest.fixture
def cart_store(local_store):
    return CartStore(local_store)


@pytest.fixture
def curry():
    return CartItem(id="curry", name="Chicken Curry", unit_price=Decimal("850.00"), category="mains")


@pytest.fixture
def tea():
    return CartItem(id="tea", name="Ceylon Tea", unit_price=Decimal("255.00"), category="drinks")


@pytest.fixture
def filled_cart(cart_store, curry, tea):
    """Cart with a subtotal of 1360.00 (850 + 2 x 255)."""
    cart_store.add_item(curry)
    cart_store.add_item(tea, 2)
    return cart_store


@pytest.fixture
def percentage_offer():
    return Offer(
        id="welcome10",
        code="WELCOME10",
        title="10% off",
        type=OfferType.PERCENTAGE,
        value=Decimal("10"),
        start_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2026, 12, 31, tzinfo=timezone.utc),
    )


@pytest.fixture
def order_boundary():
    """Mock create-order boundary."""
    boundary = AsyncMock(spec=OrderBoundary)
    return boundary


@pytest.fixture
def verification_boundary():
    """Mock payment verification boundary."""
    boundary = AsyncMock(spec=PaymentVerificationBoundary)
    return boundary


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def policy():
    return PricingPolicy()


@pytest.fixture
def submitter(order_boundary, verification_boundary, cart_store, local_store, policy):
    return OrderSubmitter(
        order_boundary=order_boundary,
        gateway_bridge=PaymentGatewayBridge(verification_boundary),
        cart_store=cart_store,
        local_store=local_store,
        pricing_policy=policy,
        clock=lambda: NOW,
    )


@pytest.fixture
def card_payload():
    """Minimal signed payload as returned for a card order."""
    order_id = "FO-000042"
    return {
        "action": "https://sandbox.payhere.lk/pay/checkout",
        "params": {
            "merchant_id": "1211149",
            "order_id": order_id,
            "amount": "1496.00",
            "currency": "LKR",
            "hash": "ABCDEF0123456789",
            "return_url": "http://guest.test/payment/success?orderId=42",
            "cancel_url": "http://guest.test/payment/cancel?orderId=42",
            "notify_url": "http://api.test/api/webhooks/payhere",
        },
    }


# Pytest configuration
def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test"
    )
