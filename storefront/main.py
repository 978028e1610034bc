"""Main FastAPI application."""
import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.core.config import settings
from storefront.core.logging import setup_logging
from storefront.db.database import AsyncSessionLocal, dispose_db, init_db
from storefront.api import cart, health, offers, orders, payments
from storefront.services.persistence.offers import OfferPersistenceService
from storefront.services.reconciliation import run_reconciliation_loop

logger = logging.getLogger(__name__)

DEFAULT_OFFERS_FILE = os.path.join(
    os.path.dirname(__file__), "services", "offers", "data", "offers.yaml"
)


async def seed_offers() -> None:
    async with AsyncSessionLocal() as db:
        await OfferPersistenceService(db).seed_from_yaml(
            settings.offers_seed_file or DEFAULT_OFFERS_FILE
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    await seed_offers()
    sweep = asyncio.create_task(
        run_reconciliation_loop(
            AsyncSessionLocal,
            timeout_minutes=settings.awaiting_payment_timeout_minutes,
            interval_seconds=settings.reconciliation_interval_seconds,
            cart_ttl_minutes=settings.session_cart_ttl_minutes,
        )
    )
    logger.info("[STARTUP] Storefront API ready")
    yield
    # Shutdown
    sweep.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep
    await dispose_db()


app = FastAPI(
    title="Hotel Storefront",
    description="Guest food ordering checkout API",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(orders.router, tags=["orders"])
app.include_router(payments.router, tags=["payments"])
app.include_router(offers.router, tags=["offers"])
app.include_router(cart.router, tags=["cart"])


@app.get("/")
async def root():
    return {
        "message": f"{settings.restaurant_name} storefront API",
        "version": "0.1.0",
    }
