"""FastAPI dependencies."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.db.database import get_db
from storefront.services.ordering.intake import OrderIntakeService
from storefront.services.payments.payhere import PayHereSigner
from storefront.services.persistence.offers import OfferPersistenceService
from storefront.services.persistence.orders import OrderPersistenceService
from storefront.services.pricing.engine import PricingPolicy


def get_pricing_policy() -> PricingPolicy:
    """Get the deployment's pricing policy."""
    return PricingPolicy.from_settings(settings)


def get_signer() -> PayHereSigner:
    """Get the PayHere signer for the configured merchant."""
    return PayHereSigner(settings.payhere_merchant_id, settings.payhere_merchant_secret)


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderPersistenceService:
    return OrderPersistenceService(db)


def get_offer_service(db: AsyncSession = Depends(get_db)) -> OfferPersistenceService:
    return OfferPersistenceService(db)


def get_intake_service(
    orders: OrderPersistenceService = Depends(get_order_service),
    offers: OfferPersistenceService = Depends(get_offer_service),
    pricing_policy: PricingPolicy = Depends(get_pricing_policy),
    signer: PayHereSigner = Depends(get_signer),
) -> OrderIntakeService:
    """Get the order intake service for this request."""
    return OrderIntakeService(
        orders=orders,
        offers=offers,
        pricing_policy=pricing_policy,
        signer=signer,
        settings=settings,
    )
