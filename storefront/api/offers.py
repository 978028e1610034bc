"""Offer endpoints."""
import logging
from decimal import Decimal
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from storefront.core.dependencies import get_offer_service
from storefront.db.models import utcnow
from storefront.services.checkout.errors import OfferInvalidError
from storefront.services.offers.models import Offer
from storefront.services.offers.resolver import OfferResolver
from storefront.services.persistence.offers import OfferPersistenceService, to_offer
from storefront.services.pricing.money import format_amount

router = APIRouter()
logger = logging.getLogger(__name__)


class ApplyOfferRequest(BaseModel):
    code: str
    subtotal: Decimal = Field(ge=0)


def serialize_offer(offer: Offer) -> Dict[str, Any]:
    return offer.model_dump(mode="json")


@router.get("/api/offers/active")
async def list_active_offers(offers: OfferPersistenceService = Depends(get_offer_service)):
    """Offers currently running."""
    records = await offers.list_active(utcnow())
    return {"success": True, "data": [serialize_offer(to_offer(record)) for record in records]}


@router.post("/api/offers/apply")
async def apply_offer(
    body: ApplyOfferRequest,
    offers: OfferPersistenceService = Depends(get_offer_service),
):
    """Check an offer code and price it against a subtotal."""
    record = await offers.get_by_code(body.code)
    if record is None:
        logger.info(f"[OFFERS] Unknown code '{body.code}'")
        raise HTTPException(status_code=404, detail="Offer not found")

    offer = to_offer(record)
    resolver = OfferResolver()
    try:
        resolver.validate(offer, utcnow())
    except OfferInvalidError as e:
        raise HTTPException(status_code=422, detail=e.message)

    discount = resolver.discount_for(offer, body.subtotal)
    return {
        "success": True,
        "data": {"offer": serialize_offer(offer), "discount": format_amount(discount)},
    }
