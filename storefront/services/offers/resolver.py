"""Offer validation and discount calculation."""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from storefront.services.checkout.errors import OfferInvalidError
from storefront.services.offers.models import Offer, OfferResolution, OfferType
from storefront.services.pricing.money import ZERO, to_money

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OfferResolver:
    """Validates an offer and prices it against a subtotal."""

    def validate(
        self, offer: Offer, now: datetime, order_count: Optional[int] = None
    ) -> None:
        """
        Check that an offer may be applied.

        Args:
            offer: The offer to check
            now: Current time
            order_count: Guest's lifetime order count. Only the server knows
                it; when None the ``target.min_orders`` gate is skipped.

        Raises:
            OfferInvalidError: with a short machine-readable reason
        """
        if not offer.is_active:
            raise OfferInvalidError("inactive")

        now = _as_utc(now)
        if now < _as_utc(offer.start_date):
            raise OfferInvalidError("not_started")
        if now > _as_utc(offer.end_date):
            raise OfferInvalidError("expired")

        if offer.max_redemptions is not None and offer.redemptions >= offer.max_redemptions:
            raise OfferInvalidError("exhausted")

        min_orders = offer.target.min_orders
        if min_orders and order_count is not None and order_count < min_orders:
            raise OfferInvalidError("min_orders_not_met")

    def discount_for(self, offer: Offer, subtotal: Decimal) -> Decimal:
        """Monetary discount for a valid offer, never above the subtotal."""
        subtotal = to_money(subtotal)
        if offer.type == OfferType.PERCENTAGE:
            discount = subtotal * offer.value / Decimal("100")
        elif offer.type == OfferType.FIXED_AMOUNT:
            discount = offer.value
        else:
            # free_item grants a product, not money
            discount = ZERO
        return to_money(max(ZERO, min(to_money(discount), subtotal)))

    def resolve(
        self,
        offer: Optional[Offer],
        subtotal: Decimal,
        now: datetime,
        order_count: Optional[int] = None,
    ) -> OfferResolution:
        """
        Validate and price an offer.

        An invalid offer is treated as absent: the resolution is marked
        rejected with zero discount instead of raising.
        """
        if offer is None:
            return OfferResolution()

        try:
            self.validate(offer, now, order_count)
        except OfferInvalidError as e:
            logger.info(f"[OFFERS] Dropping offer '{offer.code}' - reason: {e.reason}")
            return OfferResolution(offer=offer, rejected=True, reason=e.reason)

        return OfferResolution(
            offer=offer,
            discount=self.discount_for(offer, subtotal),
            requires_server_validation=bool(offer.target.min_orders) and order_count is None,
        )
