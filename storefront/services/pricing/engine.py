"""Order pricing."""
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.services.cart.models import CartItem
from storefront.services.offers.models import OfferResolution
from storefront.services.pricing.money import ZERO, to_money


class PricingPolicy(BaseModel):
    """Rates applied to every total shown or submitted by one deployment."""

    model_config = ConfigDict(frozen=True)

    adjustment_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    tax_rate: Decimal = Field(default=Decimal("0.10"), ge=0)
    service_fee_rate: Decimal = Field(default=Decimal("0.05"), ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)

    @classmethod
    def from_settings(cls, settings) -> "PricingPolicy":
        return cls(
            adjustment_rate=Decimal(str(settings.adjustment_rate)),
            tax_rate=Decimal(str(settings.tax_rate)),
            service_fee_rate=Decimal(str(settings.service_fee_rate)),
            delivery_fee=Decimal(str(settings.delivery_fee)),
        )


# Historical cart-preview formula: flat 5% adjustment, 10% tax, 5% service fee
PREVIEW_POLICY = PricingPolicy(
    adjustment_rate=Decimal("0.05"),
    tax_rate=Decimal("0.10"),
    service_fee_rate=Decimal("0.05"),
)

# Historical order-total formula: offer discount and tax only
ORDER_POLICY = PricingPolicy(
    adjustment_rate=Decimal("0"),
    tax_rate=Decimal("0.10"),
    service_fee_rate=Decimal("0"),
)


class PriceBreakdown(BaseModel):
    """Computed totals for a cart."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    adjusted_subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    service_fee: Decimal = ZERO
    delivery_fee: Decimal = ZERO
    grand_total: Decimal = ZERO


def compute_totals(
    items: Iterable[CartItem],
    resolution: Optional[OfferResolution],
    policy: PricingPolicy,
) -> PriceBreakdown:
    """
    Price a cart.

    Args:
        items: Cart line items
        resolution: Output of OfferResolver, or None when no offer is applied
        policy: Rates to apply

    Returns:
        PriceBreakdown with every amount rounded to cents
    """
    subtotal = to_money(sum((item.unit_price * item.quantity for item in items), ZERO))

    offer_discount = ZERO
    if resolution is not None and resolution.applied:
        offer_discount = resolution.discount

    discount = to_money(offer_discount + subtotal * policy.adjustment_rate)
    discount = min(max(discount, ZERO), subtotal)

    adjusted = subtotal - discount
    tax = to_money(adjusted * policy.tax_rate)
    service_fee = to_money(adjusted * policy.service_fee_rate)
    delivery_fee = to_money(policy.delivery_fee)

    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        adjusted_subtotal=adjusted,
        tax=tax,
        service_fee=service_fee,
        delivery_fee=delivery_fee,
        grand_total=to_money(adjusted + tax + service_fee + delivery_fee),
    )
