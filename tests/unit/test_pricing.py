"""Unit tests for order pricing."""
from decimal import Decimal

import pytest

from storefront.core.config import Settings
from storefront.services.cart.models import CartItem
from storefront.services.offers.models import OfferType
from storefront.services.offers.resolver import OfferResolver
from storefront.services.pricing.engine import (
    ORDER_POLICY,
    PREVIEW_POLICY,
    PricingPolicy,
    compute_totals,
)
from storefront.services.pricing.money import format_amount, to_money


class TestMoney:
    """Test money helpers."""

    def test_to_money_rounds_half_up(self):
        assert to_money(Decimal("1.005")) == Decimal("1.01")
        assert to_money(Decimal("1.004")) == Decimal("1.00")

    def test_to_money_accepts_floats_without_binary_noise(self):
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_format_amount(self):
        assert format_amount(Decimal("1485.8")) == "1485.80"
        assert format_amount(12) == "12.00"


class TestComputeTotals:
    """Test the price breakdown."""

    def test_preview_policy_example(self, filled_cart):
        """1360 under a 5% adjustment, 10% tax and 5% service fee."""
        totals = compute_totals(filled_cart.items, None, PREVIEW_POLICY)

        assert totals.subtotal == Decimal("1360.00")
        assert totals.discount == Decimal("68.00")
        assert totals.adjusted_subtotal == Decimal("1292.00")
        assert totals.tax == Decimal("129.20")
        assert totals.service_fee == Decimal("64.60")
        assert totals.grand_total == Decimal("1485.80")

    def test_default_policy_with_offer(self, filled_cart, percentage_offer, now):
        resolution = OfferResolver().resolve(percentage_offer, filled_cart.subtotal, now)

        totals = compute_totals(filled_cart.items, resolution, PricingPolicy())

        assert totals.discount == Decimal("136.00")
        assert totals.adjusted_subtotal == Decimal("1224.00")
        assert totals.tax == Decimal("122.40")
        assert totals.service_fee == Decimal("61.20")
        assert totals.grand_total == Decimal("1407.60")

    def test_order_policy_has_no_service_fee(self, filled_cart):
        totals = compute_totals(filled_cart.items, None, ORDER_POLICY)

        assert totals.service_fee == Decimal("0.00")
        assert totals.grand_total == Decimal("1496.00")

    def test_fixed_offer_above_subtotal(self, filled_cart, percentage_offer, now):
        """Discount is capped so the total never goes negative."""
        offer = percentage_offer.model_copy(
            update={"type": OfferType.FIXED_AMOUNT, "value": Decimal("2000")}
        )
        resolution = OfferResolver().resolve(offer, filled_cart.subtotal, now)

        totals = compute_totals(filled_cart.items, resolution, PREVIEW_POLICY)

        assert totals.discount == Decimal("1360.00")
        assert totals.adjusted_subtotal == Decimal("0.00")
        assert totals.grand_total == Decimal("0.00")

    def test_rejected_offer_is_ignored(self, filled_cart, percentage_offer, now):
        offer = percentage_offer.model_copy(update={"is_active": False})
        resolution = OfferResolver().resolve(offer, filled_cart.subtotal, now)

        totals = compute_totals(filled_cart.items, resolution, ORDER_POLICY)

        assert totals.discount == Decimal("0.00")

    def test_delivery_fee_is_added(self, filled_cart):
        policy = PricingPolicy(service_fee_rate=Decimal("0"), delivery_fee=Decimal("150"))

        totals = compute_totals(filled_cart.items, None, policy)

        assert totals.delivery_fee == Decimal("150.00")
        assert totals.grand_total == Decimal("1646.00")

    def test_empty_cart(self):
        totals = compute_totals([], None, PREVIEW_POLICY)

        assert totals.grand_total == Decimal("0.00")

    def test_rounding_per_component(self):
        items = [CartItem(id="x", name="Odd", unit_price=Decimal("33.33"), quantity=3)]

        totals = compute_totals(items, None, PricingPolicy())

        assert totals.subtotal == Decimal("99.99")
        assert totals.tax == Decimal("10.00")
        assert totals.service_fee == Decimal("5.00")
        assert totals.grand_total == Decimal("114.99")

    def test_policy_from_settings(self):
        settings = Settings(
            payhere_merchant_id="m",
            payhere_merchant_secret="s",
            database_url="sqlite:///:memory:",
            tax_rate=0.08,
            service_fee_rate=0.0,
            adjustment_rate=0.05,
        )

        policy = PricingPolicy.from_settings(settings)

        assert policy.tax_rate == Decimal("0.08")
        assert policy.service_fee_rate == Decimal("0.0")
        assert policy.adjustment_rate == Decimal("0.05")


class TestGrandTotalMonotonic:
    """A bigger basket never costs less."""

    @pytest.mark.parametrize("policy", [PREVIEW_POLICY, PricingPolicy()], ids=["preview", "default"])
    @pytest.mark.parametrize(
        "offer_type, value",
        [(OfferType.FIXED_AMOUNT, Decimal("500")), (OfferType.PERCENTAGE, Decimal("10"))],
    )
    def test_grand_total_non_decreasing_in_subtotal(
        self, percentage_offer, now, policy, offer_type, value
    ):
        offer = percentage_offer.model_copy(update={"type": offer_type, "value": value})
        resolver = OfferResolver()
        previous = None

        for cents in range(0, 300001, 1733):
            unit_price = Decimal(cents) / 100
            items = [CartItem(id="x", name="Item", unit_price=unit_price)]
            resolution = resolver.resolve(offer, items[0].line_total, now)

            total = compute_totals(items, resolution, policy).grand_total

            assert total >= 0
            if previous is not None:
                assert total >= previous, f"total fell to {total} at subtotal {unit_price}"
            previous = total
