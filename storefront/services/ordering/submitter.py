"""Order submission service."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from storefront.services.cart.store import CartStore
from storefront.services.checkout.errors import (
    CartEmptyError,
    CheckoutError,
    NetworkError,
    PaymentInitializationError,
    PaymentVerificationError,
)
from storefront.services.checkout.state import CheckoutDraft, PaymentMethod
from storefront.services.offers.models import Offer, OfferResolution
from storefront.services.offers.resolver import OfferResolver
from storefront.services.ordering.boundaries import OrderBoundary
from storefront.services.ordering.models import (
    OrderConfirmation,
    OrderSnapshot,
    OrderStatus,
    PaymentRedirect,
    PendingPayment,
)
from storefront.services.payments.gateway import PaymentGatewayBridge
from storefront.services.payments.models import PaymentStatus
from storefront.services.persistence.local import (
    APPLIED_OFFER_KEY,
    CHECKOUT_DRAFT_KEY,
    CUSTOMER_EMAIL_KEY,
    PENDING_PAYMENT_KEY,
    LocalStore,
)
from storefront.services.pricing.engine import PriceBreakdown, PricingPolicy, compute_totals

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def tracking_path(order_id: int) -> str:
    return f"/food/orders/{order_id}/track"


class OrderSubmitter:
    """Turns a completed checkout into an order on the backend."""

    def __init__(
        self,
        order_boundary: OrderBoundary,
        gateway_bridge: PaymentGatewayBridge,
        cart_store: CartStore,
        local_store: LocalStore,
        pricing_policy: PricingPolicy,
        offer_resolver: Optional[OfferResolver] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.order_boundary = order_boundary
        self.gateway_bridge = gateway_bridge
        self.cart_store = cart_store
        self.local_store = local_store
        self.pricing_policy = pricing_policy
        self.offer_resolver = offer_resolver or OfferResolver()
        self.clock = clock

    def build_snapshot(self, draft: CheckoutDraft, offer: Optional[Offer]) -> OrderSnapshot:
        """Freeze the draft, cart and priced offer into one order."""
        cart = self.cart_store.cart
        resolution, totals = self._price(offer)

        if draft.payment_method == PaymentMethod.CARD:
            status = OrderStatus.AWAITING_PAYMENT
        else:
            status = OrderStatus.PENDING

        return OrderSnapshot(
            items=cart.items,
            guest=draft.guest,
            order_selection=draft.order_selection,
            special_instructions=draft.special_instructions.strip(),
            payment_method=draft.payment_method,
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            service_fee=totals.service_fee,
            delivery_fee=totals.delivery_fee,
            total_price=totals.grand_total,
            applied_offer=resolution.offer if resolution.applied else None,
            status=status,
            idempotency_key=draft.idempotency_key,
        )

    async def submit(
        self, draft: CheckoutDraft, offer: Optional[Offer]
    ) -> Union[OrderConfirmation, PaymentRedirect]:
        """
        Submit the order.

        Returns:
            OrderConfirmation for cash orders, PaymentRedirect for card orders

        Raises:
            CartEmptyError: nothing to order; the boundary is not called
            NetworkError: the create-order call failed; nothing was changed
            PaymentInitializationError: card order created without a usable
                gateway payload
        """
        if self.cart_store.is_empty:
            raise CartEmptyError()

        snapshot = self.build_snapshot(draft, offer)
        logger.info(
            f"[ORDER SUBMIT] Submitting order - method: {snapshot.payment_method.value}, "
            f"items: {len(snapshot.items)}, total: {snapshot.total_price}, "
            f"key: {snapshot.idempotency_key}"
        )

        try:
            result = await self.order_boundary.create_order(snapshot)
        except CheckoutError:
            raise
        except Exception as e:
            logger.error(
                f"[ORDER SUBMIT] Create-order failed - Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            raise NetworkError("Failed to place order. Please try again.") from e

        logger.info(
            f"[ORDER SUBMIT] Order created - id: {result.order_id}, status: {result.status}"
        )

        if snapshot.payment_method == PaymentMethod.CASH:
            self._finalize(snapshot.guest.email)
            return OrderConfirmation(
                order_id=result.order_id,
                order_number=result.order_number,
                status=result.status,
                payment_method=PaymentMethod.CASH,
                total_price=result.total_price or snapshot.total_price,
                tracking_path=tracking_path(result.order_id),
                message="Order placed successfully! Payment will be collected when it is served.",
            )

        if not result.gateway_payload:
            logger.error(
                f"[ORDER SUBMIT] Card order {result.order_id} created without gateway payload"
            )
            raise PaymentInitializationError(
                "Your order was created but payment could not be started. "
                "Please contact the front desk.",
                order_id=result.order_id,
            )

        try:
            intent = self.gateway_bridge.build_redirect_intent(result.gateway_payload)
        except PaymentInitializationError as e:
            e.order_id = result.order_id
            raise

        pending = PendingPayment(
            order_id=result.order_id,
            order_number=result.order_number,
            total_price=result.total_price or snapshot.total_price,
            email=snapshot.guest.email.strip(),
        )
        self.local_store.set_json(PENDING_PAYMENT_KEY, pending.model_dump(mode="json"))
        return PaymentRedirect(
            order_id=result.order_id, order_number=result.order_number, intent=intent
        )

    async def finalize_card_payment(self, order_id: int, payment_id: str) -> OrderConfirmation:
        """
        Complete a card order after the gateway sends the guest back.

        Only a verified ``Paid`` status clears local state.

        Raises:
            PaymentVerificationError: any status other than Paid
            NetworkError: the verification call failed
        """
        status = await self.gateway_bridge.verify_payment(order_id, payment_id)
        if status != PaymentStatus.PAID:
            logger.warning(
                f"[ORDER SUBMIT] Payment for order {order_id} not confirmed: {status.value}"
            )
            raise PaymentVerificationError(status.value, order_id=order_id)

        raw_pending = self.local_store.get_json(PENDING_PAYMENT_KEY)
        pending = None
        if isinstance(raw_pending, dict) and raw_pending.get("order_id") == order_id:
            pending = PendingPayment.model_validate(raw_pending)
        if pending:
            total_price = pending.total_price
        else:
            total_price = self._price(self._persisted_offer())[1].grand_total

        self._finalize(pending.email if pending else None)
        return OrderConfirmation(
            order_id=order_id,
            order_number=pending.order_number if pending else None,
            status=OrderStatus.PENDING.value,
            payment_method=PaymentMethod.CARD,
            total_price=total_price,
            tracking_path=tracking_path(order_id),
            message="Payment received. Your order is being prepared.",
        )

    def _price(self, offer: Optional[Offer]) -> Tuple[OfferResolution, PriceBreakdown]:
        resolution = self.offer_resolver.resolve(offer, self.cart_store.subtotal, self.clock())
        return resolution, compute_totals(self.cart_store.items, resolution, self.pricing_policy)

    def _persisted_offer(self) -> Optional[Offer]:
        raw_offer = self.local_store.get_json(APPLIED_OFFER_KEY)
        if raw_offer is None:
            return None
        try:
            return Offer.model_validate(raw_offer)
        except PydanticValidationError:
            logger.warning("[ORDER SUBMIT] Ignoring unreadable persisted offer")
            return None

    def _finalize(self, email: Optional[str]) -> None:
        """The one place that clears the cart and draft."""
        self.cart_store.clear()
        self.local_store.remove(CHECKOUT_DRAFT_KEY)
        self.local_store.remove(APPLIED_OFFER_KEY)
        self.local_store.remove(PENDING_PAYMENT_KEY)
        if email and email.strip():
            self.local_store.set_json(CUSTOMER_EMAIL_KEY, email.strip())
