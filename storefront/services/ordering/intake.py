"""Server-side order intake.

Rebuilds the order from the request, re-validates the guest details and the
offer, recomputes the totals with the deployment's pricing policy and stores
the order exactly once per idempotency key.
"""
import hashlib
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.db.models import Order
from storefront.services.cart.models import Cart, CartItem
from storefront.services.checkout.state import (
    CheckoutDraft,
    DineInSelection,
    GuestDetails,
    PaymentMethod,
    TakeawaySelection,
)
from storefront.services.checkout.validation import find_first_invalid_step
from storefront.services.offers.models import OfferResolution
from storefront.services.offers.resolver import OfferResolver
from storefront.services.ordering.models import OrderStatus
from storefront.services.payments.payhere import PayHereSigner, build_checkout_payload
from storefront.services.persistence.offers import OfferPersistenceService, to_offer
from storefront.services.persistence.orders import OrderPersistenceService
from storefront.services.pricing.engine import PriceBreakdown, PricingPolicy, compute_totals
from storefront.services.pricing.money import CENT, ZERO, format_amount

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderLineRequest(_CamelModel):
    food_id: str
    name: str
    quantity: int = Field(default=1, ge=1)
    price: Decimal = Field(ge=0)
    category: Optional[str] = None


class GuestRequest(_CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


class AppliedOfferRef(_CamelModel):
    id: str
    code: Optional[str] = None


class CreateOrderRequest(_CamelModel):
    """Create-order request body as sent by the checkout client."""

    items: List[OrderLineRequest] = []
    guest: GuestRequest = GuestRequest()
    order_type: Literal["dine-in", "takeaway"]
    table_number: Optional[str] = None
    pickup_minutes: Optional[int] = None
    special_instructions: Optional[str] = ""
    payment_method: PaymentMethod = PaymentMethod.CASH
    subtotal: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    service_fee: Optional[Decimal] = None
    delivery_fee: Optional[Decimal] = None
    total_price: Decimal
    applied_offer: Optional[AppliedOfferRef] = None
    status: Optional[str] = None
    idempotency_key: Optional[str] = None


class OrderRejectedError(Exception):
    """The request cannot become an order."""

    def __init__(self, status_code: int, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.field_errors = field_errors or {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_draft(request: CreateOrderRequest) -> CheckoutDraft:
    if request.order_type == "takeaway":
        selection = TakeawaySelection(pickup_minutes=request.pickup_minutes)
    else:
        selection = DineInSelection(table_number=request.table_number or "")
    return CheckoutDraft(
        guest=GuestDetails(**request.guest.model_dump()),
        order_selection=selection,
        payment_method=request.payment_method,
        special_instructions=request.special_instructions or "",
    )


def order_fingerprint(request: CreateOrderRequest) -> str:
    """Digest of everything that makes two requests the same logical order."""
    canonical = {
        "items": sorted(
            [line.food_id, line.quantity, format_amount(line.price)] for line in request.items
        ),
        "guest": {
            "first_name": request.guest.first_name.strip(),
            "last_name": request.guest.last_name.strip(),
            "email": request.guest.email.strip().lower(),
            "phone": request.guest.phone.strip(),
        },
        "order_type": request.order_type,
        "table_number": (
            (request.table_number or "").strip() if request.order_type == "dine-in" else None
        ),
        "pickup_minutes": request.pickup_minutes if request.order_type == "takeaway" else None,
        "special_instructions": (request.special_instructions or "").strip(),
        "payment_method": request.payment_method.value,
        "offer_id": request.applied_offer.id if request.applied_offer else None,
        "total_price": format_amount(request.total_price),
    }
    return hashlib.sha256(json.dumps(canonical, sort_keys=True).encode()).hexdigest()


def to_cart(request: CreateOrderRequest) -> Cart:
    return Cart(
        items=tuple(
            CartItem(
                id=line.food_id,
                name=line.name,
                unit_price=line.price,
                quantity=line.quantity,
                category=line.category,
            )
            for line in request.items
        )
    )


class OrderIntakeService:
    """Turns create-order requests into stored orders."""

    def __init__(
        self,
        orders: OrderPersistenceService,
        offers: OfferPersistenceService,
        pricing_policy: PricingPolicy,
        signer: PayHereSigner,
        settings,
        offer_resolver: Optional[OfferResolver] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.orders = orders
        self.offers = offers
        self.pricing_policy = pricing_policy
        self.signer = signer
        self.settings = settings
        self.offer_resolver = offer_resolver or OfferResolver()
        self.clock = clock

    async def place_order(
        self, request: CreateOrderRequest, idempotency_key: Optional[str] = None
    ) -> Tuple[Order, bool, Optional[Dict[str, Any]]]:
        """
        Create the order, or return the one already stored under the key.

        Returns:
            Tuple of (order, created, gateway payload for card orders)

        Raises:
            OrderRejectedError: 422 for invalid input or offer, 409 when the
                client's total does not match the recomputed one
        """
        key = (idempotency_key or request.idempotency_key or "").strip()
        if not key:
            raise OrderRejectedError(422, "idempotencyKey is required")

        fingerprint = order_fingerprint(request)
        existing = await self.orders.get_order_by_idempotency_key(key)
        if existing:
            self._check_replay(existing, key, fingerprint)
            logger.info(f"[ORDER INTAKE] Replayed key {key} -> order {existing.id}")
            return existing, False, self.payment_payload(existing)

        cart = to_cart(request)
        if cart.is_empty:
            raise OrderRejectedError(422, "Your cart is empty")

        draft = to_draft(request)
        invalid = find_first_invalid_step(draft, cart)
        if invalid:
            step, errors = invalid
            logger.info(f"[ORDER INTAKE] Rejected at {step.value}: {errors}")
            raise OrderRejectedError(422, next(iter(errors.values())), errors)

        resolution = await self._resolve_offer(request, draft, cart)
        totals = compute_totals(cart.items, resolution, self.pricing_policy)
        self._check_total(request, totals)

        if draft.payment_method == PaymentMethod.CARD:
            status = OrderStatus.AWAITING_PAYMENT
        else:
            status = OrderStatus.PENDING

        if resolution.applied:
            await self.offers.increment_redemptions(resolution.offer.id)

        selection = draft.order_selection
        order, created = await self.orders.create_order(
            idempotency_key=key,
            order_fields={
                "status": status.value,
                "guest_first_name": draft.guest.first_name.strip(),
                "guest_last_name": draft.guest.last_name.strip(),
                "guest_email": draft.guest.email.strip(),
                "guest_phone": draft.guest.phone.strip(),
                "order_type": selection.order_type,
                "table_number": (
                    selection.table_number.strip()
                    if isinstance(selection, DineInSelection)
                    else None
                ),
                "pickup_minutes": (
                    selection.pickup_minutes if isinstance(selection, TakeawaySelection) else None
                ),
                "special_instructions": draft.special_instructions.strip() or None,
                "payment_method": draft.payment_method.value,
                "payment_status": "Pending" if status == OrderStatus.AWAITING_PAYMENT else None,
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "tax": totals.tax,
                "service_fee": totals.service_fee,
                "delivery_fee": totals.delivery_fee,
                "total_price": totals.grand_total,
                "offer_id": resolution.offer.id if resolution.applied else None,
                "offer_code": resolution.offer.code if resolution.applied else None,
                "request_fingerprint": fingerprint,
            },
            items=[
                {
                    "food_id": item.id,
                    "item_name": item.name,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                    "category": item.category,
                }
                for item in cart.items
            ],
        )
        if not created:
            self._check_replay(order, key, fingerprint)
        logger.info(
            f"[ORDER INTAKE] Order {order.order_number} stored - status: {order.status}, "
            f"total: {order.total_price}, created: {created}"
        )
        return order, created, self.payment_payload(order)

    async def _resolve_offer(
        self, request: CreateOrderRequest, draft: CheckoutDraft, cart: Cart
    ) -> OfferResolution:
        if request.applied_offer is None:
            return OfferResolution()

        record = await self.offers.get_by_id(request.applied_offer.id)
        if record is None and request.applied_offer.code:
            record = await self.offers.get_by_code(request.applied_offer.code)
        if record is None:
            raise OrderRejectedError(422, "Offer not found")

        order_count = await self.orders.count_orders_for_email(draft.guest.email)
        resolution = self.offer_resolver.resolve(
            to_offer(record), cart.subtotal, self.clock(), order_count=order_count
        )
        if resolution.rejected:
            raise OrderRejectedError(422, f"Offer is not applicable: {resolution.reason}")
        return resolution

    def _check_replay(self, existing: Order, key: str, fingerprint: str) -> None:
        # Orders stored before fingerprints existed replay unconditionally
        if existing.request_fingerprint and existing.request_fingerprint != fingerprint:
            logger.warning(
                f"[ORDER INTAKE] Key {key} reused for a different order than {existing.order_number}"
            )
            raise OrderRejectedError(409, "Idempotency key was reused for a different order")

    def _check_total(self, request: CreateOrderRequest, totals: PriceBreakdown) -> None:
        difference = abs(request.total_price - totals.grand_total)
        if difference > CENT:
            logger.warning(
                f"[ORDER INTAKE] Total mismatch - client: {request.total_price}, "
                f"server: {totals.grand_total}"
            )
            raise OrderRejectedError(
                409,
                f"Order total has changed to {totals.grand_total}. Please review your order.",
            )

    def payment_payload(self, order: Order) -> Optional[Dict[str, Any]]:
        """Hosted-checkout payload for a card order that still needs paying."""
        if order.payment_method != PaymentMethod.CARD.value:
            return None
        if order.status != OrderStatus.AWAITING_PAYMENT.value:
            return None

        frontend = self.settings.frontend_url.rstrip("/")
        backend = self.settings.backend_url.rstrip("/")
        return build_checkout_payload(
            signer=self.signer,
            checkout_url=self.settings.payhere_checkout_url,
            order_reference=order.order_number,
            amount=order.total_price if order.total_price is not None else ZERO,
            currency=self.settings.currency,
            return_url=f"{frontend}/payment/success?orderId={order.id}",
            cancel_url=f"{frontend}/payment/cancel?orderId={order.id}",
            notify_url=f"{backend}/api/webhooks/payhere",
            customer={
                "first_name": order.guest_first_name,
                "last_name": order.guest_last_name,
                "email": order.guest_email,
                "phone": order.guest_phone,
            },
            items_description=f"{self.settings.restaurant_name} order {order.order_number}",
        )
