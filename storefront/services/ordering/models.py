"""Order models."""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storefront.services.cart.models import CartItem
from storefront.services.checkout.state import (
    DineInSelection,
    GuestDetails,
    OrderTypeSelection,
    PaymentMethod,
    TakeawaySelection,
)
from storefront.services.offers.models import Offer
from storefront.services.payments.models import RedirectIntent
from storefront.services.pricing.money import format_amount


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting-payment"  # card order created, payment not confirmed
    PAYMENT_TIMEOUT = "payment-timeout"  # flagged by the reconciliation sweep
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class OrderSnapshot(BaseModel):
    """Immutable order as submitted to the create-order boundary."""

    model_config = ConfigDict(frozen=True)

    items: Tuple[CartItem, ...]
    guest: GuestDetails
    order_selection: OrderTypeSelection
    special_instructions: str = ""
    payment_method: PaymentMethod
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    service_fee: Decimal
    delivery_fee: Decimal
    total_price: Decimal
    applied_offer: Optional[Offer] = None
    status: OrderStatus
    idempotency_key: str

    def to_request(self) -> Dict[str, Any]:
        """Create-order request body (camelCase, amounts as 2dp strings)."""
        selection = self.order_selection
        return {
            "items": [
                {
                    "foodId": item.id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": format_amount(item.unit_price),
                    "category": item.category,
                }
                for item in self.items
            ],
            "guest": {
                "firstName": self.guest.first_name.strip(),
                "lastName": self.guest.last_name.strip(),
                "email": self.guest.email.strip(),
                "phone": self.guest.phone.strip(),
            },
            "orderType": selection.order_type,
            "tableNumber": (
                selection.table_number.strip() if isinstance(selection, DineInSelection) else None
            ),
            "pickupMinutes": (
                selection.pickup_minutes if isinstance(selection, TakeawaySelection) else None
            ),
            "specialInstructions": self.special_instructions,
            "paymentMethod": self.payment_method.value,
            "subtotal": format_amount(self.subtotal),
            "discount": format_amount(self.discount),
            "tax": format_amount(self.tax),
            "serviceFee": format_amount(self.service_fee),
            "deliveryFee": format_amount(self.delivery_fee),
            "totalPrice": format_amount(self.total_price),
            "appliedOffer": (
                {"id": self.applied_offer.id, "code": self.applied_offer.code}
                if self.applied_offer
                else None
            ),
            "status": self.status.value,
            "idempotencyKey": self.idempotency_key,
        }


class CreateOrderResult(BaseModel):
    """What the create-order boundary returned."""

    order_id: int
    order_number: Optional[str] = None
    status: str = OrderStatus.PENDING.value
    total_price: Optional[Decimal] = None
    gateway_payload: Optional[Dict[str, Any]] = None


class OrderConfirmation(BaseModel):
    """Shown to the guest once an order is placed (and paid, for card)."""

    order_id: int
    order_number: Optional[str] = None
    status: str
    payment_method: PaymentMethod
    total_price: Decimal
    tracking_path: str
    message: str


class PaymentRedirect(BaseModel):
    """Card order created; the shell must now send the guest to the gateway."""

    order_id: int
    order_number: Optional[str] = None
    intent: RedirectIntent


class PendingPayment(BaseModel):
    """Card order awaiting the gateway callback, persisted locally."""

    order_id: int
    order_number: Optional[str] = None
    total_price: Decimal
    email: str = ""


class TrackedOrder(BaseModel):
    """Order as returned by the tracking endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    order_number: str
    status: str
    payment_method: str
    payment_status: Optional[str] = None
    total_price: Decimal
    items: List[Dict[str, Any]] = []
