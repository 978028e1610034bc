"""Backend boundary interfaces used by the checkout engine."""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from storefront.services.cart.models import CartItem
from storefront.services.offers.models import Offer
from storefront.services.ordering.models import CreateOrderResult, OrderSnapshot
from storefront.services.payments.models import PaymentStatus


class OrderBoundary(ABC):
    """Creates orders on the backend."""

    @abstractmethod
    async def create_order(self, order: OrderSnapshot) -> CreateOrderResult:
        """Create an order. Raises NetworkError on any failure."""
        pass


class PaymentVerificationBoundary(ABC):
    """Asks the backend what the gateway reported for a payment."""

    @abstractmethod
    async def verify_payment(self, order_id: int, payment_id: str) -> PaymentStatus:
        """Return the reported status. Raises NetworkError on failure."""
        pass


class CartSyncBoundary(ABC):
    """Mirrors the guest's cart on the backend."""

    @abstractmethod
    async def sync_cart(self, session_id: str, items: List[CartItem]) -> None:
        pass


class OfferBoundary(ABC):
    """Read-only access to promotional offers."""

    @abstractmethod
    async def list_active_offers(self) -> List[Offer]:
        pass

    @abstractmethod
    async def apply_offer(self, code: str, subtotal: Decimal) -> Optional[Offer]:
        """Look up an offer by code; None when the backend rejects it."""
        pass
