"""HTTP implementation of the checkout boundaries."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from storefront.services.cart.models import CartItem
from storefront.services.checkout.errors import NetworkError
from storefront.services.offers.models import Offer
from storefront.services.ordering.boundaries import (
    CartSyncBoundary,
    OfferBoundary,
    OrderBoundary,
    PaymentVerificationBoundary,
)
from storefront.services.ordering.models import CreateOrderResult, OrderSnapshot, TrackedOrder
from storefront.services.payments.models import PaymentStatus
from storefront.services.pricing.money import format_amount

logger = logging.getLogger(__name__)


class StorefrontClient(OrderBoundary, PaymentVerificationBoundary, CartSyncBoundary, OfferBoundary):
    """Talks to the storefront API over HTTP."""

    def __init__(
        self,
        base_url: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"[CLIENT] {method} {url} failed - {type(e).__name__}: {str(e)}")
            raise NetworkError("Could not reach the restaurant. Please try again.") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(f"[CLIENT] {method} {url} -> {response.status_code}: {detail}")
            raise NetworkError(detail, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError("Unexpected response from the restaurant") from e

    async def create_order(self, order: OrderSnapshot) -> CreateOrderResult:
        body = await self._request(
            "POST",
            "/api/food/orders",
            json=order.to_request(),
            headers={"Idempotency-Key": order.idempotency_key},
        )
        if not body.get("success"):
            raise NetworkError(body.get("message") or "Failed to create order")

        data = body.get("data") or {}
        payment = body.get("payment") or {}
        return CreateOrderResult(
            order_id=data["id"],
            order_number=data.get("orderNumber"),
            status=data.get("status", "pending"),
            total_price=data.get("totalPrice"),
            gateway_payload=payment.get("payhere"),
        )

    async def verify_payment(self, order_id: int, payment_id: str) -> PaymentStatus:
        body = await self._request(
            "POST",
            "/api/food/payment/verify",
            json={"orderId": order_id, "paymentId": payment_id},
        )
        if not body.get("success"):
            return PaymentStatus.UNKNOWN
        return PaymentStatus.parse((body.get("data") or {}).get("paymentStatus"))

    async def sync_cart(self, session_id: str, items: List[CartItem]) -> None:
        await self._request(
            "PUT",
            f"/api/food/cart/{session_id}",
            json={"items": [item.model_dump(mode="json") for item in items]},
        )

    async def list_active_offers(self) -> List[Offer]:
        body = await self._request("GET", "/api/offers/active")
        return [Offer.model_validate(raw) for raw in body.get("data", [])]

    async def apply_offer(self, code: str, subtotal: Decimal) -> Optional[Offer]:
        try:
            body = await self._request(
                "POST",
                "/api/offers/apply",
                json={"code": code, "subtotal": format_amount(subtotal)},
            )
        except NetworkError as e:
            if e.status_code in (404, 422):
                logger.info(f"[CLIENT] Offer '{code}' rejected: {e.message}")
                return None
            raise
        return Offer.model_validate(body["data"]["offer"])

    async def track_order(self, order_id: int) -> TrackedOrder:
        body = await self._request("GET", f"/api/food/orders/{order_id}")
        return TrackedOrder.model_validate(body["data"])


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Request failed ({response.status_code})"
    detail = body.get("detail") or body.get("message") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        detail = detail.get("message")
    return str(detail or f"Request failed ({response.status_code})")
