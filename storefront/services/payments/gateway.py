"""Bridge between the checkout engine and the hosted payment page."""
import logging
from typing import Any, Dict

from storefront.services.checkout.errors import PaymentInitializationError
from storefront.services.ordering.boundaries import PaymentVerificationBoundary
from storefront.services.payments.models import PaymentStatus, RedirectIntent

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "merchant_id",
    "order_id",
    "amount",
    "currency",
    "hash",
    "return_url",
    "cancel_url",
)


class PaymentGatewayBridge:
    """Builds redirect intents and checks asynchronous payment results."""

    def __init__(self, verification_boundary: PaymentVerificationBoundary):
        self.verification_boundary = verification_boundary

    def build_redirect_intent(self, gateway_payload: Dict[str, Any]) -> RedirectIntent:
        """
        Describe the form POST that starts the hosted payment.

        Args:
            gateway_payload: ``{"action": <checkout url>, "params": {...signed fields}}``
                as returned by the create-order boundary

        Returns:
            RedirectIntent for the shell to execute

        Raises:
            PaymentInitializationError: payload missing or incomplete
        """
        if not gateway_payload:
            raise PaymentInitializationError("Payment gateway details were not returned")

        action = gateway_payload.get("action")
        params = gateway_payload.get("params") or {}
        if not action:
            raise PaymentInitializationError("Payment gateway address is missing")

        missing = [name for name in REQUIRED_FIELDS if not params.get(name)]
        if missing:
            logger.error(f"[GATEWAY] Payload missing fields: {missing}")
            raise PaymentInitializationError(
                f"Payment gateway details are incomplete (missing {', '.join(missing)})"
            )

        fields = {str(key): str(value) for key, value in params.items() if value is not None}
        return RedirectIntent(form_action=str(action), fields=fields)

    async def verify_payment(self, order_id: int, payment_id: str) -> PaymentStatus:
        """Ask the backend what the gateway reported for this payment."""
        status = await self.verification_boundary.verify_payment(order_id, payment_id)
        logger.info(
            f"[GATEWAY] Verification for order {order_id}, payment {payment_id}: {status.value}"
        )
        return status
