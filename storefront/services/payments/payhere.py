"""PayHere hosted checkout signing (server side)."""
import hashlib
import hmac
from typing import Any, Dict, Optional

from storefront.services.pricing.money import Number, format_amount


def _md5_upper(value: str) -> str:
    return hashlib.md5(value.encode()).hexdigest().upper()


class PayHereSigner:
    """Computes and checks the MD5 signatures used by PayHere."""

    def __init__(self, merchant_id: str, merchant_secret: str):
        self.merchant_id = merchant_id
        self._hashed_secret = _md5_upper(merchant_secret)

    def checkout_hash(self, order_id: str, amount: Number, currency: str) -> str:
        """Hash sent with the checkout form."""
        return _md5_upper(
            f"{self.merchant_id}{order_id}{format_amount(amount)}{currency}{self._hashed_secret}"
        )

    def notification_signature(
        self, order_id: str, amount: str, currency: str, status_code: str
    ) -> str:
        """Expected ``md5sig`` of a payment notification."""
        return _md5_upper(
            f"{self.merchant_id}{order_id}{amount}{currency}{status_code}{self._hashed_secret}"
        )

    def verify_notification(self, data: Dict[str, Any]) -> bool:
        """Check a notification's merchant id and md5sig."""
        received = str(data.get("md5sig", ""))
        if not received or str(data.get("merchant_id", "")) != self.merchant_id:
            return False
        expected = self.notification_signature(
            order_id=str(data.get("order_id", "")),
            amount=str(data.get("payhere_amount", "")),
            currency=str(data.get("payhere_currency", "")),
            status_code=str(data.get("status_code", "")),
        )
        return hmac.compare_digest(expected, received.upper())


def build_checkout_payload(
    signer: PayHereSigner,
    checkout_url: str,
    order_reference: str,
    amount: Number,
    currency: str,
    return_url: str,
    cancel_url: str,
    notify_url: str,
    customer: Optional[Dict[str, str]] = None,
    items_description: str = "",
) -> Dict[str, Any]:
    """Gateway payload handed back to the client in the create-order response."""
    customer = customer or {}
    params = {
        "merchant_id": signer.merchant_id,
        "return_url": return_url,
        "cancel_url": cancel_url,
        "notify_url": notify_url,
        "order_id": order_reference,
        "items": items_description,
        "currency": currency,
        "amount": format_amount(amount),
        "first_name": customer.get("first_name", ""),
        "last_name": customer.get("last_name", ""),
        "email": customer.get("email", ""),
        "phone": customer.get("phone", ""),
        "address": customer.get("address", ""),
        "city": customer.get("city", ""),
        "country": customer.get("country", "Sri Lanka"),
        "hash": signer.checkout_hash(order_reference, amount, currency),
    }
    return {"action": checkout_url, "params": params}
