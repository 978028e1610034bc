"""Checkout error taxonomy."""
from typing import Dict, Optional


class CheckoutError(Exception):
    """Base class for checkout failures surfaced to the guest."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CheckoutError):
    """One or more fields of the current step are invalid."""

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        first = next(iter(self.field_errors.values()), "Invalid input")
        super().__init__(first)


class CartEmptyError(CheckoutError):
    """Submission attempted with nothing in the cart."""

    def __init__(self, message: str = "Your cart is empty"):
        super().__init__(message)


class OfferInvalidError(CheckoutError):
    """Offer is inactive, outside its window or exhausted."""

    def __init__(self, reason: str):
        super().__init__(f"Offer is not applicable: {reason}")
        self.reason = reason


class NetworkError(CheckoutError):
    """A boundary call failed; the guest may retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PaymentInitializationError(CheckoutError):
    """Card order exists but the gateway payload is missing or unusable.

    The created order is not rolled back; ``order_id`` identifies it for
    reconciliation.
    """

    def __init__(self, message: str, order_id: Optional[int] = None):
        super().__init__(message)
        self.order_id = order_id


class PaymentVerificationError(CheckoutError):
    """Gateway reported a status other than Paid."""

    def __init__(self, status: str, order_id: Optional[int] = None):
        super().__init__(f"Payment not completed (status: {status})")
        self.status = status
        self.order_id = order_id


class SubmissionInProgressError(CheckoutError):
    """An order submission is already in flight for this checkout."""

    def __init__(self):
        super().__init__("Your order is already being placed")
