"""Checkout step enumeration."""
from enum import Enum
from typing import Optional


class CheckoutStep(str, Enum):
    """Steps of the guest checkout, in order."""

    GUEST_DETAILS = "guest_details"  # Name, email, phone
    ORDER_TYPE = "order_type"  # Dine-in table or takeaway pickup time
    PAYMENT = "payment"  # Cash or card
    REVIEW = "review"  # Final confirmation and submit

    def __str__(self) -> str:
        """Return the string value of the step."""
        return self.value

    @property
    def index(self) -> int:
        return STEP_ORDER.index(self)

    def next_step(self) -> Optional["CheckoutStep"]:
        i = self.index
        return STEP_ORDER[i + 1] if i + 1 < len(STEP_ORDER) else None

    def previous_step(self) -> Optional["CheckoutStep"]:
        i = self.index
        return STEP_ORDER[i - 1] if i > 0 else None


STEP_ORDER = [
    CheckoutStep.GUEST_DETAILS,
    CheckoutStep.ORDER_TYPE,
    CheckoutStep.PAYMENT,
    CheckoutStep.REVIEW,
]
