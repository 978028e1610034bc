"""Checkout draft state."""
import uuid
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class PaymentMethod(str, Enum):
    """Payment methods offered at checkout."""

    CASH = "cash"
    CARD = "card"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value) -> Optional["PaymentMethod"]:
        """Map legacy persisted values (bank, cod, wallet, payhere) onto cash/card.

        An empty value means no method is selected yet.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        if not normalized:
            return None
        if normalized in ("card", "payhere"):
            return cls.CARD
        return cls.CASH


class GuestDetails(BaseModel):
    """Contact details of the ordering guest (may be partially filled)."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()


class DineInSelection(BaseModel):
    """Order served at a table."""

    order_type: Literal["dine-in"] = "dine-in"
    table_number: str = ""


class TakeawaySelection(BaseModel):
    """Order collected at the counter after a number of minutes."""

    order_type: Literal["takeaway"] = "takeaway"
    pickup_minutes: Optional[int] = None


OrderTypeSelection = Annotated[
    Union[DineInSelection, TakeawaySelection], Field(discriminator="order_type")
]


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


class CheckoutDraft(BaseModel):
    """Everything the guest has entered so far; persisted on every change."""

    step: str = "guest_details"
    guest: GuestDetails = GuestDetails()
    order_selection: OrderTypeSelection = DineInSelection()
    payment_method: Optional[PaymentMethod] = PaymentMethod.CASH
    special_instructions: str = ""
    idempotency_key: str = Field(default_factory=new_idempotency_key)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _coerce_payment_method(cls, value):
        return PaymentMethod.coerce(value)
