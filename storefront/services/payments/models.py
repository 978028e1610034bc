"""Payment models."""
from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict


class PaymentStatus(str, Enum):
    """Payment state reported by the verification boundary."""

    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    CHARGEDBACK = "Chargedback"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value) -> "PaymentStatus":
        for status in cls:
            if str(value).strip().lower() == status.value.lower():
                return status
        return cls.UNKNOWN

    @classmethod
    def from_status_code(cls, code) -> "PaymentStatus":
        """Map a PayHere notification status code."""
        return PAYHERE_STATUS_CODES.get(str(code).strip(), cls.UNKNOWN)


PAYHERE_STATUS_CODES = {
    "2": PaymentStatus.PAID,
    "0": PaymentStatus.PENDING,
    "-1": PaymentStatus.CANCELLED,
    "-2": PaymentStatus.FAILED,
    "-3": PaymentStatus.CHARGEDBACK,
}


class RedirectIntent(BaseModel):
    """Full-page form POST to the hosted payment page.

    The hosting shell performs the navigation; nothing here touches a browser.
    """

    model_config = ConfigDict(frozen=True)

    method: str = "POST"
    form_action: str
    fields: Dict[str, str]
