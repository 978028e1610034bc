"""Offer models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OfferType(str, Enum):
    """Kinds of promotional offer."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_ITEM = "free_item"

    def __str__(self) -> str:
        return self.value


class OfferTarget(BaseModel):
    """Audience restrictions on an offer."""

    min_orders: Optional[int] = None  # lifetime order count, checked server-side


class Offer(BaseModel):
    """Promotional offer as fetched from the offer boundary."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    title: Optional[str] = None
    type: OfferType
    value: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True
    start_date: datetime
    end_date: datetime
    max_redemptions: Optional[int] = None
    redemptions: int = 0
    target: OfferTarget = OfferTarget()
    free_item_id: Optional[str] = None


class OfferResolution(BaseModel):
    """Outcome of pricing an offer against a subtotal."""

    model_config = ConfigDict(frozen=True)

    offer: Optional[Offer] = None
    discount: Decimal = Decimal("0.00")
    rejected: bool = False
    reason: Optional[str] = None
    requires_server_validation: bool = False

    @property
    def applied(self) -> bool:
        return self.offer is not None and not self.rejected
