"""Cart models."""
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from storefront.services.pricing.money import ZERO, to_money


class CartItem(BaseModel):
    """Line item in the guest's cart."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    category: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


class Cart(BaseModel):
    """Immutable view of the cart contents in insertion order."""

    model_config = ConfigDict(frozen=True)

    items: Tuple[CartItem, ...] = ()

    @property
    def subtotal(self) -> Decimal:
        """Sum of price x quantity, recomputed on every read."""
        return to_money(sum((item.unit_price * item.quantity for item in self.items), ZERO))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def get(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
