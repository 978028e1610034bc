"""Cart store."""
import logging
from decimal import Decimal
from typing import Tuple

from pydantic import ValidationError as PydanticValidationError

from storefront.services.cart.models import Cart, CartItem
from storefront.services.persistence.local import CART_KEY, LocalStore

logger = logging.getLogger(__name__)


class CartStore:
    """Holds the cart and persists it after every mutation.

    The cart itself is an immutable value; each mutation swaps in a new one,
    so a snapshot is just a reference to the previous value.
    """

    def __init__(self, local_store: LocalStore):
        self.local_store = local_store
        self._cart = Cart()

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return self._cart.items

    @property
    def subtotal(self) -> Decimal:
        return self._cart.subtotal

    @property
    def is_empty(self) -> bool:
        return self._cart.is_empty

    def load(self) -> Cart:
        """Restore the cart from local persistence."""
        data = self.local_store.get_json(CART_KEY)
        items = []
        if isinstance(data, list):
            for raw_item in data:
                try:
                    items.append(CartItem.model_validate(raw_item))
                except PydanticValidationError:
                    logger.warning(f"[CART] Dropping invalid persisted item: {raw_item}")
        self._cart = Cart(items=tuple(items))
        logger.info(f"[CART] Restored cart with {len(items)} line items")
        return self._cart

    def add_item(self, item: CartItem, quantity: int = 1) -> Cart:
        """Add an item, merging with an existing line of the same id."""
        if quantity <= 0:
            return self._cart
        existing = self._cart.get(item.id)
        if existing:
            items = tuple(
                line.model_copy(update={"quantity": line.quantity + quantity})
                if line.id == item.id
                else line
                for line in self._cart.items
            )
        else:
            items = self._cart.items + (item.model_copy(update={"quantity": quantity}),)
        return self._commit(items)

    def set_quantity(self, item_id: str, quantity: int) -> Cart:
        """Set a line's quantity; zero or below removes the line."""
        if quantity <= 0:
            return self.remove_item(item_id)
        if self._cart.get(item_id) is None:
            return self._cart
        items = tuple(
            line.model_copy(update={"quantity": quantity}) if line.id == item_id else line
            for line in self._cart.items
        )
        return self._commit(items)

    def remove_item(self, item_id: str) -> Cart:
        if self._cart.get(item_id) is None:
            return self._cart
        return self._commit(tuple(line for line in self._cart.items if line.id != item_id))

    def clear(self) -> Cart:
        self._cart = Cart()
        self.local_store.remove(CART_KEY)
        return self._cart

    def snapshot(self) -> Cart:
        return self._cart

    def restore(self, snapshot: Cart) -> Cart:
        """Put back a previously taken snapshot (used to roll back failed syncs)."""
        return self._commit(snapshot.items)

    def _commit(self, items: Tuple[CartItem, ...]) -> Cart:
        self._cart = Cart(items=items)
        self.local_store.set_json(
            CART_KEY, [item.model_dump(mode="json") for item in items]
        )
        return self._cart
