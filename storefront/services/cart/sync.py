"""Optimistic cart synchronisation."""
import asyncio
import logging
from typing import Callable

from storefront.services.cart.models import Cart
from storefront.services.cart.store import CartStore
from storefront.services.checkout.errors import NetworkError
from storefront.services.ordering.boundaries import CartSyncBoundary

logger = logging.getLogger(__name__)


class CartSync:
    """Applies cart mutations locally first, then pushes them to the backend.

    Mutations against one cart are serialized: at most one sync is in flight,
    later mutations wait their turn on the lock.
    """

    def __init__(self, cart_store: CartStore, boundary: CartSyncBoundary, session_id: str):
        self.cart_store = cart_store
        self.boundary = boundary
        self.session_id = session_id
        self._lock = asyncio.Lock()

    async def apply(self, mutation: Callable[[CartStore], Cart]) -> Cart:
        """
        Run a mutation optimistically.

        Args:
            mutation: Callable that mutates the store, e.g.
                ``lambda store: store.set_quantity("tea", 2)``

        Returns:
            The cart after a successful sync

        Raises:
            NetworkError: the sync failed; the cart was rolled back
        """
        async with self._lock:
            snapshot = self.cart_store.snapshot()
            cart = mutation(self.cart_store)
            try:
                await self.boundary.sync_cart(self.session_id, list(cart.items))
            except Exception as e:
                self.cart_store.restore(snapshot)
                logger.warning(
                    f"[CART SYNC] Sync failed for session {self.session_id}, rolled back - "
                    f"Error: {type(e).__name__}: {str(e)}"
                )
                if isinstance(e, NetworkError):
                    raise
                raise NetworkError(f"Could not update your cart: {str(e)}") from e
            logger.debug(
                f"[CART SYNC] Synced {len(cart.items)} line items for session {self.session_id}"
            )
            return cart

    async def add_item(self, item, quantity: int = 1) -> Cart:
        return await self.apply(lambda store: store.add_item(item, quantity))

    async def set_quantity(self, item_id: str, quantity: int) -> Cart:
        return await self.apply(lambda store: store.set_quantity(item_id, quantity))

    async def remove_item(self, item_id: str) -> Cart:
        return await self.apply(lambda store: store.remove_item(item_id))
