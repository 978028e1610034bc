"""Unit tests for the cart store and optimistic cart sync."""
import asyncio
import json
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from storefront.services.cart.store import CartStore
from storefront.services.cart.sync import CartSync
from storefront.services.checkout.errors import NetworkError
from storefront.services.ordering.boundaries import CartSyncBoundary
from storefront.services.persistence.local import CART_KEY, InMemoryLocalStore


class TestCartStore:
    """Test cart mutations and persistence."""

    def test_add_item_merges_by_id(self, cart_store, curry):
        """Adding the same item twice increments its quantity."""
        cart_store.add_item(curry)
        cart_store.add_item(curry, 2)

        assert len(cart_store.items) == 1
        assert cart_store.items[0].quantity == 3
        assert cart_store.subtotal == Decimal("2550.00")

    def test_items_keep_insertion_order(self, filled_cart):
        """Lines stay in the order they were first added."""
        assert [item.id for item in filled_cart.items] == ["curry", "tea"]
        assert filled_cart.subtotal == Decimal("1360.00")
        assert filled_cart.cart.item_count == 3

    def test_add_item_ignores_non_positive_quantity(self, cart_store, curry):
        """Quantity zero never creates a line."""
        cart_store.add_item(curry, 0)

        assert cart_store.is_empty

    def test_set_quantity_zero_removes_item(self, filled_cart):
        """Setting quantity to zero removes the line."""
        filled_cart.set_quantity("tea", 0)

        assert filled_cart.cart.get("tea") is None
        assert filled_cart.subtotal == Decimal("850.00")

    def test_set_quantity_updates_subtotal(self, filled_cart):
        """Subtotal is derived from the items after each change."""
        filled_cart.set_quantity("tea", 4)

        assert filled_cart.subtotal == Decimal("1870.00")

    def test_unknown_id_is_noop(self, filled_cart):
        """Unknown ids leave the cart unchanged."""
        before = filled_cart.cart

        filled_cart.set_quantity("missing", 3)
        filled_cart.remove_item("missing")

        assert filled_cart.cart == before

    def test_every_mutation_is_persisted(self, cart_store, local_store, curry, tea):
        """The item list is written after each mutation."""
        cart_store.add_item(curry)
        cart_store.add_item(tea)
        cart_store.remove_item("curry")

        stored = json.loads(local_store.get_raw(CART_KEY))
        assert [item["id"] for item in stored] == ["tea"]

    def test_clear_removes_persisted_cart(self, filled_cart, local_store):
        """Clearing empties the cart and drops the stored copy."""
        filled_cart.clear()

        assert filled_cart.is_empty
        assert local_store.get_raw(CART_KEY) is None

    def test_load_restores_cart_and_drops_invalid_items(self):
        """Persisted carts survive a reload; bad lines are dropped."""
        local_store = InMemoryLocalStore()
        local_store.set_json(
            CART_KEY,
            [
                {"id": "tea", "name": "Ceylon Tea", "unit_price": "255.00", "quantity": 2},
                {"id": "bad", "name": "Broken", "unit_price": "-1", "quantity": 1},
            ],
        )

        store = CartStore(local_store)
        cart = store.load()

        assert [item.id for item in cart.items] == ["tea"]
        assert cart.subtotal == Decimal("510.00")

    def test_load_with_corrupt_value_gives_empty_cart(self):
        """A corrupt stored cart is treated as absent."""
        store = CartStore(InMemoryLocalStore({CART_KEY: "{not json"}))

        assert store.load().is_empty

    def test_restore_snapshot(self, filled_cart, curry):
        """A snapshot can be put back after later changes."""
        snapshot = filled_cart.snapshot()
        filled_cart.add_item(curry, 5)

        filled_cart.restore(snapshot)

        assert filled_cart.cart == snapshot


PRICES = {"curry": Decimal("850.00"), "tea": Decimal("255.00")}

MUTATION_SEQUENCES = [
    [("add", "curry", 1), ("add", "tea", 2), ("set", "tea", -1)],
    [("add", "tea", 3), ("set", "tea", 1), ("add", "tea", 4), ("remove", "tea", None)],
    [("set", "curry", 5), ("add", "curry", 0), ("add", "curry", 2), ("set", "curry", 3)],
    [("add", "curry", 1), ("remove", "tea", None), ("set", "curry", -1), ("add", "tea", 1)],
    [("add", "tea", 2), ("add", "curry", 1), ("set", "curry", 0), ("set", "tea", 7), ("add", "curry", 2)],
    [("add", "curry", -2), ("set", "missing", 4), ("add", "tea", 1), ("remove", "curry", None)],
]


class TestCartSubtotalInvariant:
    """Subtotal always equals the sum of price x quantity."""

    @pytest.mark.parametrize("mutations", MUTATION_SEQUENCES)
    def test_subtotal_after_each_mutation(self, cart_store, curry, tea, mutations):
        items = {"curry": curry, "tea": tea}
        quantities = {}

        for action, item_id, quantity in mutations:
            if action == "add":
                cart_store.add_item(items[item_id], quantity)
                if quantity > 0:
                    quantities[item_id] = quantities.get(item_id, 0) + quantity
            elif action == "set":
                cart_store.set_quantity(item_id, quantity)
                if quantity <= 0:
                    quantities.pop(item_id, None)
                elif item_id in quantities:
                    quantities[item_id] = quantity
            else:
                cart_store.remove_item(item_id)
                quantities.pop(item_id, None)

            expected = sum(
                (PRICES[line_id] * qty for line_id, qty in quantities.items()), Decimal("0.00")
            )
            assert cart_store.subtotal == expected
            assert {line.id: line.quantity for line in cart_store.items} == quantities
            assert all(line.quantity > 0 for line in cart_store.items)


class TestCartSync:
    """Test optimistic sync with rollback."""

    @pytest.fixture
    def boundary(self):
        return AsyncMock(spec=CartSyncBoundary)

    @pytest.mark.asyncio
    async def test_successful_sync_keeps_change(self, filled_cart, boundary):
        """The mutation is applied and pushed to the backend."""
        sync = CartSync(filled_cart, boundary, "session-1")

        cart = await sync.set_quantity("tea", 3)

        assert cart.get("tea").quantity == 3
        boundary.sync_cart.assert_awaited_once()
        session_id, items = boundary.sync_cart.await_args.args
        assert session_id == "session-1"
        assert [item.quantity for item in items] == [1, 3]

    @pytest.mark.asyncio
    async def test_failed_sync_rolls_back(self, filled_cart, boundary, local_store):
        """A failed sync restores the previous cart, in memory and on disk."""
        boundary.sync_cart.side_effect = RuntimeError("connection reset")
        sync = CartSync(filled_cart, boundary, "session-1")
        before = filled_cart.cart

        with pytest.raises(NetworkError):
            await sync.remove_item("curry")

        assert filled_cart.cart == before
        stored = json.loads(local_store.get_raw(CART_KEY))
        assert [item["id"] for item in stored] == ["curry", "tea"]

    @pytest.mark.asyncio
    async def test_network_error_is_reraised_unchanged(self, filled_cart, boundary):
        """Boundary NetworkErrors propagate as they are."""
        error = NetworkError("Service unavailable", status_code=503)
        boundary.sync_cart.side_effect = error
        sync = CartSync(filled_cart, boundary, "session-1")

        with pytest.raises(NetworkError) as exc_info:
            await sync.set_quantity("tea", 5)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_mutations_are_serialized(self, cart_store, curry, tea):
        """A second mutation waits for the first sync to finish."""
        in_flight = 0
        max_in_flight = 0

        class SlowBoundary(CartSyncBoundary):
            async def sync_cart(self, session_id, items):
                nonlocal in_flight, max_in_flight
                in_flight += 1
                max_in_flight = max(max_in_flight, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1

        sync = CartSync(cart_store, SlowBoundary(), "session-1")

        await asyncio.gather(sync.add_item(curry), sync.add_item(tea), sync.add_item(curry))

        assert max_in_flight == 1
        assert cart_store.cart.get("curry").quantity == 2
        assert cart_store.cart.get("tea").quantity == 1
