"""Tests for the Cart aggregate."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from orderflow.cart import Cart, CartItem

EARLIER = datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture
def cart() -> Cart:
    return Cart(updated_at=EARLIER).add_item(5, "Margherita", 25000, 2)


class TestAddItem:
    """Tests for adding products."""

    def test_new_item_appended(self) -> None:
        cart = Cart().add_item(5, "Margherita", 25000)

        assert len(cart.items) == 1
        assert cart.items[0] == CartItem(id=5, name="Margherita", price=25000, quantity=1)

    def test_repeated_id_sums_quantities(self, cart: Cart) -> None:
        """Adding an existing product merges into one line."""
        cart = cart.add_item(5, "Margherita", 25000, 1)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3
        assert cart.total == 75000

    def test_first_snapshot_kept(self, cart: Cart) -> None:
        """A later add with a new price does not reprice the line."""
        cart = cart.add_item(5, "Margherita XL", 99000, 1)

        assert cart.items[0].name == "Margherita"
        assert cart.items[0].price == 25000

    def test_non_positive_quantity_ignored(self, cart: Cart) -> None:
        assert cart.add_item(7, "Cola", 8000, 0) is cart

    def test_add_stamps_updated_at(self, cart: Cart) -> None:
        assert cart.updated_at is not None
        assert cart.updated_at > EARLIER

    def test_original_unchanged(self) -> None:
        original = Cart()
        original.add_item(5, "Margherita", 25000)
        assert original.is_empty()


class TestQuantities:
    """Tests for set_quantity and remove_item."""

    def test_set_quantity(self, cart: Cart) -> None:
        cart = cart.set_quantity(5, 4)
        assert cart.items[0].quantity == 4
        assert cart.total == 100000

    def test_set_quantity_zero_removes_line(self, cart: Cart) -> None:
        """Setting a quantity to zero empties a one-line cart."""
        cart = cart.set_quantity(5, 0)

        assert cart.is_empty()
        assert cart.total == 0

    def test_set_quantity_unknown_id_is_noop(self, cart: Cart) -> None:
        assert cart.set_quantity(99, 3) is cart

    def test_remove_item(self, cart: Cart) -> None:
        cart = cart.add_item(7, "Cola", 8000).remove_item(5)

        assert [item.id for item in cart.items] == [7]
        assert cart.total == 8000

    def test_remove_unknown_id_is_noop(self, cart: Cart) -> None:
        assert cart.remove_item(99) is cart

    def test_clear(self, cart: Cart) -> None:
        cleared = cart.clear()
        assert cleared.is_empty()
        assert cleared.updated_at is not None


class TestTotals:
    """Tests for derived totals."""

    def test_total_sums_lines(self) -> None:
        cart = Cart().add_item(5, "Margherita", 25000, 2).add_item(7, "Cola", 8000, 3)

        assert cart.total == 74000
        assert cart.item_count() == 5

    def test_total_not_read_from_input(self) -> None:
        """A stored total is ignored and recomputed from the items."""
        cart = Cart.model_validate(
            {"items": [{"id": 5, "name": "Margherita", "price": 25000, "quantity": 3}], "total": 1}
        )
        assert cart.total == 75000

    def test_total_serialized(self, cart: Cart) -> None:
        assert cart.model_dump()["total"] == 50000

    def test_summary(self, cart: Cart) -> None:
        summary = cart.to_summary()

        assert summary["total"] == 50000
        assert summary["item_count"] == 2
        assert summary["items"][0]["line_total"] == 50000


class TestValidation:
    """Tests for cart invariants."""

    def test_duplicate_ids_rejected(self) -> None:
        item = CartItem(id=5, name="Margherita", price=25000, quantity=1)
        with pytest.raises(ValidationError):
            Cart(items=(item, item))

    def test_from_items_merges_duplicates(self) -> None:
        cart = Cart.from_items(
            [
                {"id": 5, "name": "Margherita", "price": 25000, "quantity": 1},
                {"id": 5, "name": "Margherita", "price": 25000, "quantity": 2},
            ]
        )
        assert cart.items[0].quantity == 3

    @pytest.mark.parametrize(
        "fields",
        [
            {"id": 1, "name": "X", "price": -1, "quantity": 1},
            {"id": 1, "name": "X", "price": 10, "quantity": 0},
            {"id": 1, "name": "", "price": 10, "quantity": 1},
        ],
    )
    def test_invalid_items_rejected(self, fields: dict) -> None:
        with pytest.raises(ValidationError):
            CartItem(**fields)

    def test_cart_is_immutable(self, cart: Cart) -> None:
        with pytest.raises(ValidationError):
            cart.items = ()  # type: ignore[misc]
