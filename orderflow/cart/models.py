"""Cart aggregate.

The cart is an immutable value: every mutation returns a new Cart whose
total is derived from its items and whose ``updated_at`` is stamped with
the mutation time. Carts have no storage of their own and are persisted
only as part of a Session.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from orderflow.clock import utc_now


class CartItem(BaseModel):
    """A cart line. Name and price are snapshots taken when the item was added."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(..., description="Catalog product id")
    name: str = Field(..., min_length=1, description="Product name at add time")
    price: float = Field(..., ge=0, description="Unit price at add time")
    quantity: int = Field(..., ge=1, description="Units in the cart")

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Cart(BaseModel):
    """Ordered collection of cart lines, unique by product id."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    items: tuple[CartItem, ...] = Field(default=(), description="Cart lines in add order")
    updated_at: datetime | None = Field(
        default=None, description="Last mutation time, the session liveness signal"
    )

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "Cart":
        ids = [item.id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("cart items must be unique by id")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        """Sum of price * quantity over all lines. Never read from input."""
        return sum(item.price * item.quantity for item in self.items)

    @classmethod
    def from_items(
        cls, items: Iterable[CartItem | dict[str, Any]], updated_at: datetime | None = None
    ) -> "Cart":
        """Build a cart, merging repeated ids the same way add_item does."""
        cart = cls(updated_at=updated_at)
        for raw in items:
            item = raw if isinstance(raw, CartItem) else CartItem.model_validate(raw)
            cart = cart.add_item(item.id, item.name, item.price, item.quantity)
        return cart

    def add_item(self, item_id: int, name: str, price: float, quantity: int = 1) -> "Cart":
        """Add units of a product, summing quantities for an existing id.

        The snapshot of the first add is kept. Non-positive quantities are
        ignored.
        """
        if quantity <= 0:
            return self

        items = list(self.items)
        for index, existing in enumerate(items):
            if existing.id == item_id:
                items[index] = existing.model_copy(
                    update={"quantity": existing.quantity + quantity}
                )
                break
        else:
            items.append(CartItem(id=item_id, name=name, price=price, quantity=quantity))

        return self._replace(items)

    def remove_item(self, item_id: int) -> "Cart":
        """Remove a product line. Unknown ids leave the cart unchanged."""
        if self.get_item(item_id) is None:
            return self
        return self._replace([item for item in self.items if item.id != item_id])

    def set_quantity(self, item_id: int, quantity: int) -> "Cart":
        """Set the quantity of a line; zero or less removes it."""
        if self.get_item(item_id) is None:
            return self
        if quantity <= 0:
            return self.remove_item(item_id)

        return self._replace(
            [
                item.model_copy(update={"quantity": quantity}) if item.id == item_id else item
                for item in self.items
            ]
        )

    def clear(self) -> "Cart":
        """Empty the cart."""
        return self._replace([])

    def is_empty(self) -> bool:
        return not self.items

    def item_count(self) -> int:
        """Total number of units across all lines."""
        return sum(item.quantity for item in self.items)

    def get_item(self, item_id: int) -> CartItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_summary(self) -> dict[str, Any]:
        """Plain representation for render directives and order snapshots."""
        return {
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "price": item.price,
                    "quantity": item.quantity,
                    "line_total": item.line_total,
                }
                for item in self.items
            ],
            "item_count": self.item_count(),
            "total": self.total,
        }

    def _replace(self, items: list[CartItem]) -> "Cart":
        return Cart(items=tuple(items), updated_at=utc_now())
