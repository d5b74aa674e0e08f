"""Cart aggregate embedded in every session."""

from orderflow.cart.models import Cart, CartItem

__all__ = ["Cart", "CartItem"]
