"""Checkout helpers: pickup slots, order placement and repeat orders."""

import secrets
from datetime import datetime

from orderflow.sessions.models import OrderDraft, PlacedOrder, Session

SLOT_START_MINUTE = 20
SLOT_END_MINUTE = 40


def _slot(hour: int) -> str:
    return f"{hour:02d}:{SLOT_START_MINUTE:02d}-{hour:02d}:{SLOT_END_MINUTE:02d}"


def generate_time_slots(now: datetime, first_hour: int = 10, last_hour: int = 2) -> list[str]:
    """Pickup slots still available after ``now`` (local wall-clock time).

    Same-day slots run hourly from ``first_hour`` to 23 and are offered only
    while they start in the future; the after-midnight slots up to
    ``last_hour`` are always offered.
    """
    slots = [
        _slot(hour)
        for hour in range(first_hour, 24)
        if hour > now.hour or (hour == now.hour and now.minute < SLOT_START_MINUTE)
    ]
    slots.extend(_slot(hour) for hour in range(0, last_hour + 1))
    return slots


def new_order_number() -> str:
    """Random 4-digit order number."""
    return str(1000 + secrets.randbelow(9000))


def place_order(session: Session, now: datetime, history_limit: int) -> PlacedOrder:
    """Turn the cart and checkout draft into a placed order.

    The order is appended to the bounded history, the cart is emptied and
    the draft is reset.
    """
    draft = session.order
    order = PlacedOrder(
        number=new_order_number(),
        items=session.cart.items,
        total=session.cart.total,
        delivery_type=draft.delivery_type,
        branch_id=session.selected_branch,
        address=draft.address,
        pickup_time=draft.pickup_time,
        payment_method=draft.payment_method,
        phone=draft.additional_phone or session.phone,
        include_cutlery=draft.include_cutlery,
        placed_at=now,
    )

    session.orders = [*session.orders, order][-history_limit:]
    session.cart = session.cart.clear()
    session.order = OrderDraft(delivery_type=draft.delivery_type, address=draft.address)
    return order


def find_order(session: Session, number: str | None) -> PlacedOrder | None:
    if number is None:
        return None
    for order in session.orders:
        if order.number == number:
            return order
    return None


def repeat_order(session: Session, order: PlacedOrder) -> None:
    """Add the items of a past order to the cart at their recorded prices."""
    cart = session.cart
    for item in order.items:
        cart = cart.add_item(item.id, item.name, item.price, item.quantity)
    session.cart = cart
