"""Scene guards.

A guard is a predicate over the session that must hold before a scene can
be entered. When it fails, the conversation is redirected to a recovery
scene instead of failing the event.
"""

from collections.abc import Callable
from dataclasses import dataclass

from orderflow.sessions.models import DeliveryType, SceneName, Session


@dataclass(frozen=True)
class Guard:
    """Named predicate with its recovery scene."""

    name: str
    check: Callable[[Session], bool]
    redirect: SceneName

    def __call__(self, session: Session) -> bool:
        return self.check(session)


def _registered(session: Session) -> bool:
    return session.registered and bool(session.phone)


def _delivery_chosen(session: Session) -> bool:
    order = session.order
    if order.delivery_type == DeliveryType.PICKUP:
        return session.selected_branch is not None
    if order.delivery_type == DeliveryType.DELIVERY:
        return bool(order.address) or order.coordinates is not None
    return False


REGISTERED = Guard("registered", _registered, SceneName.REGISTRATION)

IS_AUTHENTICATED = Guard(
    "is_authenticated",
    lambda session: session.is_authenticated,
    SceneName.AUTHENTICATION,
)

CITY_SELECTED = Guard(
    "city_selected",
    lambda session: session.selected_city is not None,
    SceneName.CHANGE_CITY,
)

DELIVERY_CHOSEN = Guard("delivery_chosen", _delivery_chosen, SceneName.DELIVERY_TYPE)

CART_NOT_EMPTY = Guard(
    "cart_not_empty",
    lambda session: not session.cart.is_empty(),
    SceneName.CATEGORIES,
)

CATEGORY_SELECTED = Guard(
    "category_selected",
    lambda session: session.selection.selected_category is not None,
    SceneName.CATEGORIES,
)
