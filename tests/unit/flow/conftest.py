"""Fixtures for conversation flow tests."""

from datetime import datetime

import pytest

from orderflow.flow import ConversationMachine, Event
from orderflow.flow.catalog import InMemoryCatalog
from orderflow.flow.verification import InMemoryVerificationClient
from orderflow.sessions import SessionService
from orderflow.sessions.models import DeliveryType, SceneName, Session


@pytest.fixture
def machine(
    service: SessionService,
    catalog: InMemoryCatalog,
    verifier: InMemoryVerificationClient,
) -> ConversationMachine:
    return ConversationMachine(service, catalog, verifier)


@pytest.fixture
def run(machine: ConversationMachine, now: datetime):
    """Apply events to a session in place, returning the last (scene, directive)."""

    async def _run(session: Session, *events: Event):
        result = None
        for event in events:
            result = await machine.handle_event(session, event, now=now)
        return result

    return _run


@pytest.fixture
def shopping_session(registered_session: Session) -> Session:
    """Registered user with pickup chosen and a cart, sitting in the cart."""
    session = registered_session
    session.selected_branch = 10
    session.order.delivery_type = DeliveryType.PICKUP
    session.cart = session.cart.add_item(1000, "Margherita", 25000, 2)
    session.scene.current = SceneName.CART
    return session
