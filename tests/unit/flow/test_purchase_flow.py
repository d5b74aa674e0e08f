"""End-to-end conversation tests through locked, persisted dispatch."""

import pytest

from orderflow.flow import ConversationMachine, Event
from orderflow.sessions import SessionService
from orderflow.sessions.models import DeliveryType, Language, PaymentMethod, SceneName

S = SceneName

USER_ID = 42
CHAT_ID = 42


async def send(machine: ConversationMachine, *events: Event):
    outcome = None
    for event in events:
        outcome = await machine.dispatch(USER_ID, CHAT_ID, event)
        assert outcome.persisted, outcome.error
    return outcome


class TestPurchaseFlow:
    """A new user goes from /start to a placed order."""

    @pytest.mark.asyncio
    async def test_onboarding(self, machine: ConversationMachine, service: SessionService):
        outcome = await send(machine, Event.command("/start"))
        assert outcome.scene == S.LANGUAGE_SELECT

        outcome = await send(machine, Event.action("language", "ru"))
        assert outcome.scene == S.REGISTRATION

        outcome = await send(machine, Event.contact("998 90 123 45 67", first_name="Aziza"))
        assert outcome.scene == S.WELCOME
        assert outcome.directive.notice == "registration.completed"
        assert {"id": 1, "name": "Ташкент"} in outcome.directive.data["cities"]

        outcome = await send(machine, Event.action("city", 1))
        assert outcome.scene == S.MAIN_MENU

        session = await service.get(USER_ID, CHAT_ID)
        assert session.language == Language.RU
        assert session.phone == "+998901234567"
        assert session.name == "Aziza"
        assert session.registered is True
        assert session.selected_city == 1
        assert session.current_city == "Ташкент"

    @pytest.mark.asyncio
    async def test_order_with_authentication(
        self, machine: ConversationMachine, service: SessionService
    ):
        await send(
            machine,
            Event.command("start"),
            Event.action("language", "en"),
            Event.contact("+998901234567"),
            Event.action("city", 1),
        )

        outcome = await send(
            machine,
            Event.action("order"),
            Event.action("pickup"),
            Event.action("branch", 10),
        )
        assert outcome.scene == S.CATEGORIES
        assert outcome.directive.options == ["category:100", "category:101"]

        outcome = await send(machine, Event.action("category", 100))
        assert outcome.scene == S.PRODUCTS
        assert outcome.directive.template == "products.list"

        outcome = await send(machine, Event.action("product", 1000))
        assert outcome.directive.template == "products.detail"
        assert outcome.directive.data["quantity"] == 1

        outcome = await send(machine, Event.action("increase"), Event.action("add"))
        assert outcome.directive.notice == "products.added_to_cart"
        assert outcome.directive.template == "products.list"
        assert "cart" in outcome.directive.options

        outcome = await send(machine, Event.action("cart"))
        assert outcome.scene == S.CART
        assert outcome.directive.data["total"] == 50000

        outcome = await send(
            machine,
            Event.action("checkout"),
            Event.action("nearest"),
            Event.action("payment", "cash"),
            Event.action("skip"),
            Event.action("yes"),
        )
        # Confirmation needs a verified phone first
        assert outcome.scene == S.AUTHENTICATION
        assert outcome.directive.effects[0].kind == "verification_code_sent"

        outcome = await send(machine, Event.text("123456"))
        assert outcome.scene == S.CHECKOUT_CONFIRM
        assert outcome.directive.notice == "auth.success"
        assert outcome.directive.options == ["confirm", "cancel"]

        outcome = await send(machine, Event.action("confirm"))
        assert outcome.scene == S.ORDER_PLACED
        placed = next(e for e in outcome.directive.effects if e.kind == "order_placed")
        assert placed.data["order"]["total"] == 50000
        assert placed.data["order"]["payment_method"] == "cash"

        session = await service.get(USER_ID, CHAT_ID)
        assert session.cart.is_empty()
        assert session.is_authenticated is True
        assert len(session.orders) == 1
        order = session.orders[0]
        assert order.delivery_type == DeliveryType.PICKUP
        assert order.branch_id == 10
        assert order.pickup_time == "asap"
        assert order.payment_method == PaymentMethod.CASH
        assert order.include_cutlery is True
        assert [(item.id, item.quantity) for item in order.items] == [(1000, 2)]
        assert session.order.delivery_type == DeliveryType.PICKUP
        assert session.order.payment_method is None

    @pytest.mark.asyncio
    async def test_repeat_past_order(self, machine: ConversationMachine, service: SessionService):
        await send(
            machine,
            Event.command("start"),
            Event.action("language", "en"),
            Event.contact("+998901234567"),
            Event.action("city", 1),
            Event.action("order"),
            Event.action("pickup"),
            Event.action("branch", 11),
            Event.action("category", 101),
            Event.action("product", 1010),
            Event.text("3"),
            Event.action("cart"),
            Event.action("checkout"),
            Event.action("nearest"),
            Event.action("payment", "payme"),
            Event.action("skip"),
            Event.action("no"),
            Event.text("123456"),
            Event.action("confirm"),
        )
        session = await service.get(USER_ID, CHAT_ID)
        number = session.orders[0].number

        outcome = await send(machine, Event.command("history"))
        assert outcome.scene == S.ORDER_HISTORY
        assert outcome.directive.options == [f"order:{number}"]

        outcome = await send(machine, Event.action("order", number), Event.action("repeat"))

        assert outcome.scene == S.CART
        assert outcome.directive.notice == "order_history.repeated"
        assert outcome.directive.data["total"] == 24000


class TestSessionsAreIsolated:
    """Events for one key never touch another key's session."""

    @pytest.mark.asyncio
    async def test_two_chats(self, machine: ConversationMachine, service: SessionService):
        await machine.dispatch(1, 100, Event.action("language", "ru"))
        await machine.dispatch(1, 200, Event.action("language", "uz"))

        assert (await service.get(1, 100)).language == Language.RU
        assert (await service.get(1, 200)).language == Language.UZ
