"""Tests for pickup slots and order placement."""

from datetime import datetime

from orderflow.flow.checkout import (
    find_order,
    generate_time_slots,
    new_order_number,
    place_order,
    repeat_order,
)
from orderflow.sessions.models import DeliveryType, PaymentMethod

AFTER_MIDNIGHT = ["00:20-00:40", "01:20-01:40", "02:20-02:40"]


class TestTimeSlots:
    """Tests for generate_time_slots."""

    def test_morning_offers_full_day(self) -> None:
        slots = generate_time_slots(datetime(2025, 3, 1, 8, 0))

        assert slots[0] == "10:20-10:40"
        assert slots[13] == "23:20-23:40"
        assert slots[-3:] == AFTER_MIDNIGHT

    def test_current_hour_offered_before_slot_start(self) -> None:
        assert generate_time_slots(datetime(2025, 3, 1, 18, 10))[0] == "18:20-18:40"

    def test_current_hour_skipped_after_slot_start(self) -> None:
        assert generate_time_slots(datetime(2025, 3, 1, 18, 30))[0] == "19:20-19:40"

    def test_late_evening_only_after_midnight(self) -> None:
        assert generate_time_slots(datetime(2025, 3, 1, 23, 45)) == AFTER_MIDNIGHT

    def test_custom_hours(self) -> None:
        slots = generate_time_slots(datetime(2025, 3, 1, 8, 0), first_hour=21, last_hour=0)
        assert slots == ["21:20-21:40", "22:20-22:40", "23:20-23:40", "00:20-00:40"]


class TestPlaceOrder:
    """Tests for place_order and order history."""

    def test_places_and_resets(self, shopping_session, now) -> None:
        session = shopping_session
        session.order.pickup_time = "asap"
        session.order.payment_method = PaymentMethod.CLICK

        order = place_order(session, now, history_limit=5)

        assert order.total == 50000
        assert order.branch_id == 10
        assert order.phone == "+998901234567"
        assert order.placed_at == now
        assert session.cart.is_empty()
        assert session.orders == [order]
        assert session.order.delivery_type == DeliveryType.PICKUP
        assert session.order.payment_method is None

    def test_history_bounded(self, shopping_session, now) -> None:
        session = shopping_session
        for _ in range(4):
            session.cart = session.cart.add_item(1000, "Margherita", 25000)
            place_order(session, now, history_limit=3)

        assert len(session.orders) == 3

    def test_additional_phone_preferred(self, shopping_session, now) -> None:
        shopping_session.order.additional_phone = "+998935554433"

        assert place_order(shopping_session, now, 5).phone == "+998935554433"

    def test_find_and_repeat(self, shopping_session, now) -> None:
        order = place_order(shopping_session, now, 5)

        assert find_order(shopping_session, order.number) == order
        assert find_order(shopping_session, "0000") is None
        assert find_order(shopping_session, None) is None

        repeat_order(shopping_session, order)
        assert shopping_session.cart.total == 50000

    def test_order_number_format(self) -> None:
        number = new_order_number()
        assert len(number) == 4 and number.isdigit()
