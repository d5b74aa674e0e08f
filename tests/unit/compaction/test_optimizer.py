"""Tests for SessionOptimizer size checks and optimization."""

from datetime import datetime, timedelta

import pytest

from orderflow.compaction import SessionOptimizer, SizeReason
from orderflow.compaction.optimizer import demote, resolve_name
from orderflow.config.models.compaction import CompactionConfig
from orderflow.sessions.models import (
    AwaitingCutleryChoice,
    AwaitingQuantity,
    SceneName,
    Session,
    default_session,
)


def big_product(product_id: int = 1000) -> dict:
    return {
        "id": product_id,
        "name": {"en": "Margherita", "ru": "Маргарита"},
        "price": 25000,
        "description": "Tomato, mozzarella, basil. " * 80,
        "images": [f"https://cdn.example.com/{i}.jpg" for i in range(20)],
    }


@pytest.fixture
def optimizer() -> SessionOptimizer:
    return SessionOptimizer(CompactionConfig(size_threshold_bytes=4096), max_history=10)


@pytest.fixture
def bloated(now: datetime) -> Session:
    """Session carrying a catalog cache, a full product and many quantities."""
    session = default_session(now=now)
    session.scene.current = SceneName.PRODUCTS
    session.cart = session.cart.add_item(1000, "Margherita", 25000, 3)
    selection = session.selection
    selection.catalog_cache = {"products": [big_product(i) for i in range(5)]}
    selection.selected_product = big_product()
    selection.selected_category = {"id": 100, "name": "Pizza", "description": "x" * 500}
    selection.product_quantities = {str(i): 1 for i in range(40)}
    selection.touched_at = now
    return session


class TestCheckSize:
    """Tests for size reports."""

    def test_small_session(self, optimizer, fresh_session):
        report = optimizer.check_size(fresh_session)

        assert report.is_oversized is False
        assert report.reasons == []
        assert report.threshold_bytes == 4096

    def test_reasons_reported(self, optimizer, bloated):
        report = optimizer.check_size(bloated)

        assert report.is_oversized is True
        assert SizeReason.CATALOG_CACHE in report.reasons
        assert SizeReason.LARGE_SELECTED_PRODUCT in report.reasons
        assert SizeReason.MANY_PRODUCT_QUANTITIES in report.reasons

    def test_large_cart_reason(self, optimizer, fresh_session):
        cart = fresh_session.cart
        for i in range(25):
            cart = cart.add_item(i + 1, f"Item {i}", 1000)
        fresh_session.cart = cart

        assert SizeReason.LARGE_CART in optimizer.check_size(fresh_session).reasons

    def test_measure_is_utf8_bytes(self, optimizer, fresh_session):
        fresh_session.name = "Ташкент"
        assert optimizer.measure(fresh_session) == len(
            fresh_session.model_dump_json().encode("utf-8")
        )


class TestOptimize:
    """Tests for the pure optimize operation."""

    def test_strips_refetchable_data(self, optimizer, bloated, now):
        optimized, report = optimizer.optimize(bloated, now)

        assert optimized.selection.catalog_cache == {}
        assert optimized.selection.selected_product == {
            "id": 1000,
            "name": "Margherita",
            "price": 25000,
        }
        assert optimized.selection.selected_category == {"id": 100, "name": "Pizza"}
        assert len(optimized.selection.product_quantities) == 20
        assert "selection.catalog_cache" in report.removed_fields
        assert report.compression_ratio > 0.5

    def test_input_not_modified(self, optimizer, bloated, now):
        before = bloated.model_dump()
        optimizer.optimize(bloated, now)

        assert bloated.model_dump() == before

    def test_cart_untouched(self, optimizer, bloated, now):
        optimized, _ = optimizer.optimize(bloated, now)

        assert optimized.cart == bloated.cart
        assert optimized.cart.total == 75000

    def test_idempotent(self, optimizer, bloated, now):
        once, _ = optimizer.optimize(bloated, now)
        twice, report = optimizer.optimize(once, now)

        assert twice.model_dump() == once.model_dump()
        assert report.removed_fields == []
        assert report.bytes_saved == 0

    def test_expired_selection_reset(self, optimizer, bloated, now):
        later = now + timedelta(hours=2)
        optimized, report = optimizer.optimize(bloated, later)

        assert optimized.selection.is_empty()
        assert report.removed_fields[0] == "selection"

    def test_orphaned_pending_input_dropped(self, optimizer, fresh_session, now):
        """Pending input set by a scene the user already left is removed."""
        fresh_session.scene.current = SceneName.MAIN_MENU
        fresh_session.scene.pending = AwaitingCutleryChoice(owner=SceneName.CHECKOUT_CUTLERY)

        optimized, report = optimizer.optimize(fresh_session, now)

        assert optimized.scene.pending is None
        assert "scene.pending.cutlery_choice" in report.removed_fields

    def test_current_pending_input_kept(self, optimizer, bloated, now):
        bloated.scene.pending = AwaitingQuantity(owner=SceneName.PRODUCTS, product_id=1000)

        optimized, _ = optimizer.optimize(bloated, now)

        assert optimized.scene.pending == bloated.scene.pending

    def test_history_trimmed(self, optimizer, fresh_session, now):
        fresh_session.scene.history = [SceneName.MAIN_MENU, SceneName.SETTINGS] * 8

        optimized, _ = optimizer.optimize(fresh_session, now)

        assert len(optimized.scene.history) == 10


class TestCompactForSave:
    """Tests for reactive compaction."""

    def test_small_session_only_bounded(self, optimizer, fresh_session):
        fresh_session.selection.product_quantities = {str(i): 1 for i in range(25)}

        saved = optimizer.compact_for_save("1:2", fresh_session)

        assert len(saved.selection.product_quantities) == 20
        assert fresh_session.selection.product_quantities != saved.selection.product_quantities

    def test_unchanged_session_returned_as_is(self, optimizer, fresh_session):
        assert optimizer.compact_for_save("1:2", fresh_session) is fresh_session

    def test_oversized_session_optimized(self, optimizer, bloated, now):
        saved = optimizer.compact_for_save("1:2", bloated, now)

        assert saved.selection.catalog_cache == {}
        assert optimizer.check_size(saved).is_oversized is False

    def test_insufficient_improvement_keeps_session(self, fresh_session, now):
        """An oversized session that optimization cannot shrink is kept whole."""
        optimizer = SessionOptimizer(CompactionConfig(size_threshold_bytes=100))
        fresh_session.name = "A" * 300
        fresh_session.selection.catalog_cache = {"cities": [{"id": 1}]}
        fresh_session.selection.touched_at = now

        saved = optimizer.compact_for_save("1:2", fresh_session, now)

        assert saved.selection.catalog_cache == {"cities": [{"id": 1}]}


class TestExpiry:
    """Tests for stale session detection."""

    def test_recent_activity_is_live(self, optimizer, fresh_session, now):
        assert optimizer.expiry_reason(fresh_session, now + timedelta(minutes=1)) is None

    def test_inactive(self, optimizer, fresh_session, now):
        assert optimizer.expiry_reason(fresh_session, now + timedelta(hours=25)) == "inactive"

    def test_no_activity_signal_is_stale(self, optimizer, now):
        session = Session()

        assert optimizer.last_activity(session) is None
        assert optimizer.expiry_reason(session, now) == "inactive"

    def test_absolute_age(self, optimizer, fresh_session, now):
        """Old sessions expire even when recently active."""
        later = now + timedelta(days=8)
        fresh_session.cart = fresh_session.cart.model_copy(update={"updated_at": later})

        assert optimizer.expiry_reason(fresh_session, later) == "expired"

    def test_naive_timestamps_treated_as_utc(self, optimizer, fresh_session, now):
        fresh_session.cart = fresh_session.cart.model_copy(
            update={"updated_at": now.replace(tzinfo=None)}
        )
        assert optimizer.expiry_reason(fresh_session, now + timedelta(minutes=5)) is None


class TestNames:
    def test_resolve_name_precedence(self):
        entity = {
            "name": "Plain",
            "attribute_data": {"name": {"ru": "Русское"}},
            "custom_name": "Custom",
        }
        assert resolve_name(entity, "ru") == "Custom"
        del entity["custom_name"]
        assert resolve_name(entity, "ru") == "Русское"
        assert resolve_name({"name": "Plain"}, "ru") == "Plain"

    def test_resolve_name_falls_back_to_any_language(self):
        assert resolve_name({"name": {"uz": "Palov"}}, "en") == "Palov"

    def test_demote(self):
        assert demote(big_product(), ("id", "name", "price"), "ru") == {
            "id": 1000,
            "name": "Маргарита",
            "price": 25000,
        }
