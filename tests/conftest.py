"""Shared test fixtures for the Orderflow test suite."""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from orderflow.cart import Cart
from orderflow.config.models.compaction import CompactionConfig
from orderflow.flow.catalog import InMemoryCatalog
from orderflow.flow.verification import InMemoryVerificationClient
from orderflow.sessions import SessionLockManager, SessionService
from orderflow.sessions.models import SceneName, Session, default_session
from orderflow.sessions.stores import InMemorySessionStorage

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test.

    This ensures test isolation for configuration tests.
    """
    from orderflow.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW


@pytest.fixture
def storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()


@pytest.fixture
def service(storage: InMemorySessionStorage) -> SessionService:
    """Session service over in-memory storage with caching disabled."""
    return SessionService(
        storage,
        lock_manager=SessionLockManager(timeout=1.0),
        cache_ttl_seconds=0,
    )


@pytest.fixture
def compaction_config() -> CompactionConfig:
    return CompactionConfig()


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    """Raw catalog entities as an external catalog would return them."""
    return {
        "cities": [
            {"id": 1, "name": "Tashkent", "attribute_data": {"name": {"ru": "Ташкент"}}},
            {"id": 2, "name": "Samarkand"},
        ],
        "branches": {
            1: [
                {"id": 10, "name": "Chilanzar", "address": "Chilanzar 1"},
                {"id": 11, "name": "Yunusabad", "address": "Yunusabad 4"},
            ],
            2: [{"id": 20, "name": "Registan", "address": "Registan sq."}],
        },
        "categories": {
            1: [
                {"id": 100, "name": "Pizza", "description": "Stone oven pizza"},
                {"id": 101, "name": "Drinks"},
            ],
            2: [{"id": 200, "name": "Plov"}],
        },
        "products": {
            100: [
                {
                    "id": 1000,
                    "name": "Margherita",
                    "price": 25000,
                    "description": "Tomato, mozzarella, basil",
                    "image": "https://cdn.example.com/margherita.jpg",
                },
                {"id": 1001, "name": "Pepperoni", "price": 32000},
            ],
            101: [{"id": 1010, "name": "Cola", "price": 8000}],
            200: [{"id": 2000, "name": "Wedding plov", "price": 45000}],
        },
    }


@pytest.fixture
def catalog(catalog_data: dict[str, Any]) -> InMemoryCatalog:
    return InMemoryCatalog(
        cities=catalog_data["cities"],
        branches=catalog_data["branches"],
        categories=catalog_data["categories"],
        products=catalog_data["products"],
    )


@pytest.fixture
def verifier() -> InMemoryVerificationClient:
    return InMemoryVerificationClient(fixed_code="123456")


@pytest.fixture
def fresh_session(now: datetime) -> Session:
    return default_session(now=now)


@pytest.fixture
def registered_session(now: datetime) -> Session:
    """Registered user with a city chosen, sitting in the main menu."""
    session = default_session(now=now)
    session.registered = True
    session.phone = "+998901234567"
    session.name = "Aziza"
    session.selected_city = 1
    session.current_city = "Tashkent"
    session.scene.current = SceneName.MAIN_MENU
    session.cart = Cart(updated_at=now)
    return session
