"""Catalog collaborator interface.

The conversation machine reads cities, branches, categories and products
through this interface. Only ``{id, name, price}`` snapshots of what it
returns are ever stored in carts.
"""

from abc import ABC, abstractmethod
from typing import Any

from orderflow.errors import CatalogError


class CatalogClient(ABC):
    """Read-only access to external catalog entities."""

    @abstractmethod
    async def list_cities(self) -> list[dict[str, Any]]:
        """Get all cities served."""
        pass

    @abstractmethod
    async def list_branches(self, city_id: int) -> list[dict[str, Any]]:
        """Get the branches (terminals) of a city."""
        pass

    @abstractmethod
    async def list_categories(self, city_id: int) -> list[dict[str, Any]]:
        """Get the menu categories available in a city."""
        pass

    @abstractmethod
    async def list_products(self, category_id: int) -> list[dict[str, Any]]:
        """Get the products of a category."""
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> dict[str, Any] | None:
        """Get a product by id, or None if it does not exist."""
        pass


class InMemoryCatalog(CatalogClient):
    """Dict-backed catalog for testing and development."""

    def __init__(
        self,
        cities: list[dict[str, Any]] | None = None,
        branches: dict[int, list[dict[str, Any]]] | None = None,
        categories: dict[int, list[dict[str, Any]]] | None = None,
        products: dict[int, list[dict[str, Any]]] | None = None,
    ) -> None:
        self._cities = cities or []
        self._branches = branches or {}
        self._categories = categories or {}
        self._products = products or {}
        self._available = True

    def set_available(self, available: bool) -> None:
        """Simulate an outage of the catalog API (test utility)."""
        self._available = available

    async def list_cities(self) -> list[dict[str, Any]]:
        self._check()
        return [dict(city) for city in self._cities]

    async def list_branches(self, city_id: int) -> list[dict[str, Any]]:
        self._check()
        return [dict(branch) for branch in self._branches.get(city_id, [])]

    async def list_categories(self, city_id: int) -> list[dict[str, Any]]:
        self._check()
        return [dict(category) for category in self._categories.get(city_id, [])]

    async def list_products(self, category_id: int) -> list[dict[str, Any]]:
        self._check()
        return [dict(product) for product in self._products.get(category_id, [])]

    async def get_product(self, product_id: int) -> dict[str, Any] | None:
        self._check()
        for listing in self._products.values():
            for product in listing:
                if product.get("id") == product_id:
                    return dict(product)
        return None

    def _check(self) -> None:
        if not self._available:
            raise CatalogError("Catalog API is unavailable")
