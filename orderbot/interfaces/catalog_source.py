"""Interface contract for store catalog backends."""

from abc import ABC, abstractmethod
from decimal import Decimal

from orderbot.models.conversation import Category, Product


class CatalogSource(ABC):
    """Supplies the active catalog of a tenant."""

    @abstractmethod
    async def get_categories(self, tenant_id: str) -> list[Category]:
        """Return the active categories, in display order."""
        raise NotImplementedError

    @abstractmethod
    async def get_products(self, tenant_id: str, category_id: str) -> list[Product]:
        """Return the active products of one category, in display order."""
        raise NotImplementedError

    @abstractmethod
    async def get_delivery_fee(self, tenant_id: str) -> Decimal:
        """Return the delivery fee charged on top of the cart subtotal."""
        raise NotImplementedError
