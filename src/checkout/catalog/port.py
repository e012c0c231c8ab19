"""Catalog gateway port: read-only product snapshots consumed at validation time."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ProductSnapshot:
    """Authoritative product data as the catalog sees it right now."""

    product_id: str
    name: str
    price: Decimal
    stock: int
    is_active: bool = True
    weight_kg: float | None = None


class CatalogGateway(ABC):
    """Abstract catalog interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        """Return the current snapshot for a product, or None when it does not exist."""
        ...
