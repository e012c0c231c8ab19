"""In-memory catalog adapter for development and tests.

Can be filled from a JSON file at startup: a list of objects with
``product_id``, ``price``, ``stock`` and optionally ``name``, ``is_active``
and ``weight_kg``.
"""

import json
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

from checkout.catalog.http_adapter import snapshot_from_dict
from checkout.catalog.port import CatalogGateway, ProductSnapshot


class InMemoryCatalog(CatalogGateway):
    def __init__(self) -> None:
        self._products: dict[str, ProductSnapshot] = {}

    def add_product(
        self,
        product_id: str,
        price,
        stock: int,
        name: str | None = None,
        is_active: bool = True,
        weight_kg: float | None = None,
    ) -> ProductSnapshot:
        snapshot = ProductSnapshot(
            product_id=product_id,
            name=name or product_id,
            price=Decimal(str(price)),
            stock=stock,
            is_active=is_active,
            weight_kg=weight_kg,
        )
        self._products[product_id] = snapshot
        return snapshot

    def update_product(self, product_id: str, **changes) -> ProductSnapshot:
        if "price" in changes:
            changes["price"] = Decimal(str(changes["price"]))
        snapshot = replace(self._products[product_id], **changes)
        self._products[product_id] = snapshot
        return snapshot

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        return self._products.get(product_id)

    def products(self) -> list[ProductSnapshot]:
        return list(self._products.values())

    @classmethod
    def from_file(cls, path) -> "InMemoryCatalog":
        catalog = cls()
        for entry in json.loads(Path(path).read_text(encoding="utf-8")):
            snapshot = snapshot_from_dict(entry)
            catalog._products[snapshot.product_id] = snapshot
        return catalog
