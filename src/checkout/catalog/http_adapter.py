"""HTTP catalog adapter: reads product snapshots from a catalog service with ``requests``."""

from decimal import Decimal

import requests
import structlog

from checkout.catalog.port import CatalogGateway, ProductSnapshot
from checkout.errors import CatalogUnavailableError

logger = structlog.get_logger(__name__)


class HttpCatalog(CatalogGateway):
    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = self.session.get(
                f"{self.base_url}/products/{product_id}",
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.warning("Catalog unreachable", product_id=product_id, error=str(exc))
            raise CatalogUnavailableError(product_id=product_id) from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.warning("Catalog lookup failed", product_id=product_id, status_code=response.status_code)
            raise CatalogUnavailableError(product_id=product_id, status_code=response.status_code)

        return snapshot_from_dict(response.json())


def snapshot_from_dict(data: dict) -> ProductSnapshot:
    weight = data.get("weight_kg")
    return ProductSnapshot(
        product_id=str(data["product_id"]),
        name=data.get("name") or str(data["product_id"]),
        price=Decimal(str(data["price"])),
        stock=int(data.get("stock", 0)),
        is_active=bool(data.get("is_active", True)),
        weight_kg=float(weight) if weight is not None else None,
    )
