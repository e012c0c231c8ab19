"""Catalog adapter factory.

``get_catalog()`` picks the adapter from ``CATALOG_ADAPTER``:

- ``memory`` (default): an in-memory catalog, filled from the JSON file named
  by ``CATALOG_SEED_FILE`` when it is set
- ``http``: a catalog service at ``CATALOG_API_URL`` (optionally with
  ``CATALOG_API_KEY``)
"""

import os

import structlog

logger = structlog.get_logger(__name__)

_catalog_instance = None


def get_catalog():
    """Return the configured catalog adapter (singleton)."""
    global _catalog_instance
    if _catalog_instance is None:
        adapter = os.environ.get("CATALOG_ADAPTER", "memory")
        if adapter == "memory":
            from checkout.catalog.memory_adapter import InMemoryCatalog

            seed_file = os.environ.get("CATALOG_SEED_FILE")
            if seed_file:
                _catalog_instance = InMemoryCatalog.from_file(seed_file)
                logger.info("Catalog loaded", source=seed_file, products=len(_catalog_instance.products()))
            else:
                _catalog_instance = InMemoryCatalog()
        elif adapter == "http":
            from checkout.catalog.http_adapter import HttpCatalog

            base_url = os.environ.get("CATALOG_API_URL")
            if not base_url:
                raise ValueError("CATALOG_API_URL must be set for the http catalog adapter")
            _catalog_instance = HttpCatalog(base_url, api_key=os.environ.get("CATALOG_API_KEY"))
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _catalog_instance


def set_catalog(catalog):
    """Override the active catalog adapter (useful for tests)."""
    global _catalog_instance
    _catalog_instance = catalog


def reset_catalog():
    global _catalog_instance
    _catalog_instance = None
