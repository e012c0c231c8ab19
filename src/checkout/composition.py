"""Composition root: wires the checkout engine together explicitly.

Processors are registered here by hand; nothing is discovered through
reflection. ``get_checkout()`` returns a process-wide orchestrator built from
the configured adapters; tests build their own with ``build_orchestrator``.
"""

from datetime import timedelta

from checkout.catalog import get_catalog
from checkout.catalog.port import CatalogGateway
from checkout.config import CheckoutSettings
from checkout.inventory.ledger import InventoryLedger
from checkout.notifications.dispatcher import NotificationDispatcher
from checkout.notifications.fake_adapter import FakeNotifier
from checkout.notifications.port import NotificationGateway
from checkout.order.store import OrderStore
from checkout.payments.gateway import get_gateway
from checkout.payments.gateway.port import PaymentGateway
from checkout.payments.processors import CardProcessor, ManualProcessor, RedirectProcessor
from checkout.payments.registry import PaymentProcessorRegistry
from checkout.saga.orchestrator import CheckoutOrchestrator
from checkout.shipping.carrier import get_carrier
from checkout.shipping.carrier.port import CarrierGateway
from checkout.shipping.issuer import ShippingLabelIssuer

_current_checkout: CheckoutOrchestrator | None = None


def build_registry(gateway: PaymentGateway, settings: CheckoutSettings) -> PaymentProcessorRegistry:
    options = {
        "gateway": gateway,
        "timeout": settings.payment_timeout_seconds,
        "verify_attempts": settings.verify_attempts,
        "backoff_seconds": settings.retry_backoff_seconds,
    }
    registry = PaymentProcessorRegistry()
    registry.register(CardProcessor("card", **options))
    registry.register(RedirectProcessor("swish", **options))
    registry.register(RedirectProcessor("klarna", **options))
    registry.register(ManualProcessor("bank-transfer"))
    return registry


def catalog_stock(catalog: CatalogGateway):
    """Seed ledger records from the catalog's stock count the first time a product is reserved."""

    def stock_of(product_id: str) -> int:
        product = catalog.get_product(product_id)
        return product.stock if product is not None else 0

    return stock_of


def build_orchestrator(
    catalog: CatalogGateway | None = None,
    ledger: InventoryLedger | None = None,
    gateway: PaymentGateway | None = None,
    carrier: CarrierGateway | None = None,
    notifier: NotificationGateway | None = None,
    settings: CheckoutSettings | None = None,
) -> CheckoutOrchestrator:
    settings = settings or CheckoutSettings.from_env()
    catalog = catalog or get_catalog()
    ledger = ledger or InventoryLedger(
        max_attempts=settings.stock_cas_attempts,
        reservation_ttl=timedelta(seconds=settings.reservation_ttl_seconds),
        stock_source=catalog_stock(catalog),
    )
    issuer = ShippingLabelIssuer(
        carrier or get_carrier(),
        timeout=settings.carrier_timeout_seconds,
        attempts=settings.carrier_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
        default_item_weight_kg=settings.default_item_weight_kg,
        tracking_url_base=settings.tracking_url_base,
    )
    return CheckoutOrchestrator(
        catalog=catalog,
        ledger=ledger,
        registry=build_registry(gateway or get_gateway(), settings),
        store=OrderStore(),
        issuer=issuer,
        notifier=NotificationDispatcher(notifier or FakeNotifier()),
        settings=settings,
    )


def get_checkout() -> CheckoutOrchestrator:
    """Return the process-wide orchestrator, building it on first use."""
    global _current_checkout
    if _current_checkout is None:
        _current_checkout = build_orchestrator()
    return _current_checkout


def set_checkout(orchestrator: CheckoutOrchestrator) -> None:
    """Override the active orchestrator (useful for tests)."""
    global _current_checkout
    _current_checkout = orchestrator


def reset_checkout() -> None:
    global _current_checkout
    _current_checkout = None
