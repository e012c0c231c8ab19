import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from checkout.catalog.memory_adapter import InMemoryCatalog
from checkout.composition import build_orchestrator
from checkout.config import CheckoutSettings
from checkout.inventory.ledger import InventoryLedger
from checkout.notifications.fake_adapter import FakeNotifier
from checkout.payments.gateway.fake_adapter import FakeGateway
from checkout.saga.contracts import Address, CartSnapshot, CreateOrderRequest, CustomerInfo
from checkout.shipping.carrier.fake_adapter import FakeCarrier


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        for _, broker in current_domain.brokers.items():
            broker._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture
def settings():
    return CheckoutSettings(retry_backoff_seconds=0.0)


@pytest.fixture
def catalog():
    return InMemoryCatalog()


@pytest.fixture
def ledger():
    return InventoryLedger()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def carrier():
    return FakeCarrier()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def orchestrator(catalog, ledger, gateway, carrier, notifier, settings):
    orchestrator = build_orchestrator(
        catalog=catalog,
        ledger=ledger,
        gateway=gateway,
        carrier=carrier,
        notifier=notifier,
        settings=settings,
    )
    yield orchestrator
    orchestrator.notifier.shutdown()


@pytest.fixture
def add_product(catalog, ledger):
    """Put a product in the catalog and its stock in the ledger."""

    def _add(product_id, price, stock, weight_kg=None, is_active=True):
        catalog.add_product(
            product_id, price, stock, name=f"Product {product_id}", weight_kg=weight_kg, is_active=is_active
        )
        ledger.seed(product_id, stock)

    return _add


@pytest.fixture
def make_request():
    def _make(
        *lines,
        payment_method="card",
        shipping_option="standard",
        idempotency_key=None,
        country="SE",
        customer_id="cust-001",
    ):
        return CreateOrderRequest(
            cart=CartSnapshot.of(*lines),
            customer=CustomerInfo(
                customer_id=customer_id,
                email="anna@example.com",
                name="Anna Svensson",
                shipping_address=Address(
                    street="Drottninggatan 1",
                    city="Stockholm",
                    postal_code="11151",
                    country=country,
                ),
            ),
            payment_method=payment_method,
            shipping_option=shipping_option,
            idempotency_key=idempotency_key,
        )

    return _make


@pytest.fixture
def sample_order_data():
    """Keyword arguments for OrderStore.create describing a paid 450.00 order."""
    return {
        "idempotency_key": "key-001",
        "customer_id": "cust-001",
        "customer_email": "anna@example.com",
        "items": [
            {"product_id": "prod-a", "name": "Lamp", "quantity": 2, "unit_price": 150.0, "weight_kg": 1.2},
            {"product_id": "prod-b", "name": "Candle", "quantity": 1, "unit_price": 150.0, "weight_kg": None},
        ],
        "shipping_address": {
            "name": "Anna Svensson",
            "street": "Drottninggatan 1",
            "city": "Stockholm",
            "postal_code": "11151",
            "country": "SE",
        },
        "shipping_option": "standard",
        "carrier_code": "POSTNORD",
        "pricing": {
            "subtotal": 450.0,
            "tax_total": 112.5,
            "shipping_cost": 49.0,
            "grand_total": 611.5,
            "currency": "SEK",
        },
        "payment_method": "card",
        "payment_id": "fake_txn_001",
        "payment_status": "succeeded",
        "reservation_id": "res-001",
    }
