"""Runtime settings for the checkout engine.

Values come from ``CHECKOUT_*`` environment variables so that deployments can
tune timeouts and retry counts without code changes. Protean's own settings
(databases, brokers, event store) live in ``domain.toml`` next to the domain.
"""

import os
from dataclasses import dataclass, fields
from decimal import Decimal


@dataclass(frozen=True)
class CheckoutSettings:
    currency: str = "SEK"
    price_tolerance: Decimal = Decimal("0.01")

    # Inventory
    reservation_ttl_seconds: int = 15 * 60
    pending_payment_hold_seconds: int = 72 * 60 * 60
    stock_cas_attempts: int = 8

    # Payments
    payment_timeout_seconds: float = 10.0
    verify_attempts: int = 3

    # Shipping labels
    carrier_timeout_seconds: float = 15.0
    carrier_attempts: int = 3
    default_item_weight_kg: float = 0.5
    tracking_url_base: str = "https://track.checkout.example.com/tracking"

    # Shared backoff for idempotent retries (doubles per attempt)
    retry_backoff_seconds: float = 0.25

    @classmethod
    def from_env(cls, environ=None) -> "CheckoutSettings":
        """Build settings, overriding defaults with ``CHECKOUT_<FIELD>`` variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for field in fields(cls):
            raw = environ.get(f"CHECKOUT_{field.name.upper()}")
            if raw is None or raw == "":
                continue
            default = field.default
            if isinstance(default, bool):
                overrides[field.name] = raw.lower() in ("1", "true", "yes")
            elif isinstance(default, int):
                overrides[field.name] = int(raw)
            elif isinstance(default, float):
                overrides[field.name] = float(raw)
            elif isinstance(default, Decimal):
                overrides[field.name] = Decimal(raw)
            else:
                overrides[field.name] = raw
        return cls(**overrides)
