"""Carrier adapter abstraction: pluggable shipping carrier integration."""

import os

_carrier_instance = None


def get_carrier():
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. Set CARRIER_ADAPTER=http together with
    CARRIER_API_URL (and optionally CARRIER_API_KEY) to talk to a real
    carrier API.
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from checkout.shipping.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "http":
            from checkout.shipping.carrier.http_adapter import HttpCarrier

            base_url = os.environ.get("CARRIER_API_URL")
            if not base_url:
                raise ValueError("CARRIER_API_URL must be set for the http carrier adapter")
            _carrier_instance = HttpCarrier(base_url, api_key=os.environ.get("CARRIER_API_KEY"))
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier):
    """Override the active carrier adapter (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier():
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
