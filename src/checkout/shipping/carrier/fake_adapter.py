"""Fake carrier adapter: deterministic carrier for testing and development.

Generates tracking numbers in each carrier's format and remembers them per
shipment reference, so a repeated purchase returns the original label.
Can be configured to reject shipments or to fail transiently a number of
times before succeeding.
"""

import secrets
import string
import threading
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from checkout.shipping.carrier.port import (
    CarrierGateway,
    CarrierRejected,
    CarrierUnavailable,
    PurchasedLabel,
    Shipment,
)
from checkout.shipping.carriers import CARRIERS

_ALPHABET = string.ascii_uppercase + string.digits


class FakeCarrier(CarrierGateway):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Shipment rejected"
        self.transient_failures = 0
        self.calls: list[Shipment] = []
        self._labels: dict[str, PurchasedLabel] = {}
        self._lock = threading.Lock()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Shipment rejected",
        transient_failures: int = 0,
    ):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.transient_failures = transient_failures

    def purchase_label(self, shipment: Shipment, timeout: float | None = None) -> PurchasedLabel:
        self.calls.append(shipment)
        with self._lock:
            if self.transient_failures > 0:
                self.transient_failures -= 1
                raise CarrierUnavailable(f"Carrier did not respond within {timeout}s")
            if not self.should_succeed:
                raise CarrierRejected(self.failure_reason)

            label = self._labels.get(shipment.reference)
            if label is None:
                carrier = CARRIERS.get(shipment.carrier_code)
                prefix = carrier.tracking_prefix if carrier else "FAKE"
                days = carrier.estimated_days if carrier else 5
                stamp = str(int(datetime.now(UTC).timestamp() * 1000))[-6:]
                suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
                label_id = uuid4().hex[:8]
                label = PurchasedLabel(
                    tracking_number=f"{prefix}{stamp}{suffix}",
                    label_url=f"https://fake-carrier.example.com/labels/{label_id}.pdf",
                    estimated_delivery=(datetime.now(UTC) + timedelta(days=days)).date().isoformat(),
                )
                self._labels[shipment.reference] = label
            return label
