"""Carrier port: abstract interface for shipping carrier integrations.

All carrier adapters implement this interface. The label issuer programs
against the port; adapters are swapped via configuration.

``CarrierUnavailable`` marks a transient failure that is safe to retry, since
purchases are idempotent by shipment reference. ``CarrierRejected`` is an
explicit refusal and is never retried.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class CarrierError(Exception):
    """Base class for carrier failures."""


class CarrierUnavailable(CarrierError):
    """Timeout, connection failure or server error at the carrier."""


class CarrierRejected(CarrierError):
    """The carrier refused the shipment (bad address, unsupported service)."""


@dataclass(frozen=True)
class Shipment:
    reference: str  # order id; carriers deduplicate on it
    carrier_code: str
    service_level: str
    weight_kg: float
    recipient: dict


@dataclass(frozen=True)
class PurchasedLabel:
    tracking_number: str
    label_url: str
    estimated_delivery: str | None = None


class CarrierGateway(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def purchase_label(self, shipment: Shipment, timeout: float | None = None) -> PurchasedLabel:
        """Buy a tracking number and printable label for ``shipment``."""
        ...
