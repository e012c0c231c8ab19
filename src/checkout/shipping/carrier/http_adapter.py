"""HTTP carrier adapter: talks to a carrier's label API with ``requests``.

The shipment reference is sent as the ``Idempotency-Key`` header so the
carrier returns the existing label when a purchase is repeated.
"""

import requests
import structlog

from checkout.shipping.carrier.port import (
    CarrierGateway,
    CarrierRejected,
    CarrierUnavailable,
    PurchasedLabel,
    Shipment,
)

logger = structlog.get_logger(__name__)


class HttpCarrier(CarrierGateway):
    def __init__(self, base_url: str, api_key: str | None = None, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()

    def purchase_label(self, shipment: Shipment, timeout: float | None = None) -> PurchasedLabel:
        headers = {"Idempotency-Key": shipment.reference}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "reference": shipment.reference,
            "carrier": shipment.carrier_code,
            "service_level": shipment.service_level,
            "weight_kg": shipment.weight_kg,
            "recipient": shipment.recipient,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/labels",
                json=payload,
                headers=headers,
                timeout=timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise CarrierUnavailable(str(exc)) from exc

        if response.status_code >= 500:
            raise CarrierUnavailable(f"Carrier returned {response.status_code}")
        if response.status_code >= 400:
            logger.warning(
                "Carrier rejected shipment",
                reference=shipment.reference,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise CarrierRejected(f"Carrier returned {response.status_code}")

        data = response.json()
        return PurchasedLabel(
            tracking_number=data["tracking_number"],
            label_url=data["label_url"],
            estimated_delivery=data.get("estimated_delivery"),
        )
