"""ShippingLabelIssuer: buys one tracking number and label per order.

``generate`` is idempotent by order id: when a label already exists it is
returned unchanged and the carrier is not called again. Purchases for the
same order are serialized in-process, and the carrier deduplicates on the
order id as well, so a retried purchase never buys a second tracking number.
"""

import time
from urllib.parse import urlencode

import structlog
from protean.utils.globals import current_domain

from checkout.errors import LabelGenerationError
from checkout.shipping.carrier.port import CarrierError, CarrierGateway, CarrierUnavailable, Shipment
from checkout.shipping.issuance import RecordShippingLabel
from checkout.shipping.label import ShippingLabel
from checkout.utils.locks import KeyedLocks
from checkout.utils.retry import call_with_retry

logger = structlog.get_logger(__name__)

MINIMUM_WEIGHT_KG = 0.5


class ShippingLabelIssuer:
    def __init__(
        self,
        carrier: CarrierGateway,
        timeout: float = 15.0,
        attempts: int = 3,
        backoff_seconds: float = 0.25,
        default_item_weight_kg: float = 0.5,
        tracking_url_base: str = "https://track.checkout.example.com/tracking",
        sleep=time.sleep,
    ) -> None:
        self.carrier = carrier
        self.timeout = timeout
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds
        self.default_item_weight_kg = default_item_weight_kg
        self.tracking_url_base = tracking_url_base
        self._sleep = sleep
        self._locks = KeyedLocks()

    def generate(self, order) -> ShippingLabel:
        order_id = str(order.id)
        with self._locks.hold(order_id):
            existing = self.find(order_id)
            if existing is not None:
                return existing

            weight = self.package_weight(order.items)
            shipment = Shipment(
                reference=order_id,
                carrier_code=order.carrier_code,
                service_level=order.shipping_option,
                weight_kg=weight,
                recipient=_recipient(order),
            )
            try:
                purchased = call_with_retry(
                    lambda: self.carrier.purchase_label(shipment, timeout=self.timeout),
                    attempts=self.attempts,
                    backoff_seconds=self.backoff_seconds,
                    retry_on=(CarrierUnavailable,),
                    operation="purchase_label",
                    sleep=self._sleep,
                )
            except CarrierError as exc:
                logger.error("Label purchase failed", order_id=order_id, carrier=order.carrier_code, error=str(exc))
                raise LabelGenerationError(order_id=order_id) from exc

            try:
                label_id = current_domain.process(
                    RecordShippingLabel(
                        order_id=order_id,
                        tracking_number=purchased.tracking_number,
                        carrier_code=order.carrier_code,
                        label_pdf_ref=purchased.label_url,
                        barcode_payload=self.barcode_payload(purchased.tracking_number),
                        qr_payload=self.qr_payload(purchased.tracking_number, order.carrier_code),
                        weight_kg=weight,
                        estimated_delivery=purchased.estimated_delivery,
                    ),
                    asynchronous=False,
                )
            except Exception as exc:
                logger.error(
                    "Purchased label could not be recorded",
                    order_id=order_id,
                    tracking_number=purchased.tracking_number,
                    error=str(exc),
                )
                raise LabelGenerationError(order_id=order_id) from exc

            logger.info("Shipping label issued", order_id=order_id, tracking_number=purchased.tracking_number)
            return current_domain.repository_for(ShippingLabel).get(label_id)

    def find(self, order_id) -> ShippingLabel | None:
        results = current_domain.repository_for(ShippingLabel)._dao.query.filter(order_id=str(order_id)).all().items
        return results[0] if results else None

    def package_weight(self, items) -> float:
        weight = sum(
            (item.weight_kg if item.weight_kg else self.default_item_weight_kg) * item.quantity for item in items
        )
        return round(max(weight, MINIMUM_WEIGHT_KG), 3)

    @staticmethod
    def barcode_payload(tracking_number: str) -> str:
        """Code 128 payload printed under the address block."""
        return f"CODE128:{tracking_number}"

    def qr_payload(self, tracking_number: str, carrier_code: str) -> str:
        return f"{self.tracking_url_base}?{urlencode({'number': tracking_number, 'carrier': carrier_code})}"


def _recipient(order) -> dict:
    address = order.shipping_address
    return {
        "name": address.name,
        "street": address.street,
        "city": address.city,
        "postal_code": address.postal_code,
        "country": address.country,
        "email": order.customer_email,
    }
