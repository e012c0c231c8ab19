"""ShippingLabel aggregate: at most one per order.

A label is created once, when the carrier sells a tracking number for the
order, and never changes afterwards. Regenerating a label for the same order
returns this record.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout
from checkout.shipping.events import ShippingLabelIssued


@checkout.aggregate
class ShippingLabel:
    order_id: Identifier(required=True, unique=True)
    tracking_number: String(required=True, max_length=255)
    carrier_code: String(required=True, max_length=50)
    label_pdf_ref: String(max_length=1024)
    barcode_payload: String(max_length=255)
    qr_payload: String(max_length=1024)
    weight_kg: Float(min_value=0.0)
    estimated_delivery: String(max_length=10)  # ISO date string
    issued_at: DateTime()

    @classmethod
    def issue(
        cls,
        order_id,
        tracking_number,
        carrier_code,
        label_pdf_ref,
        barcode_payload,
        qr_payload,
        weight_kg,
        estimated_delivery=None,
    ):
        now = datetime.now(UTC)
        label = cls(
            order_id=order_id,
            tracking_number=tracking_number,
            carrier_code=carrier_code,
            label_pdf_ref=label_pdf_ref,
            barcode_payload=barcode_payload,
            qr_payload=qr_payload,
            weight_kg=weight_kg,
            estimated_delivery=estimated_delivery,
            issued_at=now,
        )
        label.raise_(
            ShippingLabelIssued(
                label_id=label.id,
                order_id=order_id,
                tracking_number=tracking_number,
                carrier_code=carrier_code,
                weight_kg=weight_kg,
                issued_at=now,
            )
        )
        return label
