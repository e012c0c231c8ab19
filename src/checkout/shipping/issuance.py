"""Shipping label recording: command and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.shipping.label import ShippingLabel


@checkout.command(part_of="ShippingLabel")
class RecordShippingLabel:
    order_id: Identifier(required=True)
    tracking_number: String(required=True, max_length=255)
    carrier_code: String(required=True, max_length=50)
    label_pdf_ref: String(max_length=1024)
    barcode_payload: String(max_length=255)
    qr_payload: String(max_length=1024)
    weight_kg: Float(required=True)
    estimated_delivery: String(max_length=10)


@checkout.command_handler(part_of=ShippingLabel)
class RecordShippingLabelHandler:
    @handle(RecordShippingLabel)
    def record_shipping_label(self, command):
        label = ShippingLabel.issue(
            order_id=command.order_id,
            tracking_number=command.tracking_number,
            carrier_code=command.carrier_code,
            label_pdf_ref=command.label_pdf_ref,
            barcode_payload=command.barcode_payload,
            qr_payload=command.qr_payload,
            weight_kg=command.weight_kg,
            estimated_delivery=command.estimated_delivery,
        )
        current_domain.repository_for(ShippingLabel).add(label)
        return str(label.id)
