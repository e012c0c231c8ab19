"""Domain events for the ShippingLabel aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="ShippingLabel")
class ShippingLabelIssued:
    """A tracking number and printable label were purchased for an order."""

    __version__ = 1

    label_id: Identifier(required=True)
    order_id: Identifier(required=True)
    tracking_number: String(required=True)
    carrier_code: String(required=True)
    weight_kg: Float(required=True)
    issued_at: DateTime(required=True)
