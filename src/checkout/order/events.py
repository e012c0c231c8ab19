"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A checkout produced a durable order, paid or awaiting payment."""

    __version__ = 1

    order_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    idempotency_key: String(required=True)
    status: String(required=True)
    payment_method: String(required=True)
    payment_status: String(required=True)
    grand_total: Float(required=True)
    currency: String(required=True)
    placed_at: DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaymentConfirmed:
    """A pending payment was verified with the provider."""

    __version__ = 1

    order_id: Identifier(required=True)
    payment_id: String(required=True)
    confirmed_at: DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaymentFailed:
    """The provider reported a pending payment as failed; the order is cancelled."""

    __version__ = 1

    order_id: Identifier(required=True)
    payment_id: String()
    reason: String()
    failed_at: DateTime(required=True)


@checkout.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id: Identifier(required=True)
    from_status: String(required=True)
    to_status: String(required=True)
    reason: String()
    changed_at: DateTime(required=True)


@checkout.event(part_of="Order")
class TrackingNumberAssigned:
    __version__ = 1

    order_id: Identifier(required=True)
    tracking_number: String(required=True)
    carrier_code: String(required=True)
    assigned_at: DateTime(required=True)


@checkout.event(part_of="Order")
class ShippingLabelDeferred:
    """Label issuance failed; the order waits for the background retry."""

    __version__ = 1

    order_id: Identifier(required=True)
    reason: String()
    deferred_at: DateTime(required=True)
