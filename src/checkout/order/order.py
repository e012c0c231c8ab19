"""Order aggregate: the durable outcome of a checkout.

Totals are computed once, when the order is placed, from the prices that
were validated against the catalog. They are never recomputed afterwards.
Items and pricing are fixed from creation; only status, payment
confirmation, tracking number and label status change, and only through the
commands in this package.

State Machine:
    PENDING → CONFIRMED | CANCELLED
    CONFIRMED → PROCESSING | CANCELLED
    PROCESSING → SHIPPED → DELIVERED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from checkout.domain import checkout
from checkout.order.events import (
    OrderPaymentConfirmed,
    OrderPaymentFailed,
    OrderPlaced,
    OrderStatusChanged,
    ShippingLabelDeferred,
    TrackingNumberAssigned,
)


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class LabelStatus(Enum):
    NOT_REQUESTED = "Not_Requested"
    PENDING = "Pending"
    ISSUED = "Issued"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Amounts are stored as floats; totals must agree to the cent.
_CENT = 0.005


@checkout.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, as captured at checkout time."""

    name: String(max_length=255)
    street: String(required=True, max_length=255)
    city: String(required=True, max_length=100)
    postal_code: String(required=True, max_length=20)
    country: String(required=True, max_length=2)


@checkout.value_object(part_of="Order")
class OrderPricing:
    """Financial summary locked at checkout: subtotal, tax, shipping and grand total."""

    subtotal: Float(default=0.0)
    tax_total: Float(default=0.0)
    shipping_cost: Float(default=0.0)
    grand_total: Float(default=0.0)
    currency: String(max_length=3, default="SEK")


@checkout.entity(part_of="Order")
class OrderItem:
    product_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    quantity: Integer(required=True, min_value=1)
    unit_price: Float(required=True, min_value=0.0)
    weight_kg: Float(min_value=0.0)


@checkout.aggregate
class Order:
    idempotency_key: String(required=True, max_length=255)
    customer_id: Identifier(required=True)
    customer_email: String(max_length=254)
    items: HasMany(OrderItem)
    shipping_address: ValueObject(ShippingAddress)
    shipping_option: String(max_length=50)
    carrier_code: String(max_length=50)
    pricing: ValueObject(OrderPricing)
    status: String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method: String(max_length=50)
    payment_id: String(max_length=255)
    payment_status: String(max_length=50)
    redirect_target: String(max_length=1024)
    reservation_id: String(max_length=255)
    tracking_number: String(max_length=255)
    label_status: String(choices=LabelStatus, default=LabelStatus.NOT_REQUESTED.value)
    cancellation_reason: String(max_length=500)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def grand_total_is_sum_of_parts(self):
        if self.pricing is None:
            return
        expected = self.pricing.subtotal + self.pricing.tax_total + self.pricing.shipping_cost
        if abs(expected - self.pricing.grand_total) > _CENT:
            raise ValidationError({"pricing": ["Grand total must equal subtotal + tax + shipping"]})

    @classmethod
    def place(
        cls,
        idempotency_key,
        customer_id,
        customer_email,
        items_data,
        shipping_address,
        shipping_option,
        carrier_code,
        pricing,
        payment_method,
        payment_id,
        payment_status,
        redirect_target=None,
        reservation_id=None,
    ):
        """Create the order once payment has been captured or is pending with the provider.

        A captured payment places the order straight into CONFIRMED; a pending
        one leaves it in PENDING until reconciliation confirms it.
        """
        if payment_status not in ("succeeded", "pending"):
            raise ValidationError({"payment_status": ["Orders are only placed for captured or pending payments"]})

        now = datetime.now(UTC)
        status = OrderStatus.CONFIRMED if payment_status == "succeeded" else OrderStatus.PENDING

        order = cls(
            idempotency_key=idempotency_key,
            customer_id=customer_id,
            customer_email=customer_email,
            items=[OrderItem(**item) for item in items_data],
            shipping_address=ShippingAddress(**shipping_address),
            shipping_option=shipping_option,
            carrier_code=carrier_code,
            pricing=OrderPricing(**pricing),
            status=status.value,
            payment_method=payment_method,
            payment_id=payment_id,
            payment_status=payment_status,
            redirect_target=redirect_target,
            reservation_id=reservation_id,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=order.id,
                customer_id=customer_id,
                idempotency_key=idempotency_key,
                status=status.value,
                payment_method=payment_method,
                payment_status=payment_status,
                grand_total=order.pricing.grand_total,
                currency=order.pricing.currency,
                placed_at=now,
            )
        )
        return order

    def confirm_payment(self, payment_id=None):
        """Record a verified payment. Repeating it is a no-op."""
        if self.payment_status == "succeeded":
            return
        if self.status != OrderStatus.PENDING.value:
            raise ValidationError({"status": [f"Cannot confirm payment for an order in {self.status} state"]})

        now = datetime.now(UTC)
        if payment_id:
            self.payment_id = payment_id
        self.payment_status = "succeeded"
        self._transition(OrderStatus.CONFIRMED, now)
        self.raise_(
            OrderPaymentConfirmed(
                order_id=self.id,
                payment_id=self.payment_id,
                confirmed_at=now,
            )
        )

    def fail_payment(self, reason=None):
        """Cancel a pending order whose payment the provider rejected. Repeating it is a no-op."""
        if self.payment_status == "failed":
            return
        if self.status != OrderStatus.PENDING.value:
            raise ValidationError({"status": [f"Cannot fail payment for an order in {self.status} state"]})

        now = datetime.now(UTC)
        self.payment_status = "failed"
        self.cancellation_reason = reason
        self._transition(OrderStatus.CANCELLED, now, reason)
        self.raise_(
            OrderPaymentFailed(
                order_id=self.id,
                payment_id=self.payment_id,
                reason=reason,
                failed_at=now,
            )
        )

    def advance_to(self, new_status: OrderStatus, reason=None):
        now = datetime.now(UTC)
        if new_status == OrderStatus.CANCELLED:
            self.cancellation_reason = reason
        self._transition(new_status, now, reason)

    def assign_tracking_number(self, tracking_number, carrier_code):
        if self.tracking_number:
            if self.tracking_number == tracking_number:
                return
            raise ValidationError({"tracking_number": ["A tracking number is already assigned"]})

        now = datetime.now(UTC)
        self.tracking_number = tracking_number
        self.carrier_code = carrier_code
        self.label_status = LabelStatus.ISSUED.value
        self.updated_at = now
        self.raise_(
            TrackingNumberAssigned(
                order_id=self.id,
                tracking_number=tracking_number,
                carrier_code=carrier_code,
                assigned_at=now,
            )
        )

    def defer_label(self, reason=None):
        if self.label_status == LabelStatus.ISSUED.value:
            return
        now = datetime.now(UTC)
        self.label_status = LabelStatus.PENDING.value
        self.updated_at = now
        self.raise_(ShippingLabelDeferred(order_id=self.id, reason=reason, deferred_at=now))

    def _transition(self, new_status: OrderStatus, now, reason=None):
        current = OrderStatus(self.status)
        if new_status not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Invalid status transition from {current.value} to {new_status.value}"]})

        self.status = new_status.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                from_status=current.value,
                to_status=new_status.value,
                reason=reason,
                changed_at=now,
            )
        )
