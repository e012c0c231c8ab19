"""Shipping label outcome on the order: commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.command(part_of="Order")
class AssignTrackingNumber:
    order_id: Identifier(required=True)
    tracking_number: String(required=True, max_length=255)
    carrier_code: String(required=True, max_length=50)


@checkout.command(part_of="Order")
class DeferShippingLabel:
    """Flag the order's label as pending so the background retry picks it up."""

    order_id: Identifier(required=True)
    reason: String(max_length=500)


@checkout.command_handler(part_of=Order)
class OrderShippingHandler:
    @handle(AssignTrackingNumber)
    def assign_tracking_number(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign_tracking_number(command.tracking_number, command.carrier_code)
        repo.add(order)

    @handle(DeferShippingLabel)
    def defer_shipping_label(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.defer_label(reason=command.reason)
        repo.add(order)
